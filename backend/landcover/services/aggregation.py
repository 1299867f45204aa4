"""Category roll-ups and comparative coverage figures.

Per-class coverage items are regrouped into the curated categories of
``landcover.domain.catalog``. Percentages are renormalized at two levels:
each category against the total area, and each member class against its
category. Classes that belong to no category are left out of the roll-ups.

Example:
    Roll up a two-class scene:
        >>> from landcover.domain import models
        >>> from landcover.services import aggregation
        >>> items = [
        ...     models.CoverageItem("grass", "Césped", 600, 600.0, 60.0),
        ...     models.CoverageItem("water", "Agua", 400, 400.0, 40.0),
        ... ]
        >>> rollups = aggregation.group_by_category(items, 1000.0)
        >>> [(r.category_id, r.percentage_of_total) for r in rollups][:3]
        [('vegetation', 60.0), ('infrastructure', 0.0), ('water', 40.0)]
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from landcover.domain import catalog, models

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


@dataclasses.dataclass
class _Accumulator:
    category: models.Category
    total_area_m2: float = 0.0
    members: list[tuple[str, float]] = dataclasses.field(default_factory=list)


def group_by_category(
    items: Iterable[models.CoverageItem],
    total_area_m2: float,
) -> list[models.CategoryRollup]:
    """Group coverage items into category roll-ups.

    Every catalog category is returned, in catalog order, including those
    with no matching class: a zero area means "none of this category is
    present". When ``total_area_m2`` is zero percentages are computed
    against 1 and come out as 0.

    Args:
        items: Per-class coverage items.
        total_area_m2: Area the category percentages are relative to.

    Returns:
        One CategoryRollup per catalog category.
    """
    accumulators = {
        category.id: _Accumulator(category)
        for category in catalog.COVERAGE_CATEGORIES
    }

    for item in items:
        if not item.class_name:
            continue
        category = catalog.find_category_for_class(item.class_name)
        if category is None:
            continue
        accumulator = accumulators[category.id]
        accumulator.total_area_m2 += item.area_m2
        accumulator.members.append((item.class_name, item.area_m2))

    denominator = total_area_m2 or 1
    rollups = []
    for accumulator in accumulators.values():
        category_total = accumulator.total_area_m2 or 1
        rollups.append(
            models.CategoryRollup(
                category_id=accumulator.category.id,
                category_name=accumulator.category.name,
                category_color=accumulator.category.default_color,
                total_area_m2=accumulator.total_area_m2,
                percentage_of_total=accumulator.total_area_m2 / denominator * 100,
                members=tuple(
                    models.CategoryMember(
                        class_name=name,
                        area_m2=area,
                        percentage_of_category=area / category_total * 100,
                    )
                    for name, area in accumulator.members
                ),
            )
        )
    return rollups


def green_area_metrics(
    items: Iterable[models.CoverageItem],
    total_area_m2: float,
) -> models.GreenAreaMetrics:
    """Area and share of the green classes (vegetation, grass, trees)."""
    green_area = 0.0
    for item in items:
        class_id = catalog.resolve_class_id(item.class_name)
        name = catalog.get_class_config(class_id).name if class_id else item.class_name
        if name in catalog.GREEN_AREA_CLASS_NAMES:
            green_area += item.area_m2

    percentage = green_area / total_area_m2 * 100 if total_area_m2 > 0 else 0.0
    return models.GreenAreaMetrics(area_m2=green_area, percentage=percentage)


def compare_periods(
    previous: models.CoverageReport,
    current: models.CoverageReport,
) -> models.PeriodComparison:
    """Compare two coverage snapshots for a comparative report.

    Args:
        previous: Coverage of the earlier scene or period.
        current: Coverage of the later scene or period.

    Returns:
        Green-area metrics for both snapshots, their variation in
        percentage points, and per-category area deltas.
    """
    previous_green = green_area_metrics(previous.items, previous.total_area_m2)
    current_green = green_area_metrics(current.items, current.total_area_m2)

    previous_rollups = group_by_category(previous.items, previous.total_area_m2)
    current_rollups = group_by_category(current.items, current.total_area_m2)

    deltas = tuple(
        _category_delta(before, after)
        for before, after in zip(previous_rollups, current_rollups, strict=True)
    )
    return models.PeriodComparison(
        previous_green=previous_green,
        current_green=current_green,
        green_percentage_point_delta=(
            current_green.percentage - previous_green.percentage
        ),
        categories=deltas,
    )


def _category_delta(
    before: models.CategoryRollup,
    after: models.CategoryRollup,
) -> models.CategoryDelta:
    return models.CategoryDelta(
        category_id=after.category_id,
        category_name=after.category_name,
        previous_area_m2=before.total_area_m2,
        current_area_m2=after.total_area_m2,
        area_delta_m2=after.total_area_m2 - before.total_area_m2,
        percentage_point_delta=(
            after.percentage_of_total - before.percentage_of_total
        ),
    )


def matched_area(rollups: Sequence[models.CategoryRollup]) -> float:
    """Total area that landed in some category."""
    return sum(rollup.total_area_m2 for rollup in rollups)
