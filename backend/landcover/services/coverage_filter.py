"""Coverage report construction and selection-aware filtering.

Coverage providers report one entry per class with a pixel count, an area
and a class label. The label is not consistent across providers: it can be
a numeric model index, a display name or a machine id. This module builds
canonical CoverageReport objects from raw payloads and filters them by a
selection of class or category ids, reconciling the label encodings
through the fixed tables of ``landcover.domain.catalog``.

Filtered totals are always recomputed over the retained items.

Example:
    Build a report and keep only grass:
        >>> from landcover.services import coverage_filter
        >>> report = coverage_filter.build_coverage_report({
        ...     "pixel_area_m2": 0.25,
        ...     "coverage": [
        ...         {"class_name": "Césped", "pixel_count": 600},
        ...         {"class_name": "Agua", "pixel_count": 400},
        ...     ],
        ... })
        >>> view = coverage_filter.filter_coverage(report.items, ["grass"])
        >>> [item.class_name for item in view.items], view.total_area_m2
        (['Césped'], 150.0)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from landcover.domain import catalog, models

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

_UNLABELED_NAMES = frozenset(
    {catalog.UNLABELED_CLASS_ID, catalog.get_class_config("unlabeled").name}
)


def _first(entry: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _parse_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _canonical_class_id(class_name: str, class_index: int | None) -> str:
    if class_index:
        by_index = catalog.class_id_for_index(class_index)
        if by_index is not None:
            return by_index
    resolved = catalog.resolve_class_id(class_name) if class_name else None
    if resolved is not None:
        return resolved
    if class_index == 0:
        return catalog.UNLABELED_CLASS_ID
    return catalog.slugify_class_name(class_name) or f"class_{class_index}"


def _parse_number(value: Any) -> float | None:
    """Parse a finite number from JSON, None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def build_coverage_report(payload: Mapping[str, Any]) -> models.CoverageReport:
    """Convert a raw provider payload into a CoverageReport.

    Entries may use snake_case or camelCase keys. When the payload carries a
    positive ``pixel_area_m2`` the area of every class is recomputed as
    ``pixel_count * pixel_area_m2``; otherwise the reported area is used.
    Percentages are computed against the pixel total of all entries.

    Entries that are not objects, have no class label, or carry a missing
    or non-numeric count or area are logged and skipped.

    Args:
        payload: Provider response with a ``coverage`` (or ``classes``) list
            and an optional ``pixel_area_m2`` scalar.

    Returns:
        A CoverageReport with one item per usable entry.
    """
    entries = _first(payload, "coverage", "classes", "items") or []
    if not isinstance(entries, list):
        logger.warning("Ignoring coverage list of type %s", type(entries).__name__)
        entries = []
    raw_pixel_area = _first(payload, "pixel_area_m2", "pixelAreaM2")
    pixel_area = _parse_number(raw_pixel_area) if raw_pixel_area is not None else 0.0
    if pixel_area is None:
        logger.warning("Ignoring malformed pixel area: %r", raw_pixel_area)
        pixel_area = 0.0

    parsed: list[tuple[str, int | None, int, float]] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            logger.warning("Skipping coverage entry that is not an object: %r", entry)
            continue
        class_name = _first(entry, "class_name", "className") or ""
        class_index = _parse_index(_first(entry, "class_id", "classId"))
        if not class_name and class_index is None:
            logger.debug("Skipping coverage entry without class label: %r", entry)
            continue
        count = _parse_number(_first(entry, "pixel_count", "pixelCount") or 0)
        if count is None or not count.is_integer():
            logger.warning("Skipping coverage entry with malformed count: %r", entry)
            continue
        if count < 0:
            logger.warning("Skipping coverage entry with negative count: %r", entry)
            continue
        pixel_count = int(count)
        if pixel_area > 0:
            area = pixel_count * pixel_area
        else:
            reported = _parse_number(_first(entry, "area_m2", "areaM2") or 0.0)
            if reported is None:
                logger.warning("Skipping coverage entry with malformed area: %r", entry)
                continue
            area = reported
        parsed.append((str(class_name), class_index, pixel_count, area))

    total_pixels = sum(count for _, _, count, _ in parsed)
    items = tuple(
        models.CoverageItem(
            class_id=_canonical_class_id(name, index),
            class_name=name or catalog.get_class_config(
                _canonical_class_id(name, index)
            ).name,
            pixel_count=count,
            area_m2=area,
            coverage_percentage=(
                count / total_pixels * 100 if total_pixels else 0.0
            ),
            class_index=index,
        )
        for name, index, count, area in parsed
    )
    return models.CoverageReport(
        items=items,
        pixel_area_m2=pixel_area,
        total_pixels=total_pixels,
        total_area_m2=sum(item.area_m2 for item in items),
    )


def match_class_id(item: models.CoverageItem) -> str | None:
    """Resolve the class id used for selection matching.

    A nonzero numeric index is mapped through the index table first. An
    index of 0 is treated as unset and falls through to the display name,
    which is mapped through the name table.
    """
    if item.class_index:
        by_index = catalog.class_id_for_index(item.class_index)
        if by_index is not None:
            return by_index
    return catalog.resolve_class_id(item.class_name)


def is_unlabeled(item: models.CoverageItem) -> bool:
    return (
        item.class_id == catalog.UNLABELED_CLASS_ID
        or item.class_name in _UNLABELED_NAMES
        or match_class_id(item) == catalog.UNLABELED_CLASS_ID
    )


def expand_selection(
    selected_ids: Iterable[str],
    selection: models.SelectionKind = "classes",
) -> frozenset[str]:
    """Turn a class or category selection into a set of class ids.

    Raises:
        ValueError: If ``selection`` is not recognized.
    """
    if selection == "classes":
        return frozenset(selected_ids)
    if selection != "categories":
        raise ValueError(f"Unknown selection kind: {selection!r}")

    class_ids: set[str] = set()
    for category_id in selected_ids:
        category = catalog.get_category(category_id)
        if category is None:
            logger.debug("Ignoring unknown category id %r", category_id)
            continue
        class_ids |= catalog.category_class_ids(category)
    return frozenset(class_ids)


def filter_coverage(
    items: Iterable[models.CoverageItem],
    selected_ids: Sequence[str],
    selection: models.SelectionKind = "classes",
) -> models.FilteredCoverage:
    """Filter coverage items by a class or category selection.

    The unlabeled class is always removed. With an empty selection every
    other item is kept. Otherwise an item is kept when its class, resolved
    by numeric index or by display name, is selected; items whose label
    resolves to nothing are dropped. Output is sorted by descending
    coverage percentage.

    Args:
        items: Canonical per-class coverage items.
        selected_ids: Selected class ids, or category ids when
            ``selection`` is "categories".
        selection: Kind of ids in ``selected_ids``.

    Returns:
        FilteredCoverage with totals over the retained items only.
    """
    labeled = [item for item in items if not is_unlabeled(item)]
    if selected_ids:
        wanted = expand_selection(selected_ids, selection)
        labeled = [item for item in labeled if match_class_id(item) in wanted]

    kept = tuple(
        sorted(labeled, key=lambda item: item.coverage_percentage, reverse=True)
    )
    return models.FilteredCoverage(
        items=kept,
        total_pixels=sum(item.pixel_count for item in kept),
        total_area_m2=sum(item.area_m2 for item in kept),
    )


def dominant_classes(
    items: Iterable[models.CoverageItem],
    limit: int = 3,
) -> list[models.CoverageItem]:
    """The ``limit`` labeled classes with the largest coverage."""
    return list(filter_coverage(items, []).items[:limit])
