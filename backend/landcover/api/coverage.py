"""Coverage statistics API endpoints.

This module exposes the per-class coverage of a scene or of a region over
a period, filtered by a class or category selection, together with the
category roll-ups and a comparison between two periods. Statistics are
fetched from the segmentation service on every request and never patched
in place.

Example:
    Coverage of a scene restricted to grass and water:
        >>> response = client.get(
        ...     "/api/coverage/scenes/0f8fad5b-d9cb-469f-a165-70867728950e",
        ...     params={"class_ids": ["grass", "water"]},
        ... )
        >>> response.json()["total_area_m2"]

    Category roll-ups of a period:
        >>> response = client.get(
        ...     "/api/coverage/regions/campus/periods/2025-10/categories"
        ... )
        >>> [c["category_id"] for c in response.json()["categories"]]
        ['vegetation', 'infrastructure', 'water', ...]
"""

from __future__ import annotations

import dataclasses
from typing import Any, Literal

import fastapi

from landcover.api import dependencies
from landcover.clients import segmentation
from landcover.domain import models
from landcover.services import aggregation, coverage_filter

router = fastapi.APIRouter(prefix="/api/coverage", tags=["coverage"])

Selection = Literal["classes", "categories"]


def _coverage_view(
    report: models.CoverageReport,
    class_ids: list[str],
    selection: Selection,
) -> dict[str, Any]:
    """Serialize the filtered view of a report."""
    filtered = coverage_filter.filter_coverage(report.items, class_ids, selection)
    green = aggregation.green_area_metrics(report.items, report.total_area_m2)
    return {
        "items": [dataclasses.asdict(item) for item in filtered.items],
        "total_pixels": filtered.total_pixels,
        "total_area_m2": filtered.total_area_m2,
        "pixel_area_m2": report.pixel_area_m2,
        "green_areas": dataclasses.asdict(green),
        "dominant_classes": [
            item.class_name
            for item in coverage_filter.dominant_classes(report.items)
        ],
    }


def _category_view(
    report: models.CoverageReport,
    class_ids: list[str],
    selection: Selection,
) -> dict[str, Any]:
    """Serialize category roll-ups renormalized over the filtered view."""
    filtered = coverage_filter.filter_coverage(report.items, class_ids, selection)
    rollups = aggregation.group_by_category(filtered.items, filtered.total_area_m2)
    return {
        "categories": [dataclasses.asdict(rollup) for rollup in rollups],
        "total_area_m2": filtered.total_area_m2,
        "matched_area_m2": aggregation.matched_area(rollups),
    }


@router.get("/scenes/{scene_id}")
async def scene_coverage(
    scene_id: str,
    class_ids: list[str] = fastapi.Query([]),  # noqa: B008
    selection: Selection = "classes",
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
) -> dict[str, Any]:
    """Get the per-class coverage of a scene.

    The unlabeled class is never returned. With no ``class_ids`` every
    other class is returned, sorted by descending coverage; otherwise only
    the selected classes (or the classes of the selected categories) are
    kept and the totals cover the kept classes only.

    Args:
        scene_id: Scene UUID.
        class_ids: Selected class ids, or category ids when ``selection``
            is "categories".
        selection: Kind of ids in ``class_ids``.
        provider: Segmentation provider (injected via FastAPI Depends).

    Returns:
        Filtered items, their totals, green-area metrics and the dominant
        classes of the scene.

    Raises:
        HTTPException: 400 for a malformed scene id, 502 if the
            segmentation service fails.
    """
    report = await dependencies.provider_call(provider.get_scene_coverage(scene_id))
    return {"scene_id": scene_id, **_coverage_view(report, class_ids, selection)}


@router.get("/scenes/{scene_id}/categories")
async def scene_categories(
    scene_id: str,
    class_ids: list[str] = fastapi.Query([]),  # noqa: B008
    selection: Selection = "classes",
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
) -> dict[str, Any]:
    """Get the category roll-ups of a scene.

    Every catalog category is returned, including categories with no
    matching class (zero area).
    """
    report = await dependencies.provider_call(provider.get_scene_coverage(scene_id))
    return {"scene_id": scene_id, **_category_view(report, class_ids, selection)}


@router.get("/regions/{region_id}/periods/{period}")
async def period_coverage(
    region_id: str,
    period: str,
    class_ids: list[str] = fastapi.Query([]),  # noqa: B008
    selection: Selection = "classes",
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
) -> dict[str, Any]:
    """Get the per-class coverage of a region aggregated over a period.

    Args:
        region_id: Region identifier.
        period: Year-month bucket (``YYYY-MM``).
        class_ids: Selected class or category ids.
        selection: Kind of ids in ``class_ids``.
        provider: Segmentation provider (injected via FastAPI Depends).
    """
    report = await dependencies.provider_call(
        provider.get_period_coverage(region_id, period)
    )
    return {
        "region_id": region_id,
        "period": period,
        **_coverage_view(report, class_ids, selection),
    }


@router.get("/regions/{region_id}/periods/{period}/categories")
async def period_categories(
    region_id: str,
    period: str,
    class_ids: list[str] = fastapi.Query([]),  # noqa: B008
    selection: Selection = "classes",
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
) -> dict[str, Any]:
    report = await dependencies.provider_call(
        provider.get_period_coverage(region_id, period)
    )
    return {
        "region_id": region_id,
        "period": period,
        **_category_view(report, class_ids, selection),
    }


@router.get("/regions/{region_id}/compare")
async def compare_periods(
    region_id: str,
    previous: str,
    current: str,
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
) -> dict[str, Any]:
    """Compare the coverage of a region between two periods.

    Both periods are fetched in full; the comparison gives green-area
    metrics of each period, their variation in percentage points and the
    area variation of every category. Formatting the figures into a report
    document is left to the caller.

    Args:
        region_id: Region identifier.
        previous: Earlier period (``YYYY-MM``).
        current: Later period (``YYYY-MM``).
        provider: Segmentation provider (injected via FastAPI Depends).

    Example:
        >>> response = client.get(
        ...     "/api/coverage/regions/campus/compare",
        ...     params={"previous": "2025-09", "current": "2025-10"},
        ... )
        >>> response.json()["green_percentage_point_delta"]
        3.0
    """
    before = await dependencies.provider_call(
        provider.get_period_coverage(region_id, previous)
    )
    after = await dependencies.provider_call(
        provider.get_period_coverage(region_id, current)
    )
    comparison = aggregation.compare_periods(before, after)
    return {
        "region_id": region_id,
        "previous": previous,
        "current": current,
        **dataclasses.asdict(comparison),
    }
