"""Mask layer API endpoints.

These endpoints fetch mask images from the segmentation service and return
them as overlay descriptors whose bounds are already in geographic
``[[min_lat, min_lon], [max_lat, max_lon]]`` order, ready for an image
overlay on a web map.

Example:
    Mask of a scene showing only grass and trees:
        >>> response = client.get(
        ...     "/api/masks/scenes/0f8fad5b-d9cb-469f-a165-70867728950e",
        ...     params={"class_ids": ["grass", "tree"]},
        ... )
        >>> response.json()["layers"][0]["bounds"]
        [[-2.153, -79.892], [-2.144, -79.883]]
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import fastapi

from landcover.api import dependencies
from landcover.clients import segmentation
from landcover.core import config
from landcover.domain import models
from landcover.services import colors, overlays, reprojection

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/api/masks", tags=["masks"])


def _get_reprojector() -> reprojection.CoordinateReprojector:
    return reprojection.CoordinateReprojector()


def _to_layer(
    record: models.MaskRecord,
    reprojector: reprojection.CoordinateReprojector,
    opacity: float,
) -> dict[str, Any] | None:
    if record.image is None or record.bounds is None:
        return None
    bounds = reprojector.normalize_bounds(record.bounds, record.crs)
    return {
        "bounds": bounds.as_pairs(),
        "image": record.image,
        "opacity": opacity,
        "crs": record.crs,
    }


@router.get("/scenes/{scene_id}")
async def scene_mask(
    scene_id: str,
    class_ids: list[str] = fastapi.Query([]),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
    reprojector: reprojection.CoordinateReprojector = fastapi.Depends(  # noqa: B008
        _get_reprojector
    ),
) -> dict[str, Any]:
    """Get the mask overlay of a scene.

    Args:
        scene_id: Scene UUID.
        class_ids: Class ids to render; every class when empty.
        settings: Application settings (injected via FastAPI Depends).
        provider: Segmentation provider (injected via FastAPI Depends).
        reprojector: Bounds reprojector (injected via FastAPI Depends).

    Returns:
        Dictionary with a single-element ``layers`` list.

    Raises:
        HTTPException: 400 for a malformed scene id, 502 if the service
            fails or returns a mask without image or bounds.
    """
    record = await dependencies.provider_call(
        provider.get_scene_mask(scene_id, overlays.class_indices_param(class_ids))
    )
    layer = _to_layer(record, reprojector, settings.default_overlay_opacity)
    if layer is None:
        raise fastapi.HTTPException(
            status_code=502,
            detail="Mask response is missing image or bounds",
        )
    return {"scene_id": scene_id, "layers": [layer]}


@router.get("/regions/{region_id}/periods/{period}")
async def period_masks(
    region_id: str,
    period: str,
    color_mode: Literal["classes", "categories"] = "classes",
    transparent_unlabeled: bool = True,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    provider: segmentation.SegmentationProviderProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_provider
    ),
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
    reprojector: reprojection.CoordinateReprojector = fastapi.Depends(  # noqa: B008
        _get_reprojector
    ),
) -> dict[str, Any]:
    """Get the mask overlays of every scene of a region over a period.

    Masks are rendered with the colors of the registry in ``color_mode``.
    Records without image or bounds are skipped.
    """
    records = await dependencies.provider_call(
        provider.get_period_masks(
            region_id,
            period,
            colors=registry.get_rendering_color_map(color_mode) or None,
            transparent_unlabeled=transparent_unlabeled,
        )
    )
    layers = []
    for record in records:
        layer = _to_layer(record, reprojector, settings.default_overlay_opacity)
        if layer is None:
            logger.warning("Skipping incomplete mask of %s %s", region_id, period)
            continue
        layers.append(layer)
    return {"region_id": region_id, "period": period, "layers": layers}
