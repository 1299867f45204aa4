"""Color override API endpoints.

Class overrides are keyed by class display name and category overrides by
category display name. The two tables are independent: writing one never
changes the other. The rendering endpoint returns the class-to-color map
that mask regeneration requests use.

Example:
    Override the color of grass and read the category rendering map:
        >>> client.put("/api/colors/classes/grass", json={"color": "#00FF00"})
        >>> client.get("/api/colors/rendering", params={"mode": "categories"})
"""

from __future__ import annotations

from typing import Any, Literal

import fastapi
import pydantic

from landcover.api import dependencies
from landcover.db import database
from landcover.domain import catalog
from landcover.services import colors

router = fastapi.APIRouter(prefix="/api/colors", tags=["colors"])

_STORE_UNAVAILABLE = "Color store unavailable"


class ColorUpdate(pydantic.BaseModel):
    color: str = pydantic.Field(pattern=r"^#[0-9A-Fa-f]{6}$")


def _class_display_name(label: str) -> str:
    class_id = catalog.resolve_class_id(label)
    if class_id is None:
        raise fastapi.HTTPException(status_code=404, detail="Class not found")
    return catalog.get_class_config(class_id).name


@router.get("/classes")
async def list_class_colors(
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, dict[str, str]]:
    return {"colors": registry.get_all_class_colors()}


@router.put("/classes/{class_name}")
async def set_class_color(
    class_name: str,
    update: ColorUpdate,
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, str]:
    """Override the display color of a class.

    Args:
        class_name: Class display name ("Césped") or id ("grass").
        update: New color as ``#RRGGBB``.
        registry: Color registry (injected via FastAPI Depends).

    Returns:
        The class display name and its new color.

    Raises:
        HTTPException: 404 for an unknown class, 503 if the store fails.
    """
    name = _class_display_name(class_name)
    try:
        registry.set_class_color(name, update.color)
    except database.StoreError as exc:
        raise fastapi.HTTPException(
            status_code=503, detail=_STORE_UNAVAILABLE
        ) from exc
    return {"class_name": name, "color": update.color}


@router.delete("/classes")
async def clear_class_colors(
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, dict[str, str]]:
    try:
        registry.clear_class_colors()
    except database.StoreError as exc:
        raise fastapi.HTTPException(
            status_code=503, detail=_STORE_UNAVAILABLE
        ) from exc
    return {"colors": {}}


@router.get("/categories")
async def list_category_colors(
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, dict[str, str]]:
    return {"colors": registry.get_all_category_colors()}


@router.put("/categories/{category_name}")
async def set_category_color(
    category_name: str,
    update: ColorUpdate,
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, str]:
    """Override the display color of a category.

    Args:
        category_name: Category display name or id.
        update: New color as ``#RRGGBB``.
        registry: Color registry (injected via FastAPI Depends).

    Raises:
        HTTPException: 404 for an unknown category, 503 if the store fails.
    """
    category = catalog.get_category_by_name(category_name) or catalog.get_category(
        category_name
    )
    if category is None:
        raise fastapi.HTTPException(status_code=404, detail="Category not found")
    try:
        registry.set_category_color(category.name, update.color)
    except database.StoreError as exc:
        raise fastapi.HTTPException(
            status_code=503, detail=_STORE_UNAVAILABLE
        ) from exc
    return {"category_name": category.name, "color": update.color}


@router.delete("/categories")
async def clear_category_colors(
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, dict[str, str]]:
    try:
        registry.clear_category_colors()
    except database.StoreError as exc:
        raise fastapi.HTTPException(
            status_code=503, detail=_STORE_UNAVAILABLE
        ) from exc
    return {"colors": {}}


@router.get("/rendering")
async def rendering_colors(
    mode: Literal["classes", "categories"] = "classes",
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, Any]:
    """Get the class-to-color map used to regenerate masks.

    In "classes" mode this is the class override table; in "categories"
    mode every class gets the effective color of its category.
    """
    return {"mode": mode, "colors": registry.get_rendering_color_map(mode)}


@router.get("/effective")
async def effective_colors(
    registry: colors.ClassColorRegistry = fastapi.Depends(  # noqa: B008
        dependencies.get_color_registry
    ),
) -> dict[str, dict[str, str]]:
    """Get the color every class and category is displayed with."""
    return {
        "classes": {
            config.name: registry.effective_class_color(config.name)
            for config in catalog.CLASS_CATALOG
        },
        "categories": {
            category.name: registry.effective_category_color(category)
            for category in catalog.COVERAGE_CATEGORIES
        },
    }
