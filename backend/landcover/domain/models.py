"""Data models for coverage statistics, categories and mask layers.

This module defines the plain data structures exchanged between the engine
components and their consumers (presentation, report generation, the HTTP
API). Every structure is a frozen dataclass so results can be passed by
value and serialized with ``dataclasses.asdict`` without any
framework-specific wrapper.

Example:
    Creating a coverage item for a scene:
        >>> from landcover.domain.models import CoverageItem
        >>> item = CoverageItem(
        ...     class_id="grass",
        ...     class_name="Césped",
        ...     pixel_count=600,
        ...     area_m2=150.0,
        ...     coverage_percentage=60.0,
        ... )

    Describing the bounds of a mask raster in UTM zone 17S:
        >>> from landcover.domain.models import GeoBounds
        >>> bounds = GeoBounds(
        ...     min_x=623000.0, min_y=9762000.0,
        ...     max_x=624000.0, max_y=9763000.0,
        ... )
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Literal

LatLng = tuple[float, float]
ColorMode = Literal["classes", "categories"]
SelectionKind = Literal["classes", "categories"]


@dataclasses.dataclass(frozen=True)
class CoverageItem:
    """Per-class pixel and area statistics for a scene or period.

    Attributes:
        class_id: Machine identifier of the class (e.g. "grass").
        class_name: Label reported upstream, usually the display name
            (e.g. "Césped").
        pixel_count: Number of mask pixels assigned to the class.
        area_m2: Covered area in square meters
            (pixel_count * pixel area of the scene).
        coverage_percentage: Share of the scene pixels, 0 to 100.
        class_index: Numeric class index when the provider reports one.
    """

    class_id: str
    class_name: str
    pixel_count: int
    area_m2: float
    coverage_percentage: float
    class_index: int | None = None


@dataclasses.dataclass(frozen=True)
class CoverageReport:
    """A complete coverage fetch, replaced as a whole on every fetch."""

    items: tuple[CoverageItem, ...]
    pixel_area_m2: float
    total_pixels: int
    total_area_m2: float


@dataclasses.dataclass(frozen=True)
class FilteredCoverage:
    """Selection-aware subset of a coverage report.

    Totals are computed over ``items`` only and are the authoritative
    figures for the current view.
    """

    items: tuple[CoverageItem, ...]
    total_pixels: int
    total_area_m2: float


@dataclasses.dataclass(frozen=True)
class ClassConfig:
    """Static catalog entry for a segmentation class."""

    id: str
    name: str
    color: str
    description: str = ""


@dataclasses.dataclass(frozen=True)
class Category:
    """Curated grouping of classes, matched by class display name."""

    id: str
    name: str
    member_class_names: frozenset[str]
    default_color: str


@dataclasses.dataclass(frozen=True)
class CategoryMember:
    class_name: str
    area_m2: float
    percentage_of_category: float


@dataclasses.dataclass(frozen=True)
class CategoryRollup:
    """Aggregated coverage of one category.

    Attributes:
        category_id: Catalog identifier of the category.
        category_name: Display name of the category.
        category_color: Default display color of the category.
        total_area_m2: Sum of the member areas.
        percentage_of_total: Category area relative to the scene total.
        members: Per-class breakdown, each with its share of the category.
    """

    category_id: str
    category_name: str
    category_color: str
    total_area_m2: float
    percentage_of_total: float
    members: tuple[CategoryMember, ...]


@dataclasses.dataclass(frozen=True)
class GreenAreaMetrics:
    area_m2: float
    percentage: float


@dataclasses.dataclass(frozen=True)
class CategoryDelta:
    category_id: str
    category_name: str
    previous_area_m2: float
    current_area_m2: float
    area_delta_m2: float
    percentage_point_delta: float


@dataclasses.dataclass(frozen=True)
class PeriodComparison:
    """Comparative figures between two coverage snapshots."""

    previous_green: GreenAreaMetrics
    current_green: GreenAreaMetrics
    green_percentage_point_delta: float
    categories: tuple[CategoryDelta, ...]


@dataclasses.dataclass(frozen=True)
class GeoBounds:
    """Rectangular bounds in the coordinate system of the raster."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float


@dataclasses.dataclass(frozen=True)
class LatLngBounds:
    """Geographic bounds in ``[[min_lat, min_lon], [max_lat, max_lon]]`` order."""

    south_west: LatLng
    north_east: LatLng

    def as_pairs(self) -> list[list[float]]:
        return [list(self.south_west), list(self.north_east)]

    def union(self, other: LatLngBounds) -> LatLngBounds:
        return LatLngBounds(
            south_west=(
                min(self.south_west[0], other.south_west[0]),
                min(self.south_west[1], other.south_west[1]),
            ),
            north_east=(
                max(self.north_east[0], other.north_east[0]),
                max(self.north_east[1], other.north_east[1]),
            ),
        )


@dataclasses.dataclass(frozen=True)
class MaskRecord:
    """Raw mask record as returned by the mask provider.

    Any field may be missing when the provider response is malformed;
    consumers must check before building a layer from it.
    """

    bounds: GeoBounds | None
    crs: int | None
    image: str | None


@dataclasses.dataclass(frozen=True)
class MaskLayerDescriptor:
    """A displayable mask overlay with bounds already reprojected."""

    bounds: LatLngBounds
    image: str
    opacity: float


class OverlayMode(enum.StrEnum):
    SCENE = "scene"
    PERIOD = "period"


class OverlayState(enum.StrEnum):
    EMPTY = "empty"
    LOADING = "loading"
    DISPLAYED = "displayed"


class LoadStatus(enum.StrEnum):
    """Outcome of an overlay load request.

    Only ``LOADED`` changes the display. ``FAILED`` and ``INVALID`` are
    non-fatal flags a presentation layer can surface as warnings.
    """

    LOADED = "loaded"
    UNCHANGED = "unchanged"
    BUSY = "busy"
    FAILED = "failed"
    STALE = "stale"
    INVALID = "invalid"


@dataclasses.dataclass(frozen=True)
class LoadResult:
    status: LoadStatus
    layers: tuple[MaskLayerDescriptor, ...] = ()
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (LoadStatus.LOADED, LoadStatus.UNCHANGED)


@dataclasses.dataclass(frozen=True)
class OverlaySnapshot:
    """Immutable view of the overlay manager handed to subscribers."""

    mode: OverlayMode | None
    state: OverlayState
    layers: tuple[MaskLayerDescriptor, ...]
    opacity: float
    visible: bool
