"""Best-effort reprojection of mask raster bounds to WGS84.

Mask rasters are produced in the projected coordinate system of the source
scene, usually a UTM zone, while the map displays geographic coordinates.
This module converts raster bounds into the ``[[min_lat, min_lon],
[max_lat, max_lon]]`` order expected by map overlays, using a small
built-in table of proj4 definitions and pyproj transformers.

Reprojection never fails the caller: an unknown CRS code or a transform
error is logged and the input bounds are treated as already geographic.
The overlay is then misplaced but the display keeps working.

Example:
    Normalize the bounds of a raster in UTM zone 17S:
        >>> from landcover.domain import models
        >>> from landcover.services.reprojection import CoordinateReprojector
        >>> reprojector = CoordinateReprojector()
        >>> bounds = models.GeoBounds(623000.0, 9762000.0, 624000.0, 9763000.0)
        >>> latlng = reprojector.normalize_bounds(bounds, 32717)
        >>> latlng.south_west  # (lat, lon) near Guayaquil
        (-2.15..., -79.89...)
"""

from __future__ import annotations

import functools
import logging
import math
from typing import TYPE_CHECKING

import pyproj
import pyproj.exceptions

from landcover.domain import models

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

GEOGRAPHIC_CRS_CODE = 4326

UTM_NORTH_RANGE = range(32601, 32661)
UTM_SOUTH_RANGE = range(32701, 32761)

CRS_DEFINITIONS: dict[int, str] = {
    32617: "+proj=utm +zone=17 +datum=WGS84 +units=m +no_defs",
    32717: "+proj=utm +zone=17 +south +datum=WGS84 +units=m +no_defs",
    32618: "+proj=utm +zone=18 +datum=WGS84 +units=m +no_defs",
    32718: "+proj=utm +zone=18 +south +datum=WGS84 +units=m +no_defs",
}


class UnknownCRSError(LookupError):
    """Raised when a CRS code has no entry in the definitions table."""


def utm_zone_from_epsg(code: int) -> tuple[int, str] | None:
    """Derive the UTM zone and hemisphere from a WGS84 UTM EPSG code.

    Codes 32601-32660 are the northern zones 1-60 and 32701-32760 the
    southern ones. Only used for diagnostics.

    Args:
        code: EPSG code.

    Returns:
        ``(zone, "N" | "S")`` or None when the code is not a WGS84 UTM code.
    """
    if code in UTM_NORTH_RANGE:
        return code - 32600, "N"
    if code in UTM_SOUTH_RANGE:
        return code - 32700, "S"
    return None


def _axis_swapped(bounds: models.GeoBounds) -> models.LatLngBounds:
    return models.LatLngBounds(
        south_west=(bounds.min_y, bounds.min_x),
        north_east=(bounds.max_y, bounds.max_x),
    )


@functools.lru_cache(maxsize=32)
def _transformer(definition: str, inverse: bool) -> pyproj.Transformer:
    projected = pyproj.CRS.from_proj4(definition)
    geographic = pyproj.CRS.from_epsg(GEOGRAPHIC_CRS_CODE)
    if inverse:
        return pyproj.Transformer.from_crs(projected, geographic, always_xy=True)
    return pyproj.Transformer.from_crs(geographic, projected, always_xy=True)


class CoordinateReprojector:
    """Convert raster bounds between projected CRSs and WGS84.

    Args:
        definitions: Mapping of CRS code to proj4 definition. Defaults to
            the built-in UTM 17/18 table.
    """

    def __init__(self, definitions: Mapping[int, str] | None = None) -> None:
        self._definitions = dict(
            CRS_DEFINITIONS if definitions is None else definitions
        )

    def knows(self, crs_code: int) -> bool:
        return crs_code in self._definitions

    def _definition(self, crs_code: int) -> str:
        try:
            return self._definitions[crs_code]
        except KeyError:
            raise UnknownCRSError(f"No definition for EPSG:{crs_code}") from None

    def normalize_bounds(
        self,
        bounds: models.GeoBounds,
        crs_code: int | None,
    ) -> models.LatLngBounds:
        """Return bounds in geographic ``(lat, lon)`` order.

        Geographic input (``crs_code`` None or 4326) is only axis-swapped.
        Projected input is passed corner by corner through the inverse
        projection. Unknown codes and transform failures are logged and the
        input is treated as geographic.

        Args:
            bounds: Raster bounds in the raster CRS.
            crs_code: EPSG code of the raster CRS, None if geographic.

        Returns:
            LatLngBounds with south-west and north-east corners.
        """
        if crs_code is None or crs_code == GEOGRAPHIC_CRS_CODE:
            return _axis_swapped(bounds)

        try:
            transformer = _transformer(self._definition(crs_code), True)
            min_lon, min_lat = transformer.transform(bounds.min_x, bounds.min_y)
            max_lon, max_lat = transformer.transform(bounds.max_x, bounds.max_y)
        except (UnknownCRSError, pyproj.exceptions.ProjError) as exc:
            logger.warning(
                "Reprojection from EPSG:%s failed (%s); using bounds as WGS84",
                crs_code,
                exc,
            )
            return _axis_swapped(bounds)

        corners = (min_lat, min_lon, max_lat, max_lon)
        if not all(math.isfinite(value) for value in corners):
            logger.warning(
                "Reprojection from EPSG:%s produced non-finite corners %s; "
                "using bounds as WGS84",
                crs_code,
                corners,
            )
            return _axis_swapped(bounds)

        zone = utm_zone_from_epsg(crs_code)
        logger.debug("Reprojected bounds from EPSG:%s (UTM %s)", crs_code, zone)
        return models.LatLngBounds(
            south_west=(min_lat, min_lon),
            north_east=(max_lat, max_lon),
        )

    def project_point(
        self,
        lat: float,
        lon: float,
        crs_code: int,
    ) -> tuple[float, float]:
        """Forward-project a geographic point into ``crs_code``.

        Raises:
            UnknownCRSError: If ``crs_code`` is not in the table.
        """
        if crs_code == GEOGRAPHIC_CRS_CODE:
            return lon, lat
        transformer = _transformer(self._definition(crs_code), False)
        x, y = transformer.transform(lon, lat)
        return x, y
