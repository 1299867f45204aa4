"""Async HTTP client for the segmentation service.

The segmentation service owns scenes, their per-pixel class masks and the
derived statistics. This module wraps the four calls the engine needs:
coverage of a scene, coverage of a region over a year-month period, the
mask image of a scene (optionally restricted to some classes) and the mask
images of every scene of a period.

Identifiers are validated before any request is issued so that malformed
input is rejected locally with InvalidIdentifierError. Transport errors,
timeouts and non-success statuses surface as ProviderError; callers decide
whether to retry.

Example:
    Fetch coverage for a scene:
        >>> import asyncio
        >>> from landcover.clients import segmentation
        >>> async def main():
        ...     async with segmentation.HttpSegmentationProvider(
        ...         "http://localhost:8000"
        ...     ) as provider:
        ...         return await provider.get_scene_coverage(
        ...             "0f8fad5b-d9cb-469f-a165-70867728950e"
        ...         )
        >>> report = asyncio.run(main())
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, Self

import httpx

from landcover.domain import models
from landcover.services import coverage_filter

if TYPE_CHECKING:
    import types

    from landcover.core import config

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/segments"

_PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_REGION_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ProviderError(RuntimeError):
    """Raised when the segmentation service cannot serve a request."""


class InvalidIdentifierError(ValueError):
    """Raised when an identifier fails its format check."""


def validate_scene_id(scene_id: str) -> str:
    """Check that a scene id is a UUID.

    Returns:
        The canonical lowercase dashed form, so braces, ``urn:uuid:``
        prefixes or undashed hex never reach a request path.

    Raises:
        InvalidIdentifierError: If ``scene_id`` is not a UUID.
    """
    try:
        return str(uuid.UUID(scene_id))
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdentifierError(f"Invalid scene id: {scene_id!r}") from None


def validate_period(period: str) -> str:
    """Check that a period is a ``YYYY-MM`` year-month bucket."""
    if not isinstance(period, str) or not _PERIOD_PATTERN.match(period):
        raise InvalidIdentifierError(f"Invalid period: {period!r}")
    return period


def validate_region_id(region_id: str) -> str:
    if not isinstance(region_id, str) or not _REGION_PATTERN.match(region_id):
        raise InvalidIdentifierError(f"Invalid region id: {region_id!r}")
    return region_id


def _expect_object(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ProviderError(
            f"{what} response is a {type(payload).__name__}, not an object"
        )
    return payload


def parse_mask_record(raw: Mapping[str, Any]) -> models.MaskRecord:
    """Build a MaskRecord from a raw provider record.

    Missing or non-numeric bounds yield ``bounds=None``; a missing image
    yields ``image=None``. Nothing is raised here: the overlay manager
    decides what to do with incomplete records.
    """
    bounds = None
    raw_bounds = raw.get("bounds")
    if isinstance(raw_bounds, dict):
        try:
            bounds = models.GeoBounds(
                min_x=float(raw_bounds["minX"]),
                min_y=float(raw_bounds["minY"]),
                max_x=float(raw_bounds["maxX"]),
                max_y=float(raw_bounds["maxY"]),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Mask record has malformed bounds: %r", raw_bounds)

    crs = raw.get("crs", raw.get("epsg"))
    try:
        crs_code = int(crs) if crs is not None else None
    except (TypeError, ValueError):
        logger.warning("Mask record has malformed CRS: %r", crs)
        crs_code = None

    image = raw.get("image")
    return models.MaskRecord(
        bounds=bounds,
        crs=crs_code,
        image=image if isinstance(image, str) and image else None,
    )


class SegmentationProviderProtocol(Protocol):
    """Coverage and mask provider consumed by the engine."""

    async def get_scene_coverage(self, scene_id: str) -> models.CoverageReport: ...

    async def get_period_coverage(
        self,
        region_id: str,
        period: str,
    ) -> models.CoverageReport: ...

    async def get_scene_mask(
        self,
        scene_id: str,
        class_indices: str | None = None,
    ) -> models.MaskRecord: ...

    async def get_period_masks(
        self,
        region_id: str,
        period: str,
        colors: Mapping[str, str] | None = None,
        transparent_unlabeled: bool = True,
    ) -> list[models.MaskRecord]: ...


class HttpSegmentationProvider(SegmentationProviderProtocol):
    """SegmentationProviderProtocol implementation over httpx.

    Args:
        base_url: Base URL of the segmentation service.
        timeout: Per-request timeout in seconds.
        client: Pre-built client, mainly for tests. When given, its
            ``base_url`` is used and the provider does not own it.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: config.Settings) -> Self:
        return cls(
            base_url=str(settings.provider_base_url),
            timeout=settings.provider_timeout_seconds,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"{method} {path} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"{method} {path} returned invalid JSON") from exc

    async def get_scene_coverage(self, scene_id: str) -> models.CoverageReport:
        """Fetch per-class coverage of a scene.

        Raises:
            InvalidIdentifierError: If ``scene_id`` is not a UUID.
            ProviderError: If the request fails.
        """
        scene_id = validate_scene_id(scene_id)
        payload = await self._request("GET", f"{API_PREFIX}/coverage/{scene_id}")
        return coverage_filter.build_coverage_report(
            _expect_object(payload, "Scene coverage")
        )

    async def get_period_coverage(
        self,
        region_id: str,
        period: str,
    ) -> models.CoverageReport:
        """Fetch per-class coverage aggregated over a region and period."""
        validate_region_id(region_id)
        validate_period(period)
        payload = await self._request(
            "GET",
            f"{API_PREFIX}/coverage/regions/{region_id}/periods/{period}",
        )
        return coverage_filter.build_coverage_report(
            _expect_object(payload, "Period coverage")
        )

    async def get_scene_mask(
        self,
        scene_id: str,
        class_indices: str | None = None,
    ) -> models.MaskRecord:
        """Fetch the mask of a scene.

        Args:
            scene_id: Scene UUID.
            class_indices: Comma-separated numeric class indices to keep in
                the mask, None for every class.
        """
        scene_id = validate_scene_id(scene_id)
        params = {"class_ids": class_indices} if class_indices else None
        payload = await self._request(
            "GET",
            f"{API_PREFIX}/scenes/{scene_id}/mask",
            params=params,
        )
        return parse_mask_record(_expect_object(payload, "Scene mask"))

    async def get_period_masks(
        self,
        region_id: str,
        period: str,
        colors: Mapping[str, str] | None = None,
        transparent_unlabeled: bool = True,
    ) -> list[models.MaskRecord]:
        """Fetch the masks of every scene of a region and period.

        Args:
            region_id: Region identifier.
            period: Year-month bucket (``YYYY-MM``).
            colors: Optional class display name to color overrides.
            transparent_unlabeled: Render the unlabeled class transparent.
        """
        validate_region_id(region_id)
        validate_period(period)
        body: dict[str, Any] = {"transparent_unlabeled": transparent_unlabeled}
        if colors:
            body["colors"] = dict(colors)
        payload = await self._request(
            "POST",
            f"{API_PREFIX}/regions/{region_id}/periods/{period}/masks",
            json=body,
        )
        records = payload.get("masks", []) if isinstance(payload, Mapping) else payload
        if not isinstance(records, list):
            raise ProviderError(
                f"Period masks response has no mask list: {type(records).__name__}"
            )
        return [
            parse_mask_record(_expect_object(record, "Period mask"))
            for record in records
        ]
