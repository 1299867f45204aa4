"""Shared FastAPI dependencies and error translation for the routers."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable

import fastapi

from landcover.clients import segmentation
from landcover.core import config
from landcover.db import database
from landcover.services import colors

logger = logging.getLogger(__name__)


async def provider_call[T](awaitable: Awaitable[T]) -> T:
    """Await a provider call, mapping its failures to HTTP errors.

    Raises:
        HTTPException: 400 for malformed identifiers, 502 when the
            segmentation service fails.
    """
    try:
        return await awaitable
    except segmentation.InvalidIdentifierError as exc:
        raise fastapi.HTTPException(status_code=400, detail=str(exc)) from exc
    except segmentation.ProviderError as exc:
        logger.warning("Segmentation provider failure: %s", exc)
        raise fastapi.HTTPException(
            status_code=502,
            detail="Segmentation service unavailable",
        ) from exc


async def get_provider(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> AsyncIterator[segmentation.SegmentationProviderProtocol]:
    """Resolve the segmentation provider dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Yields:
        HttpSegmentationProvider closed once the request is served.
    """
    provider = segmentation.HttpSegmentationProvider.from_settings(settings)
    try:
        yield provider
    finally:
        await provider.aclose()


def get_color_registry(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> colors.ClassColorRegistry:
    """Resolve the color registry dependency.

    An unreachable store does not fail the request here: the registry
    starts with empty override tables and only writes report the error.
    """
    return colors.ClassColorRegistry(database.get_key_value_store(settings))
