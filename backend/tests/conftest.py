"""Shared fixtures for the API tests.

The segmentation provider and the color registry are injected with
``app.dependency_overrides`` so the routers run against in-memory doubles.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

import pytest
from fastapi import testclient

from landcover import main
from landcover.api import dependencies
from landcover.clients import segmentation
from landcover.db import database
from landcover.domain import models
from landcover.services import colors, coverage_filter

SCENE_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"

SCENE_PAYLOAD: dict[str, Any] = {
    "pixel_area_m2": 0.25,
    "coverage": [
        {"class_name": "Agua", "pixel_count": 100},
        {"class_name": "Sin etiqueta", "pixel_count": 300},
        {"class_name": "Césped", "pixel_count": 400},
        {"class_name": "Techo", "pixel_count": 200},
    ],
}


class StubProvider:
    """In-memory segmentation provider validating ids like the real one."""

    def __init__(self) -> None:
        self.coverage: dict[str, Mapping[str, Any]] = {SCENE_ID: SCENE_PAYLOAD}
        self.period_coverage: dict[str, Mapping[str, Any]] = {}
        self.scene_mask = models.MaskRecord(
            models.GeoBounds(min_x=-79.9, min_y=-2.2, max_x=-79.8, max_y=-2.1),
            4326,
            "data:image/png;base64,AAAA",
        )
        self.period_masks: list[models.MaskRecord] = [self.scene_mask]
        self.error: segmentation.ProviderError | None = None
        self.calls: list[tuple[str, Any]] = []

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def get_scene_coverage(self, scene_id: str) -> models.CoverageReport:
        segmentation.validate_scene_id(scene_id)
        self._check()
        return coverage_filter.build_coverage_report(self.coverage[scene_id])

    async def get_period_coverage(
        self,
        region_id: str,
        period: str,
    ) -> models.CoverageReport:
        segmentation.validate_region_id(region_id)
        segmentation.validate_period(period)
        self._check()
        return coverage_filter.build_coverage_report(self.period_coverage[period])

    async def get_scene_mask(
        self,
        scene_id: str,
        class_indices: str | None = None,
    ) -> models.MaskRecord:
        segmentation.validate_scene_id(scene_id)
        self.calls.append(("scene_mask", class_indices))
        self._check()
        return self.scene_mask

    async def get_period_masks(
        self,
        region_id: str,
        period: str,
        colors: Mapping[str, str] | None = None,
        transparent_unlabeled: bool = True,
    ) -> list[models.MaskRecord]:
        segmentation.validate_region_id(region_id)
        segmentation.validate_period(period)
        self.calls.append(("period_masks", (colors, transparent_unlabeled)))
        self._check()
        return list(self.period_masks)


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def registry() -> colors.ClassColorRegistry:
    return colors.ClassColorRegistry(database.InMemoryKeyValueStore())


@pytest.fixture
def client(
    provider: StubProvider,
    registry: colors.ClassColorRegistry,
) -> Iterator[testclient.TestClient]:
    """Test client whose provider and registry are the fixtures above."""
    app = main.create_app()
    app.dependency_overrides[dependencies.get_provider] = lambda: provider
    app.dependency_overrides[dependencies.get_color_registry] = lambda: registry
    try:
        yield testclient.TestClient(app)
    finally:
        app.dependency_overrides.clear()
