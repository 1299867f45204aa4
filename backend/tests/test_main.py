"""Tests for the FastAPI main application factory and health checks.

This module validates that:
    - The FastAPI app is correctly instantiated via main.create_app,
    - OpenAPI metadata (title, version) matches the project contract,
    - The coverage, colors and masks routers are registered,
    - The /health endpoint returns the expected response.
"""

from __future__ import annotations

from typing import cast

from fastapi import testclient

from landcover import main


def test_create_app() -> None:
    """Test that create_app returns a configured FastAPI instance."""
    app = main.create_app()
    assert app.title == "Land Cover Viewer"
    assert app.version == "0.1.0"


def test_health_endpoint() -> None:
    """Test the health check endpoint returns ok status."""
    client = testclient.TestClient(main.create_app())
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_app_includes_routers() -> None:
    """Test that all API routers are included in the app."""
    app = main.create_app()
    routes: list[str] = [
        cast(str, getattr(route, "path", ""))
        for route in app.routes  # type: ignore[attr-defined]
        if hasattr(route, "path")
    ]
    assert "/health" in routes
    assert "/api/coverage/scenes/{scene_id}" in routes
    assert "/api/colors/rendering" in routes
    assert "/api/masks/regions/{region_id}/periods/{period}" in routes
