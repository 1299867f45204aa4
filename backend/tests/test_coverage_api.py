"""API endpoint tests for the coverage statistics endpoints.

These tests drive /api/coverage through a TestClient with the segmentation
provider replaced by an in-memory stub (see conftest.py), covering:
    - Unfiltered and filtered per-class views and their totals,
    - Category roll-ups including zero-area categories,
    - Period coverage and the comparison of two periods,
    - Translation of provider failures and malformed ids to HTTP errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from landcover.clients import segmentation

if TYPE_CHECKING:
    from fastapi import testclient

SCENE_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
SCENE_URL = f"/api/coverage/scenes/{SCENE_ID}"


def test_scene_coverage_unfiltered(client: testclient.TestClient) -> None:
    """Test the default view drops unlabeled and sorts by coverage."""
    response = client.get(SCENE_URL)
    assert response.status_code == 200
    body = response.json()
    assert body["scene_id"] == SCENE_ID
    assert [item["class_name"] for item in body["items"]] == [
        "Césped",
        "Techo",
        "Agua",
    ]
    assert body["total_pixels"] == 700
    assert body["total_area_m2"] == pytest.approx(175.0)
    assert body["pixel_area_m2"] == 0.25
    assert body["green_areas"]["area_m2"] == pytest.approx(100.0)
    assert body["green_areas"]["percentage"] == pytest.approx(40.0)
    assert body["dominant_classes"] == ["Césped", "Techo", "Agua"]


def test_scene_coverage_filtered_by_class(client: testclient.TestClient) -> None:
    """Test a class selection keeps matching items and recomputes totals."""
    response = client.get(SCENE_URL, params={"class_ids": ["grass"]})
    body = response.json()
    assert [item["class_id"] for item in body["items"]] == ["grass"]
    assert body["total_pixels"] == 400
    assert body["total_area_m2"] == pytest.approx(100.0)


def test_scene_coverage_filtered_by_category(client: testclient.TestClient) -> None:
    """Test a category selection expands to its member classes."""
    response = client.get(
        SCENE_URL,
        params={"class_ids": ["water", "infrastructure"], "selection": "categories"},
    )
    body = response.json()
    assert [item["class_name"] for item in body["items"]] == ["Techo", "Agua"]
    assert body["total_pixels"] == 300


def test_scene_coverage_rejects_unknown_selection(
    client: testclient.TestClient,
) -> None:
    """Test the selection kind is validated."""
    response = client.get(SCENE_URL, params={"selection": "zones"})
    assert response.status_code == 422


def test_scene_categories(client: testclient.TestClient) -> None:
    """Test every category is returned with renormalized percentages."""
    response = client.get(f"{SCENE_URL}/categories")
    assert response.status_code == 200
    body = response.json()
    categories = {c["category_id"]: c for c in body["categories"]}

    assert len(categories) == 6
    assert categories["vegetation"]["total_area_m2"] == pytest.approx(100.0)
    assert categories["vegetation"]["percentage_of_total"] == pytest.approx(
        100.0 / 175.0 * 100
    )
    assert categories["water"]["members"] == [
        {"class_name": "Agua", "area_m2": 25.0, "percentage_of_category": 100.0}
    ]
    assert categories["social"]["total_area_m2"] == 0.0
    assert body["matched_area_m2"] == pytest.approx(175.0)


def test_period_coverage(
    client: testclient.TestClient,
    provider,
) -> None:
    """Test coverage of a region over a period."""
    provider.period_coverage["2025-10"] = {
        "pixel_area_m2": 1.0,
        "coverage": [
            {"class_name": "Árbol", "pixel_count": 30},
            {"class_name": "Piscina", "pixel_count": 70},
        ],
    }
    response = client.get("/api/coverage/regions/campus/periods/2025-10")
    assert response.status_code == 200
    body = response.json()
    assert body["region_id"] == "campus"
    assert body["period"] == "2025-10"
    assert [item["class_id"] for item in body["items"]] == ["pool", "tree"]

    response = client.get("/api/coverage/regions/campus/periods/2025-10/categories")
    categories = {c["category_id"]: c for c in response.json()["categories"]}
    assert categories["water"]["percentage_of_total"] == pytest.approx(70.0)


def test_compare_periods(client: testclient.TestClient, provider) -> None:
    """Test the comparison of two periods of a region."""
    provider.period_coverage["2025-09"] = {
        "pixel_area_m2": 1.0,
        "coverage": [
            {"class_name": "Césped", "pixel_count": 320},
            {"class_name": "Techo", "pixel_count": 680},
        ],
    }
    provider.period_coverage["2025-10"] = {
        "pixel_area_m2": 1.0,
        "coverage": [
            {"class_name": "Césped", "pixel_count": 350},
            {"class_name": "Techo", "pixel_count": 650},
        ],
    }
    response = client.get(
        "/api/coverage/regions/campus/compare",
        params={"previous": "2025-09", "current": "2025-10"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["green_percentage_point_delta"] == pytest.approx(3.0)
    assert body["previous_green"]["percentage"] == pytest.approx(32.0)
    deltas = {d["category_id"]: d for d in body["categories"]}
    assert deltas["vegetation"]["area_delta_m2"] == pytest.approx(30.0)


def test_malformed_scene_id_is_bad_request(client: testclient.TestClient) -> None:
    """Test a non-UUID scene id maps to 400."""
    response = client.get("/api/coverage/scenes/not-a-scene")
    assert response.status_code == 400


def test_malformed_period_is_bad_request(client: testclient.TestClient) -> None:
    """Test a malformed period maps to 400."""
    response = client.get("/api/coverage/regions/campus/periods/2025-13")
    assert response.status_code == 400


def test_provider_failure_is_bad_gateway(
    client: testclient.TestClient,
    provider,
) -> None:
    """Test segmentation service failures map to 502."""
    provider.error = segmentation.ProviderError("GET coverage returned 503")
    response = client.get(SCENE_URL)
    assert response.status_code == 502
    assert response.json()["detail"] == "Segmentation service unavailable"


def test_malformed_coverage_entry_is_excluded(
    client: testclient.TestClient,
    provider,
) -> None:
    """Test an entry with a non-numeric count is dropped, not a 500."""
    provider.coverage[SCENE_ID] = {
        "pixel_area_m2": 1.0,
        "coverage": [
            {"class_name": "Agua", "pixel_count": "n/a"},
            {"class_name": "Techo", "pixel_count": 40},
        ],
    }
    response = client.get(SCENE_URL)
    assert response.status_code == 200
    assert [item["class_name"] for item in response.json()["items"]] == ["Techo"]
