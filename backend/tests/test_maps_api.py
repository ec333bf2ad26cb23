"""API endpoint tests for the /api/maps custom map endpoints.

Settings and the map repository are injected using dependency overrides:
settings point at a temporary directory and maps are registered in an
InMemoryMapRepository.
"""

from __future__ import annotations

import inspect
import io
from typing import TYPE_CHECKING

import pytest
from fastapi import testclient
from PIL import Image

from pinmap import main
from pinmap.api import maps as api_maps
from pinmap.core import config
from pinmap.db import database

if TYPE_CHECKING:
    from collections.abc import Iterator

BOUNDS_PARAMS = {
    "sw_lat": 50.0,
    "sw_lng": 19.0,
    "ne_lat": 50.01,
    "ne_lng": 19.01,
}


def _png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (200, 300), (10, 20, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def repo() -> database.InMemoryMapRepository:
    return database.InMemoryMapRepository()


@pytest.fixture
def client(
    settings: config.Settings, repo: database.InMemoryMapRepository
) -> Iterator[testclient.TestClient]:
    app = main.create_app()
    app.dependency_overrides[config.get_settings] = lambda: settings
    app.dependency_overrides[api_maps._get_repo] = lambda: repo
    try:
        yield testclient.TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _upload(client: testclient.TestClient, **params: object):
    return client.post(
        "/api/maps/upload",
        files={"file": ("plan.png", _png(), "image/png")},
        params={**BOUNDS_PARAMS, **params},
    )


def test_upload_generates_tiles(
    client: testclient.TestClient,
    settings: config.Settings,
    repo: database.InMemoryMapRepository,
) -> None:
    response = _upload(client)
    assert response.status_code == 200
    body = response.json()

    map_id = body["id"]
    assert map_id.startswith("custom-")
    assert body["min_zoom"] == 14
    assert body["max_zoom"] == 15
    assert body["tile_count"] > 0
    assert body["bounds"]["sw_lat"] < 50.0
    assert body["tile_url_template"] == f"/tiles/{map_id}/{{z}}/{{x}}/{{y}}.png"
    assert repo.get(map_id) is not None
    assert (settings.tiles_dir / map_id / "15").is_dir()


def test_upload_with_zoom_override(client: testclient.TestClient) -> None:
    response = _upload(client, min_zoom=15, max_zoom=15)
    assert response.status_code == 200
    assert response.json()["min_zoom"] == 15


def test_upload_rejects_non_image(client: testclient.TestClient) -> None:
    response = client.post(
        "/api/maps/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "File must be an image"


def test_upload_rejects_spoofed_type(client: testclient.TestClient) -> None:
    response = client.post(
        "/api/maps/upload",
        files={"file": ("plan.png", b"GIF89a....", "image/png")},
    )
    assert response.status_code == 400


def test_upload_rejects_undecodable_image(
    client: testclient.TestClient,
) -> None:
    response = client.post(
        "/api/maps/upload",
        files={"file": ("plan.png", b"\x89PNG broken", "image/png")},
        params=BOUNDS_PARAMS,
    )
    assert response.status_code == 400


def test_upload_rejects_partial_bounds(client: testclient.TestClient) -> None:
    response = client.post(
        "/api/maps/upload",
        files={"file": ("plan.png", _png(), "image/png")},
        params={"sw_lat": 50.0},
    )
    assert response.status_code == 400


def test_upload_too_large(
    settings: config.Settings, repo: database.InMemoryMapRepository
) -> None:
    small = settings.model_copy(update={"max_upload_size_bytes": 16})
    app = main.create_app()
    app.dependency_overrides[config.get_settings] = lambda: small
    app.dependency_overrides[api_maps._get_repo] = lambda: repo
    try:
        response = testclient.TestClient(app).post(
            "/api/maps/upload",
            files={"file": ("plan.png", _png(), "image/png")},
        )
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 413


def test_list_and_get_maps(client: testclient.TestClient) -> None:
    assert client.get("/api/maps").json() == []

    map_id = _upload(client).json()["id"]

    listing = client.get("/api/maps").json()
    assert [m["id"] for m in listing] == [map_id]
    assert client.get(f"/api/maps/{map_id}").json()["id"] == map_id
    assert client.get("/api/maps/custom-0").status_code == 404


def test_cleanup_keeps_latest_map(
    client: testclient.TestClient, settings: config.Settings
) -> None:
    first = _upload(client, min_zoom=15).json()["id"]
    second = _upload(client, min_zoom=15).json()["id"]

    response = client.post("/api/maps/cleanup")
    assert response.status_code == 200
    body = response.json()
    assert body["kept_map_id"] == second
    assert body["deleted_tiles"] == [first]
    assert body["deleted_maps"] == [f"{first}.png"]
    assert not (settings.tiles_dir / first).exists()
    assert (settings.tiles_dir / second).exists()


def test_cleanup_rejects_invalid_keep(client: testclient.TestClient) -> None:
    response = client.post("/api/maps/cleanup", params={"keep": "../x"})
    assert response.status_code == 400


def test_cleanup_route_runs_in_threadpool() -> None:
    """File deletion is blocking, so the handler must not be a coroutine."""
    assert not inspect.iscoroutinefunction(api_maps.cleanup_maps)
    assert not inspect.iscoroutinefunction(api_maps.upload_map)
