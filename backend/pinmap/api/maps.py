"""Custom map upload and management API endpoints.

An uploaded image is validated, stored and cut into a tile pyramid
anchored to the configured map area (or bounds passed as query
parameters). The newest map is the one in use; cleanup removes the files
of every other map.

Example:
    Upload a map image:
        >>> response = client.post(
        ...     "/api/maps/upload",
        ...     files={"file": ("plan.png", open("plan.png", "rb"), "image/png")},
        ... )
        >>> response.json()["tile_url_template"]
        '/tiles/custom-1700000000000/{z}/{x}/{y}.png'

    Remove files of maps that are no longer used:
        >>> client.post("/api/maps/cleanup").json()["deleted_tiles"]
        ['custom-1690000000000']
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

import fastapi

from pinmap.core import config
from pinmap.db import database
from pinmap.geo import models as geo_models
from pinmap.services import custom_map, tile_pyramid

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/api/maps", tags=["maps"])

_CHUNK_SIZE = 1024 * 1024


def _get_repo(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> database.MapRepositoryProtocol:
    """Resolve the map repository dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        MapRepositoryProtocol implementation
            (JsonMapRepository in production).
    """
    return database.get_map_repository(settings)


def _read_upload(file: fastapi.UploadFile, max_size: int) -> bytes:
    """Read an upload into memory, enforcing the size limit.

    Raises:
        HTTPException: If the file exceeds ``max_size`` bytes (413).
    """
    data = bytearray()
    for chunk in iter(lambda: file.file.read(_CHUNK_SIZE), b""):
        data.extend(chunk)
        if len(data) > max_size:
            raise fastapi.HTTPException(
                status_code=413,
                detail="Upload too large",
            )
    return bytes(data)


def _resolve_bounds(
    settings: config.Settings,
    sw_lat: float | None,
    sw_lng: float | None,
    ne_lat: float | None,
    ne_lng: float | None,
) -> geo_models.BoundingBox:
    corners = (sw_lat, sw_lng, ne_lat, ne_lng)
    if all(v is None for v in corners):
        return settings.map_bounds
    if any(v is None for v in corners):
        raise fastapi.HTTPException(
            status_code=400,
            detail="Provide all of sw_lat, sw_lng, ne_lat, ne_lng or none",
        )
    return geo_models.BoundingBox(*corners)  # type: ignore[arg-type]


@router.post("/upload")
def upload_map(
    file: fastapi.UploadFile,
    sw_lat: float | None = None,
    sw_lng: float | None = None,
    ne_lat: float | None = None,
    ne_lng: float | None = None,
    min_zoom: int | None = None,
    max_zoom: int | None = None,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.MapRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Upload an image and generate its tile pyramid.

    Args:
        file: Image from multipart form data (JPEG, PNG, GIF or WebP).
        sw_lat: South-west latitude; with the other corners overrides the
            configured map area.
        sw_lng: South-west longitude.
        ne_lat: North-east latitude.
        ne_lng: North-east longitude.
        min_zoom: Coarsest zoom (default ``settings.tile_min_zoom``).
        max_zoom: Finest zoom (default ``settings.tile_max_zoom``).
        settings: Application settings (injected via FastAPI Depends).
        repo: Map repository (injected via FastAPI Depends).

    Returns:
        The registered CustomMap as a dictionary.

    Raises:
        HTTPException: 400 if the file is not a valid image or the bounds
            or zooms are invalid, 413 if it exceeds the upload limit.
    """
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise fastapi.HTTPException(
            status_code=400,
            detail="File must be an image",
        )

    data = _read_upload(file, settings.max_upload_size_bytes)
    if not custom_map.validate_image_signature(data, content_type):
        raise fastapi.HTTPException(
            status_code=400,
            detail="File content does not match an image format",
        )

    bounds = _resolve_bounds(settings, sw_lat, sw_lng, ne_lat, ne_lng)
    try:
        record = custom_map.create_custom_map(
            data, bounds, settings, min_zoom=min_zoom, max_zoom=max_zoom
        )
    except tile_pyramid.TileGenerationError as exc:
        raise fastapi.HTTPException(status_code=400, detail=str(exc)) from exc
    except ValueError as exc:
        raise fastapi.HTTPException(status_code=400, detail=str(exc)) from exc

    repo.add(record)
    logger.info(
        "Registered %s (%d tiles, %d failed)",
        record.id,
        record.tile_count,
        record.failed_tiles,
    )
    return record.to_dict()


@router.get("")
async def list_maps(
    repo: database.MapRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> list[dict[str, Any]]:
    """List registered custom maps, newest first."""
    return [m.to_dict() for m in repo.all()]


@router.get("/{map_id}")
async def get_map(
    map_id: str,
    repo: database.MapRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Get a single custom map record.

    Raises:
        HTTPException: If the map is not found (404 status code).
    """
    record = repo.get(map_id)
    if record is None:
        raise fastapi.HTTPException(
            status_code=404,
            detail="Map not found",
        )
    return record.to_dict()


@router.post("/cleanup")
def cleanup_maps(
    keep: str | None = None,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.MapRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Delete stored images and tiles of every map except the one in use.

    Args:
        keep: Map to preserve; defaults to the newest registered map.
        settings: Application settings (injected via FastAPI Depends).
        repo: Map repository (injected via FastAPI Depends).

    Returns:
        Dictionary with the kept map id, deleted entries and a message.
    """
    if keep is None:
        latest = repo.latest()
        keep = latest.id if latest is not None else None
    elif not custom_map.is_valid_map_id(keep):
        raise fastapi.HTTPException(
            status_code=400,
            detail="Invalid map id",
        )

    result = custom_map.cleanup_unused(settings, keep)
    return {**dataclasses.asdict(result), "message": result.message}
