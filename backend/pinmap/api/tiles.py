"""XYZ tile serving for generated custom map pyramids.

Tiles are read from ``settings.tiles_dir/<map_id>/{z}/{x}/{y}.png``.
Tiles outside the image footprint were never written and return 404,
which map clients treat as an empty tile.

Example:
    Use in Leaflet:
        >>> L.tileLayer('/tiles/custom-1700000000000/{z}/{x}/{y}.png', {
        ...     minZoom: 8, maxNativeZoom: 14
        ... });
"""

import fastapi
from fastapi import responses

from pinmap.core import config
from pinmap.services import custom_map

router = fastapi.APIRouter(prefix="/tiles", tags=["tiles"])


@router.get("/{map_id}/{z}/{x}/{y}.png")
async def custom_map_tile(
    map_id: str,
    z: int,
    x: int,
    y: int,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> responses.FileResponse:
    """Serve one tile of a custom map.

    Args:
        map_id: Map identifier (``custom-<digits>``).
        z: Zoom level.
        x: Tile X coordinate.
        y: Tile Y coordinate.
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        PNG file response.

    Raises:
        HTTPException: If the map id is malformed or the tile does not
            exist (404 status code).
    """
    if not custom_map.is_valid_map_id(map_id) or min(z, x, y) < 0:
        raise fastapi.HTTPException(
            status_code=404,
            detail="Tile not found",
        )

    path = settings.tiles_dir / map_id / str(z) / str(x) / f"{y}.png"
    if not path.is_file():
        raise fastapi.HTTPException(
            status_code=404,
            detail="Tile not found",
        )

    return responses.FileResponse(path, media_type="image/png")
