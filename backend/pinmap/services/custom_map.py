"""Custom map uploads: validation, tile generation and cleanup.

An uploaded image replaces the base map inside the configured map area.
Its bounds are widened by a small margin so the image edges do not line
up with the area border, the original is kept as PNG and a tile pyramid
is generated for the configured zoom range. Only one custom map is in
use at a time; ``cleanup_unused`` removes the files of all others.

Example:
    Register an upload from raw bytes:
        >>> from pinmap.core.config import get_settings
        >>> from pinmap.services import custom_map

        >>> settings = get_settings()
        >>> data = open("plan.jpg", "rb").read()
        >>> custom_map.validate_image_signature(data, "image/jpeg")
        True
        >>> record = custom_map.create_custom_map(
        ...     data, settings.map_bounds, settings
        ... )
        >>> record.tile_url_template
        '/tiles/custom-1700000000000/{z}/{x}/{y}.png'
"""

from __future__ import annotations

import dataclasses
import logging
import re
import shutil
import time
from typing import TYPE_CHECKING

from pinmap.db import models as db_models
from pinmap.services import tile_pyramid

if TYPE_CHECKING:
    from pinmap.core import config
    from pinmap.geo import models as geo_models

logger = logging.getLogger(__name__)

MAP_ID_PATTERN = re.compile(r"^custom-\d+$")

IMAGE_SIGNATURES: dict[str, bytes] = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89PNG",
    "image/gif": b"GIF",
    "image/webp": b"RIFF",
}


@dataclasses.dataclass
class CleanupResult:
    """Files removed by ``cleanup_unused``.

    Attributes:
        kept_map_id: Map whose files were preserved, if any.
        deleted_maps: File names removed from the maps directory.
        deleted_tiles: Tile directory names removed.
    """

    kept_map_id: str | None
    deleted_maps: list[str] = dataclasses.field(default_factory=list)
    deleted_tiles: list[str] = dataclasses.field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Cleanup complete. Deleted {len(self.deleted_maps)} map files "
            f"and {len(self.deleted_tiles)} tile directories."
        )


def validate_image_signature(data: bytes, content_type: str | None) -> bool:
    """Check the leading magic bytes of an uploaded image.

    Args:
        data: Raw upload.
        content_type: Declared MIME type. When it is not one of the known
            image types any known signature is accepted.

    Returns:
        True if the bytes start with the signature of the declared type.
    """
    signature = IMAGE_SIGNATURES.get(content_type or "")
    if signature is None:
        return any(data.startswith(sig) for sig in IMAGE_SIGNATURES.values())
    return data.startswith(signature)


def is_valid_map_id(map_id: str) -> bool:
    return MAP_ID_PATTERN.match(map_id) is not None


def _reserve_map_id(settings: config.Settings) -> str:
    """Pick a free ``custom-<ms>`` id and create its tile directory.

    ``mkdir`` without ``exist_ok`` is the reservation: concurrent uploads
    in the same millisecond cannot both claim one id.
    """
    settings.tiles_dir.mkdir(parents=True, exist_ok=True)
    millis = time.time_ns() // 1_000_000
    while True:
        map_id = f"custom-{millis}"
        millis += 1
        if (settings.maps_dir / f"{map_id}.png").exists():
            continue
        try:
            (settings.tiles_dir / map_id).mkdir()
        except FileExistsError:
            continue
        return map_id


def create_custom_map(
    image: bytes,
    bounds: geo_models.BoundingBox,
    settings: config.Settings,
    min_zoom: int | None = None,
    max_zoom: int | None = None,
) -> db_models.CustomMap:
    """Store an uploaded image and build its tile pyramid.

    Args:
        image: Encoded image bytes (JPEG, PNG, GIF or WebP).
        bounds: Map area the image depicts, before the margin is added.
        settings: Application settings (directories, zooms, margin).
        min_zoom: Coarsest zoom, ``settings.tile_min_zoom`` by default.
        max_zoom: Finest zoom, ``settings.tile_max_zoom`` by default.

    Returns:
        CustomMap record describing the generated pyramid.

    Raises:
        ValueError: If the bounds have no area or the zoom range is
            invalid.
        TileGenerationError: If the image cannot be decoded.
    """
    if not bounds.is_valid:
        raise ValueError(f"Invalid map bounds: {bounds.to_dict()}")
    min_zoom = settings.tile_min_zoom if min_zoom is None else min_zoom
    max_zoom = settings.tile_max_zoom if max_zoom is None else max_zoom
    if min_zoom < 0 or min_zoom > max_zoom:
        raise ValueError(f"Invalid zoom range {min_zoom}-{max_zoom}")

    decoded = tile_pyramid.load_image(image)
    expanded = bounds.expanded(settings.bounds_margin_ratio)
    map_id = _reserve_map_id(settings)

    settings.maps_dir.mkdir(parents=True, exist_ok=True)
    source_path = settings.maps_dir / f"{map_id}.png"
    decoded.save(source_path, format="PNG")
    logger.info("Stored original image for %s at %s", map_id, source_path)

    tiles_path = settings.tiles_dir / map_id
    result = tile_pyramid.generate_tiles(
        decoded,
        expanded,
        min_zoom,
        max_zoom,
        tiles_path,
        compress_level=settings.tile_compress_level,
    )

    return db_models.CustomMap(
        id=map_id,
        source=str(source_path),
        bounds=expanded,
        min_zoom=min_zoom,
        max_zoom=max_zoom,
        tiles_path=str(tiles_path),
        tile_url_template=f"/tiles/{map_id}/{{z}}/{{x}}/{{y}}.png",
        tile_count=result.tile_count,
        failed_tiles=len(result.failed_tiles),
    )


def cleanup_unused(
    settings: config.Settings, keep_map_id: str | None
) -> CleanupResult:
    """Delete stored originals and tile directories of every other map.

    Args:
        settings: Application settings (maps and tiles directories).
        keep_map_id: Map currently in use; None deletes everything.

    Returns:
        CleanupResult listing the removed entries.
    """
    result = CleanupResult(kept_map_id=keep_map_id)

    if settings.maps_dir.is_dir():
        for path in sorted(settings.maps_dir.iterdir()):
            if path.is_file() and path.stem != keep_map_id:
                path.unlink()
                result.deleted_maps.append(path.name)
                logger.info("Deleted unused map file %s", path.name)

    if settings.tiles_dir.is_dir():
        for path in sorted(settings.tiles_dir.iterdir()):
            if path.is_dir() and path.name != keep_map_id:
                shutil.rmtree(path)
                result.deleted_tiles.append(path.name)
                logger.info("Deleted unused tile directory %s", path.name)

    logger.info(result.message)
    return result
