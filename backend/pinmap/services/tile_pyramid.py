"""Cut a georeferenced raster image into a Slippy-Map tile pyramid.

The source image is assumed to cover ``bounds`` exactly, stretched
linearly in Web Mercator pixel space. For every zoom level from
``max_zoom`` down to ``min_zoom`` the image is scaled, the tiles it
overlaps are enumerated and each tile receives the matching part of the
image on a transparent 256 x 256 canvas. Edge tiles are therefore
partially transparent.

Tiles are written as ``{output_dir}/{z}/{x}/{y}.png``. A failing tile is
logged and recorded, and generation continues with the next one. Only an
undecodable source image aborts the run.

Example:
    Generate zooms 8 to 14 for an uploaded map:
        >>> from pathlib import Path
        >>> from pinmap.geo.models import BoundingBox
        >>> from pinmap.services.tile_pyramid import generate_tiles

        >>> result = generate_tiles(
        ...     source=Path("/uploads/maps/custom-1.png"),
        ...     bounds=BoundingBox(49.5, 19.0, 49.7, 19.3),
        ...     min_zoom=8,
        ...     max_zoom=14,
        ...     output_dir=Path("/tiles/custom-1"),
        ... )
        >>> result.tile_count
        412
"""

from __future__ import annotations

import dataclasses
import io
import logging
from typing import TYPE_CHECKING

from PIL import Image

from pinmap.geo import mercator
from pinmap.geo import models as geo_models

if TYPE_CHECKING:
    import pathlib

    Source = bytes | pathlib.Path | Image.Image

logger = logging.getLogger(__name__)

TILE_SIZE = mercator.TILE_SIZE


class TileGenerationError(RuntimeError):
    """Raised when the source image cannot be decoded."""


@dataclasses.dataclass
class TilePyramidResult:
    """Outcome of a tile generation run.

    Attributes:
        output_dir: Root directory the tiles were written under.
        tiles: Tiles written, in generation order.
        failed_tiles: Tiles that raised while being produced.
        min_zoom: Coarsest requested zoom.
        max_zoom: Finest requested zoom.
    """

    output_dir: pathlib.Path
    min_zoom: int
    max_zoom: int
    tiles: list[geo_models.TileIndex] = dataclasses.field(
        default_factory=list
    )
    failed_tiles: list[geo_models.TileIndex] = dataclasses.field(
        default_factory=list
    )

    @property
    def tile_count(self) -> int:
        return len(self.tiles)

    def zoom_levels(self) -> list[int]:
        """Zoom levels for which at least one tile was written."""
        return sorted({tile.z for tile in self.tiles})


def load_image(source: Source) -> Image.Image:
    """Decode a source image into RGBA.

    Args:
        source: Encoded image bytes, a path to an image file or an
            already opened PIL image.

    Returns:
        Fully loaded RGBA image.

    Raises:
        TileGenerationError: If the data is not a decodable image.
    """
    if isinstance(source, Image.Image):
        return source.convert("RGBA")
    try:
        if isinstance(source, bytes):
            image = Image.open(io.BytesIO(source))
        else:
            image = Image.open(source)
        image.load()
    except (OSError, Image.DecompressionBombError) as exc:
        raise TileGenerationError(f"Cannot decode image: {exc}") from exc
    return image.convert("RGBA")


def _pixel_rect(
    bounds: geo_models.BoundingBox, zoom: int
) -> tuple[float, float, float, float]:
    """World-pixel rectangle (left, top, right, bottom) of a bounding box."""
    sw = mercator.lat_lng_to_pixel(bounds.sw_lat, bounds.sw_lng, zoom)
    ne = mercator.lat_lng_to_pixel(bounds.ne_lat, bounds.ne_lng, zoom)
    return (
        min(sw.x, ne.x),
        min(sw.y, ne.y),
        max(sw.x, ne.x),
        max(sw.y, ne.y),
    )


def _render_tile(
    scaled: Image.Image,
    image_rect: tuple[float, float, float, float],
    tile: geo_models.TileIndex,
) -> Image.Image | None:
    """Compose one tile, or None when the image does not reach into it."""
    nw = mercator.tile_to_lat_lng(tile.x, tile.y, tile.z)
    se = mercator.tile_to_lat_lng(tile.x + 1, tile.y + 1, tile.z)
    nw_px = mercator.lat_lng_to_pixel(nw.lat, nw.lng, tile.z)
    se_px = mercator.lat_lng_to_pixel(se.lat, se.lng, tile.z)

    img_left, img_top, img_right, img_bottom = image_rect
    left = max(nw_px.x, img_left)
    top = max(nw_px.y, img_top)
    right = min(se_px.x, img_right)
    bottom = min(se_px.y, img_bottom)
    if right <= left or bottom <= top:
        return None

    round_ = mercator.round_half_up
    tile_x = round_(left - nw_px.x)
    tile_y = round_(top - nw_px.y)
    src_x = round_(left - img_left)
    src_y = round_(top - img_top)
    width = min(
        round_(right - left), scaled.width - src_x, TILE_SIZE - tile_x
    )
    height = min(
        round_(bottom - top), scaled.height - src_y, TILE_SIZE - tile_y
    )
    if width <= 0 or height <= 0:
        return None

    part = scaled.crop((src_x, src_y, src_x + width, src_y + height))
    canvas = Image.new("RGBA", (TILE_SIZE, TILE_SIZE), (0, 0, 0, 0))
    canvas.alpha_composite(part, dest=(tile_x, tile_y))
    return canvas


def generate_tiles(
    source: Source,
    bounds: geo_models.BoundingBox,
    min_zoom: int,
    max_zoom: int,
    output_dir: pathlib.Path,
    compress_level: int = 6,
) -> TilePyramidResult:
    """Generate a tile pyramid for an image anchored to ``bounds``.

    The image is first resized with LANCZOS to its pixel footprint at
    ``max_zoom``. Every coarser level is resized from that master by a
    factor of two per level, so all levels share one resampling base.

    Args:
        source: Image bytes, path, or PIL image.
        bounds: Geographic extent the image covers.
        min_zoom: Coarsest zoom to generate.
        max_zoom: Finest zoom to generate.
        output_dir: Root directory for ``{z}/{x}/{y}.png`` files.
        compress_level: zlib level for PNG output (0-9).

    Returns:
        TilePyramidResult listing written and failed tiles.

    Raises:
        ValueError: If the zoom range is inverted or negative.
        TileGenerationError: If the image cannot be decoded.
    """
    if min_zoom < 0 or max_zoom < 0:
        raise ValueError("Zoom levels must not be negative")
    if min_zoom > max_zoom:
        raise ValueError(
            f"min_zoom ({min_zoom}) is greater than max_zoom ({max_zoom})"
        )

    result = TilePyramidResult(
        output_dir=output_dir, min_zoom=min_zoom, max_zoom=max_zoom
    )
    image = load_image(source)
    if not bounds.is_valid:
        logger.warning(
            "Bounds %s have no area, no tiles written", bounds.to_dict()
        )
        return result

    left, top, right, bottom = _pixel_rect(bounds, max_zoom)
    master_width = mercator.round_half_up(right - left)
    master_height = mercator.round_half_up(bottom - top)
    if master_width < 1 or master_height < 1:
        logger.warning(
            "Bounds %s cover less than one pixel at zoom %d, no tiles written",
            bounds.to_dict(),
            max_zoom,
        )
        return result

    logger.info(
        "Generating tiles z%d-z%d from %dx%d image (master %dx%d) into %s",
        min_zoom,
        max_zoom,
        image.width,
        image.height,
        master_width,
        master_height,
        output_dir,
    )
    master = image.resize(
        (master_width, master_height), Image.Resampling.LANCZOS
    )

    for zoom in range(max_zoom, min_zoom - 1, -1):
        factor = 2 ** (max_zoom - zoom)
        width = mercator.round_half_up(master_width / factor)
        height = mercator.round_half_up(master_height / factor)
        if width < 1 or height < 1:
            logger.debug("Image vanishes at zoom %d, skipping", zoom)
            continue

        if factor == 1:
            scaled = master
        else:
            scaled = master.resize((width, height), Image.Resampling.LANCZOS)
        image_rect = _pixel_rect(bounds, zoom)
        min_x, max_x, min_y, max_y = mercator.tile_range(bounds, zoom)

        written = 0
        for x in range(min_x, max_x + 1):
            for y in range(min_y, max_y + 1):
                tile = geo_models.TileIndex(z=zoom, x=x, y=y)
                try:
                    canvas = _render_tile(scaled, image_rect, tile)
                    if canvas is None:
                        continue
                    path = output_dir / tile.path()
                    path.parent.mkdir(parents=True, exist_ok=True)
                    canvas.save(
                        path, format="PNG", compress_level=compress_level
                    )
                except Exception:
                    logger.exception("Failed to generate tile %s", tile.path())
                    result.failed_tiles.append(tile)
                    continue
                result.tiles.append(tile)
                written += 1

        logger.info("Zoom %d: %d tiles", zoom, written)

    logger.info(
        "Generated %d tiles (%d failed)",
        result.tile_count,
        len(result.failed_tiles),
    )
    return result
