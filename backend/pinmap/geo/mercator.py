"""Web Mercator conversions between lat/lng, tile indices and pixels.

Implements the standard Slippy-Map (OSM/Google) scheme: at zoom ``z`` the
world is a ``2**z x 2**z`` grid of 256 px tiles, ``x`` counted eastwards
from the antimeridian and ``y`` southwards from the north edge.

Latitudes must stay inside the Mercator range (about +/-85.05 degrees);
the formulas diverge at the poles and no clamping is done here.

Example:
    >>> from pinmap.geo import mercator
    >>> mercator.lat_lng_to_tile(50.0, 19.0, 15)
    TileCoord(x=18113, y=11113)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pinmap.geo import models as geo_models

if TYPE_CHECKING:
    TileRange = tuple[int, int, int, int]

TILE_SIZE = 256


def _mercator_fraction(lat: float, lng: float) -> tuple[float, float]:
    """Position in the unit world square, both axes in [0, 1]."""
    lat_rad = math.radians(lat)
    fx = (lng + 180.0) / 360.0
    fy = (
        1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi
    ) / 2.0
    return fx, fy


def lat_lng_to_tile(lat: float, lng: float, zoom: int) -> geo_models.TileCoord:
    """Tile containing a point at the given zoom."""
    n = 2**zoom
    fx, fy = _mercator_fraction(lat, lng)
    return geo_models.TileCoord(x=math.floor(fx * n), y=math.floor(fy * n))


def tile_to_lat_lng(x: int, y: int, zoom: int) -> geo_models.LatLng:
    """North-west corner of tile ``(x, y)``."""
    n = 2**zoom
    lng = x / n * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y / n))))
    return geo_models.LatLng(lat=lat, lng=lng)


def lat_lng_to_pixel(
    lat: float, lng: float, zoom: int
) -> geo_models.PixelCoord:
    """Continuous pixel position in the ``256 * 2**zoom`` world canvas."""
    world = 2**zoom * TILE_SIZE
    fx, fy = _mercator_fraction(lat, lng)
    return geo_models.PixelCoord(x=fx * world, y=fy * world)


def tile_range(bounds: geo_models.BoundingBox, zoom: int) -> TileRange:
    """Inclusive tile index range spanned by a bounding box.

    Corner order is not preserved in tile space (``y`` grows southwards),
    so the range is the min/max of both corners' indices.

    Returns:
        Tuple of (min_x, max_x, min_y, max_y).
    """
    sw = lat_lng_to_tile(bounds.sw_lat, bounds.sw_lng, zoom)
    ne = lat_lng_to_tile(bounds.ne_lat, bounds.ne_lng, zoom)
    return (
        min(sw.x, ne.x),
        max(sw.x, ne.x),
        min(sw.y, ne.y),
        max(sw.y, ne.y),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    Used for every pixel offset and size so that neighbouring tiles agree
    on where the image starts and ends.
    """
    return math.floor(value + 0.5)
