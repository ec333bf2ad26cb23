"""Coordinate reference system reprojection backed by pyproj.

Official Polish boundary data (PRG) ships in the CS92 planar system
(EPSG:2180). Web map clients need WGS84 longitude/latitude, so boundary
rings are reprojected point by point at ingestion time.

A CRS is treated as an opaque capability: any definition accepted by
``pyproj.Transformer.from_crs`` (EPSG code, proj string, WKT) works.
Projection failures are not trapped here; a wrong definition is a
configuration bug that surfaces while preparing data.

Example:
    >>> from pinmap.geo import reproject
    >>> lng, lat = reproject.reproject_point(500000.0, 300000.0)
    >>> round(lng, 6)
    19.0
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING

import pyproj

from pinmap.geo import models as geo_models

if TYPE_CHECKING:
    from collections.abc import Iterable

POLAND_CS92 = (
    "+proj=tmerc +lat_0=0 +lon_0=19 +k=0.9993 +x_0=500000 +y_0=-5300000 "
    "+ellps=GRS80 +towgs84=0,0,0,0,0,0,0 +units=m +no_defs"
)
WGS84 = "+proj=longlat +datum=WGS84 +no_defs"


@functools.lru_cache
def get_transformer(source: str, target: str) -> pyproj.Transformer:
    """Cached transformer between two CRS definitions, always x/y order."""
    return pyproj.Transformer.from_crs(source, target, always_xy=True)


def reproject_point(
    x: float,
    y: float,
    source: str = POLAND_CS92,
    target: str = WGS84,
) -> geo_models.Position:
    """Project one ``(x, y)`` position; geographic output is ``(lng, lat)``."""
    px, py = get_transformer(source, target).transform(x, y)
    return float(px), float(py)


def reproject_ring(
    ring: Iterable[geo_models.Position],
    transformer: pyproj.Transformer,
) -> geo_models.Ring:
    """Project every position of a ring, preserving order and count."""
    return tuple(
        (float(px), float(py))
        for px, py in (transformer.transform(x, y) for x, y in ring)
    )


def _reproject_polygon(
    polygon: geo_models.Polygon, transformer: pyproj.Transformer
) -> geo_models.Polygon:
    return geo_models.Polygon(
        rings=tuple(reproject_ring(r, transformer) for r in polygon.rings)
    )


def reproject_geometry(
    geometry: geo_models.Geometry,
    source: str = POLAND_CS92,
    target: str = WGS84,
) -> geo_models.Geometry:
    """Reproject every ring of every polygon of a geometry.

    Args:
        geometry: Polygon or MultiPolygon in the source CRS.
        source: Source CRS definition (CS92 by default).
        target: Target CRS definition (WGS84 by default).

    Returns:
        Geometry of the same shape with projected coordinates. No
        deduplication or simplification is applied.
    """
    transformer = get_transformer(source, target)
    match geometry:
        case geo_models.Polygon():
            return _reproject_polygon(geometry, transformer)
        case geo_models.MultiPolygon(polygons=polygons):
            return geo_models.MultiPolygon(
                polygons=tuple(
                    _reproject_polygon(p, transformer) for p in polygons
                )
            )
