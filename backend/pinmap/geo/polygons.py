"""Bounding boxes and containment checks over boundary polygons.

Only the outer ring of each polygon takes part in containment: holes are
ignored, and a MultiPolygon contains a point when any of its polygons
does. Points lying exactly on an edge or vertex may go either way.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Literal

from pinmap.geo import models as geo_models

if TYPE_CHECKING:
    from collections.abc import Iterable

BoundaryType = Literal["rectangle", "polygon"]


def _outer_rings(
    geometry: geo_models.Geometry,
) -> Iterable[geo_models.Ring]:
    match geometry:
        case geo_models.Polygon():
            return [geometry.outer_ring]
        case geo_models.MultiPolygon(polygons=polygons):
            return [p.outer_ring for p in polygons]


def calculate_polygon_bounds(
    geometry: geo_models.Geometry,
) -> geo_models.BoundingBox:
    """Union bounding box of the outer ring(s).

    Args:
        geometry: Polygon or MultiPolygon in ``(lng, lat)`` order.

    Returns:
        Bounding box spanning every outer-ring position. When there are no
        positions the sentinel ``BoundingBox.empty()`` comes back
        unchanged, which callers treat as "no data".
    """
    min_lat = math.inf
    max_lat = -math.inf
    min_lng = math.inf
    max_lng = -math.inf

    for ring in _outer_rings(geometry):
        for lng, lat in ring:
            min_lat = min(min_lat, lat)
            max_lat = max(max_lat, lat)
            min_lng = min(min_lng, lng)
            max_lng = max(max_lng, lng)

    return geo_models.BoundingBox(
        sw_lat=min_lat,
        sw_lng=min_lng,
        ne_lat=max_lat,
        ne_lng=max_lng,
    )


def is_point_in_ring(lat: float, lng: float, ring: geo_models.Ring) -> bool:
    """Even-odd ray casting of a point against a single ring.

    A horizontal ray from the point toggles ``inside`` each time it
    crosses an edge ``(i, i - 1)`` east of the point.
    """
    if len(ring) < 3:
        return False

    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i]
        xj, yj = ring[j]
        crosses = (yi > lat) != (yj > lat)
        if crosses and lng < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def is_point_in_polygon(
    lat: float, lng: float, geometry: geo_models.Geometry
) -> bool:
    """Check whether a point lies inside a Polygon or any MultiPolygon part."""
    return any(
        is_point_in_ring(lat, lng, ring) for ring in _outer_rings(geometry)
    )


def is_within_bounds(
    lat: float,
    lng: float,
    boundary_type: BoundaryType,
    rectangle: geo_models.BoundingBox,
    polygon: geo_models.Geometry | None = None,
) -> bool:
    """Check a point against the configured map boundary.

    Args:
        lat: Point latitude.
        lng: Point longitude.
        boundary_type: "polygon" to use the traced boundary, "rectangle"
            for the plain bounding box.
        rectangle: Rectangle used for "rectangle" and as the fallback when
            no polygon is available.
        polygon: Traced boundary geometry.

    Returns:
        True if the point is inside the active boundary.
    """
    if boundary_type == "polygon" and polygon is not None:
        return is_point_in_polygon(lat, lng, polygon)

    return rectangle.contains(lat, lng)


def world_mask_ring(
    bounds: geo_models.BoundingBox, padding: float = 10.0
) -> geo_models.Ring:
    """Outer ring reaching ``padding`` degrees beyond ``bounds``.

    Used together with a boundary's rings as holes to shade everything
    outside the region. Positions are ``(lng, lat)``, clockwise from SW
    and closed.
    """
    south = bounds.sw_lat - padding
    west = bounds.sw_lng - padding
    north = bounds.ne_lat + padding
    east = bounds.ne_lng + padding
    return (
        (west, south),
        (west, north),
        (east, north),
        (east, south),
        (west, south),
    )
