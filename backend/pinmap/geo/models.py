"""Value types shared by the Mercator, polygon and tiling code.

Coordinates follow GeoJSON order inside geometries: every ring position
is ``(lng, lat)``. Function signatures that take a single point use
``(lat, lng)`` like the map client does.

Example:
    Build a polygon from GeoJSON and read its outer ring:
        >>> from pinmap.geo import models as geo_models
        >>> square = geo_models.geometry_from_geojson({
        ...     "type": "Polygon",
        ...     "coordinates": [[[0, 0], [0, 10], [10, 10], [10, 0], [0, 0]]],
        ... })
        >>> square.outer_ring[1]
        (0.0, 10.0)
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Sequence
from typing import Any, NamedTuple

Position = tuple[float, float]
Ring = tuple[Position, ...]


class GeometryError(ValueError):
    """Raised when a GeoJSON object is not a Polygon or MultiPolygon."""


class LatLng(NamedTuple):
    lat: float
    lng: float


class TileCoord(NamedTuple):
    x: int
    y: int


class PixelCoord(NamedTuple):
    x: float
    y: float


class TileIndex(NamedTuple):
    """Identity of a tile file: ``{z}/{x}/{y}.png``."""

    z: int
    x: int
    y: int

    def path(self) -> str:
        return f"{self.z}/{self.x}/{self.y}.png"


@dataclasses.dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle given by its south-west and north-east corners.

    An empty scan result is represented by the sentinel box whose corners
    are ``+inf``/``-inf``; see ``empty()`` and ``is_empty``.

    Attributes:
        sw_lat: South-west corner latitude in degrees.
        sw_lng: South-west corner longitude in degrees.
        ne_lat: North-east corner latitude in degrees.
        ne_lng: North-east corner longitude in degrees.
    """

    sw_lat: float
    sw_lng: float
    ne_lat: float
    ne_lng: float

    @classmethod
    def empty(cls) -> BoundingBox:
        return cls(
            sw_lat=math.inf,
            sw_lng=math.inf,
            ne_lat=-math.inf,
            ne_lng=-math.inf,
        )

    @property
    def is_empty(self) -> bool:
        return not all(
            math.isfinite(v)
            for v in (self.sw_lat, self.sw_lng, self.ne_lat, self.ne_lng)
        )

    @property
    def is_valid(self) -> bool:
        """True when finite and of strictly positive area."""
        return (
            not self.is_empty
            and self.sw_lat < self.ne_lat
            and self.sw_lng < self.ne_lng
        )

    def center(self) -> LatLng:
        return LatLng(
            lat=(self.sw_lat + self.ne_lat) / 2,
            lng=(self.sw_lng + self.ne_lng) / 2,
        )

    def expanded(self, ratio: float) -> BoundingBox:
        """Grow every side by ``ratio`` of the box's own span.

        Args:
            ratio: Fraction of the latitude/longitude span added on each
                side (0.05 adds a 5% margin).

        Returns:
            A new, larger bounding box.
        """
        margin_lat = (self.ne_lat - self.sw_lat) * ratio
        margin_lng = (self.ne_lng - self.sw_lng) * ratio
        return BoundingBox(
            sw_lat=self.sw_lat - margin_lat,
            sw_lng=self.sw_lng - margin_lng,
            ne_lat=self.ne_lat + margin_lat,
            ne_lng=self.ne_lng + margin_lng,
        )

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.sw_lat <= lat <= self.ne_lat
            and self.sw_lng <= lng <= self.ne_lng
        )

    def to_leaflet(self) -> list[list[float]]:
        return [[self.sw_lat, self.sw_lng], [self.ne_lat, self.ne_lng]]

    def to_dict(self) -> dict[str, float]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True)
class Polygon:
    """A polygon as an ordered tuple of closed rings (outer ring first)."""

    rings: tuple[Ring, ...]

    @property
    def outer_ring(self) -> Ring:
        return self.rings[0] if self.rings else ()


@dataclasses.dataclass(frozen=True)
class MultiPolygon:
    """Independent polygons with no implied adjacency."""

    polygons: tuple[Polygon, ...]


Geometry = Polygon | MultiPolygon


def _to_position(pos: Any) -> Position:
    if (
        not isinstance(pos, Sequence)
        or isinstance(pos, str)
        or len(pos) < 2
        or not all(
            isinstance(v, int | float) and not isinstance(v, bool)
            for v in pos[:2]
        )
    ):
        raise GeometryError(f"Invalid position: {pos!r}")
    return float(pos[0]), float(pos[1])


def _to_ring(coordinates: Any) -> Ring:
    if not isinstance(coordinates, Sequence) or isinstance(coordinates, str):
        raise GeometryError(f"Invalid ring: {coordinates!r}")
    return tuple(_to_position(pos) for pos in coordinates)


def _to_polygon(coordinates: Any) -> Polygon:
    if not isinstance(coordinates, Sequence) or isinstance(coordinates, str):
        raise GeometryError(f"Invalid polygon: {coordinates!r}")
    return Polygon(rings=tuple(_to_ring(ring) for ring in coordinates))


def geometry_from_geojson(obj: dict[str, Any]) -> Geometry:
    """Parse a GeoJSON Polygon or MultiPolygon (bare or in a Feature).

    Args:
        obj: GeoJSON geometry or Feature mapping.

    Returns:
        Polygon or MultiPolygon.

    Raises:
        GeometryError: If the object is neither a Polygon nor MultiPolygon
            or its coordinates are not nested numeric positions.
    """
    if obj.get("type") == "Feature":
        geometry = obj.get("geometry")
        if not isinstance(geometry, dict):
            raise GeometryError("Feature has no geometry")
        obj = geometry

    match obj.get("type"):
        case "Polygon":
            return _to_polygon(obj.get("coordinates"))
        case "MultiPolygon":
            parts = obj.get("coordinates")
            if not isinstance(parts, Sequence) or isinstance(parts, str):
                raise GeometryError(f"Invalid MultiPolygon: {parts!r}")
            return MultiPolygon(polygons=tuple(_to_polygon(p) for p in parts))
        case other:
            raise GeometryError(f"Unsupported geometry type: {other!r}")


def _round_ring(ring: Ring, precision: int) -> list[list[float]]:
    return [[round(lng, precision), round(lat, precision)] for lng, lat in ring]


def geometry_to_geojson(
    geometry: Geometry, precision: int = 6
) -> dict[str, Any]:
    """Serialize a geometry to a GeoJSON mapping.

    Args:
        geometry: Polygon or MultiPolygon to serialize.
        precision: Decimal places kept for every coordinate.

    Returns:
        GeoJSON geometry dictionary.
    """
    match geometry:
        case Polygon(rings=rings):
            return {
                "type": "Polygon",
                "coordinates": [_round_ring(r, precision) for r in rings],
            }
        case MultiPolygon(polygons=polygons):
            return {
                "type": "MultiPolygon",
                "coordinates": [
                    [_round_ring(r, precision) for r in p.rings]
                    for p in polygons
                ],
            }


def coordinate_count(geometry: Geometry) -> int:
    """Total number of positions across every ring."""
    match geometry:
        case Polygon(rings=rings):
            return sum(len(r) for r in rings)
        case MultiPolygon(polygons=polygons):
            return sum(coordinate_count(p) for p in polygons)
