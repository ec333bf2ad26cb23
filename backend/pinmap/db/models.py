"""Data models for custom maps and boundary regions.

This module defines the records passed between the services, the
repositories and the API. A CustomMap describes one generated tile
pyramid; a BoundaryRegion is a named administrative boundary in WGS84.

Example:
    Creating a CustomMap after tile generation:
        >>> from pinmap.db.models import CustomMap
        >>> from pinmap.geo.models import BoundingBox
        >>> custom_map = CustomMap(
        ...     id="custom-1700000000000",
        ...     source="/uploads/maps/custom-1700000000000.png",
        ...     bounds=BoundingBox(49.5, 19.0, 49.7, 19.3),
        ...     min_zoom=8,
        ...     max_zoom=14,
        ...     tiles_path="/tiles/custom-1700000000000",
        ...     tile_url_template="/tiles/custom-1700000000000/{z}/{x}/{y}.png",
        ...     tile_count=412,
        ... )
"""

from __future__ import annotations

import dataclasses
import datetime
from typing import Any, Literal

from pinmap.geo import models as geo_models
from pinmap.geo import polygons

Category = Literal["gmina", "lgd", "powiat", "wojewodztwo", "custom"]


def _now() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.UTC)


@dataclasses.dataclass
class CustomMap:
    """A raster map image cut into a Slippy-Map tile pyramid.

    Attributes:
        id: Map identifier, ``custom-<epoch milliseconds>``.
        source: Path of the stored original image.
        bounds: Bounding box the image is anchored to (margin included).
        min_zoom: Coarsest generated zoom level.
        max_zoom: Finest generated zoom level.
        tiles_path: Directory holding ``{z}/{x}/{y}.png`` files.
        tile_url_template: URL template for a tile layer client.
        tile_count: Number of tiles written.
        failed_tiles: Number of tiles skipped because of errors.
        created_at: Timestamp when the map was registered.
    """

    id: str
    source: str
    bounds: geo_models.BoundingBox
    min_zoom: int
    max_zoom: int
    tiles_path: str
    tile_url_template: str
    tile_count: int
    failed_tiles: int = 0
    created_at: datetime.datetime = dataclasses.field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        result = dataclasses.asdict(self)
        result["created_at"] = self.created_at.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomMap:
        return cls(
            id=str(data["id"]),
            source=str(data["source"]),
            bounds=geo_models.BoundingBox(**data["bounds"]),
            min_zoom=int(data["min_zoom"]),
            max_zoom=int(data["max_zoom"]),
            tiles_path=str(data["tiles_path"]),
            tile_url_template=str(data["tile_url_template"]),
            tile_count=int(data["tile_count"]),
            failed_tiles=int(data.get("failed_tiles", 0)),
            created_at=datetime.datetime.fromisoformat(data["created_at"]),
        )


@dataclasses.dataclass
class BoundaryRegion:
    """A named administrative boundary in WGS84.

    Attributes:
        id: Slug identifier (e.g. "jelesnia").
        name: Display name (e.g. "Gmina Jeleśnia").
        geometry: Polygon or MultiPolygon in ``(lng, lat)`` order.
        description: Free-text description.
        category: Administrative level of the region.
        code: TERYT code of the unit, when it comes from PRG data.
        area: Area in square kilometres, when known.
    """

    id: str
    name: str
    geometry: geo_models.Geometry
    description: str = ""
    category: Category = "custom"
    code: str | None = None
    area: float | None = None

    @property
    def bounds(self) -> geo_models.BoundingBox:
        return polygons.calculate_polygon_bounds(self.geometry)

    def summary(self) -> dict[str, Any]:
        """Listing entry without the (large) geometry."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "code": self.code,
            "area": self.area,
        }

    def to_feature(self, precision: int = 6) -> dict[str, Any]:
        """GeoJSON Feature carrying the region metadata as properties."""
        return {
            "type": "Feature",
            "properties": self.summary(),
            "geometry": geo_models.geometry_to_geojson(
                self.geometry, precision
            ),
        }

    @classmethod
    def from_feature(cls, feature: dict[str, Any]) -> BoundaryRegion:
        properties = feature.get("properties") or {}
        return cls(
            id=str(properties["id"]),
            name=str(properties.get("name", properties["id"])),
            geometry=geo_models.geometry_from_geojson(feature),
            description=str(properties.get("description") or ""),
            category=properties.get("category") or "custom",
            code=properties.get("code"),
            area=properties.get("area"),
        )
