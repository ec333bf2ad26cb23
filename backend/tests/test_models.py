"""Unit tests for pinmap.db.models records.

Key coverage:
    - CustomMap serialisation to and from JSON-ready dictionaries.
    - BoundaryRegion bounds, summaries and GeoJSON Feature conversion.
"""

from __future__ import annotations

import datetime

from pinmap.db import models as db_models
from pinmap.geo import models as geo_models

TRIANGLE = geo_models.Polygon(
    rings=(((19.0, 49.5), (19.3, 49.5), (19.15, 49.7), (19.0, 49.5)),)
)


def _custom_map() -> db_models.CustomMap:
    return db_models.CustomMap(
        id="custom-1700000000000",
        source="/uploads/maps/custom-1700000000000.png",
        bounds=geo_models.BoundingBox(49.5, 19.0, 49.7, 19.3),
        min_zoom=8,
        max_zoom=14,
        tiles_path="/tiles/custom-1700000000000",
        tile_url_template="/tiles/custom-1700000000000/{z}/{x}/{y}.png",
        tile_count=412,
    )


def test_custom_map_defaults() -> None:
    """Test that failed_tiles and created_at get defaults."""
    custom_map = _custom_map()
    assert custom_map.failed_tiles == 0
    assert isinstance(custom_map.created_at, datetime.datetime)
    assert custom_map.created_at.tzinfo is not None


def test_custom_map_dict_round_trip() -> None:
    custom_map = _custom_map()
    data = custom_map.to_dict()
    assert data["bounds"] == {
        "sw_lat": 49.5,
        "sw_lng": 19.0,
        "ne_lat": 49.7,
        "ne_lng": 19.3,
    }
    assert isinstance(data["created_at"], str)
    assert db_models.CustomMap.from_dict(data) == custom_map


def test_boundary_region_bounds_and_summary() -> None:
    region = db_models.BoundaryRegion(
        id="jelesnia",
        name="Gmina Jeleśnia",
        geometry=TRIANGLE,
        category="gmina",
        code="2417042",
    )
    assert region.bounds == geo_models.BoundingBox(49.5, 19.0, 49.7, 19.3)
    summary = region.summary()
    assert summary["id"] == "jelesnia"
    assert summary["code"] == "2417042"
    assert "geometry" not in summary


def test_boundary_region_feature_round_trip() -> None:
    region = db_models.BoundaryRegion(
        id="jelesnia",
        name="Gmina Jeleśnia",
        geometry=TRIANGLE,
        description="Official PRG boundary",
        category="gmina",
    )
    feature = region.to_feature()
    assert feature["type"] == "Feature"
    assert feature["properties"]["name"] == "Gmina Jeleśnia"
    assert db_models.BoundaryRegion.from_feature(feature) == region
