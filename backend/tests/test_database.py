"""Tests for map and boundary repositories in pinmap.db.database.

Covers the in-memory stores used by tests and development, the JSON map
registry persisted under ``storage_dir`` and the boundary repository
loading GeoJSON Feature files from ``boundaries_dir``.
"""

from __future__ import annotations

import datetime
import json
from typing import TYPE_CHECKING

from pinmap.db import database
from pinmap.db import models as db_models
from pinmap.geo import models as geo_models

if TYPE_CHECKING:
    import pathlib

    from pinmap.core import config

TRIANGLE = geo_models.Polygon(
    rings=(((19.0, 49.5), (19.3, 49.5), (19.15, 49.7), (19.0, 49.5)),)
)


def _custom_map(map_id: str, minutes: int) -> db_models.CustomMap:
    return db_models.CustomMap(
        id=map_id,
        source=f"/uploads/maps/{map_id}.png",
        bounds=geo_models.BoundingBox(49.5, 19.0, 49.7, 19.3),
        min_zoom=8,
        max_zoom=14,
        tiles_path=f"/tiles/{map_id}",
        tile_url_template=f"/tiles/{map_id}/{{z}}/{{x}}/{{y}}.png",
        tile_count=10,
        created_at=datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC)
        + datetime.timedelta(minutes=minutes),
    )


def test_in_memory_map_repository() -> None:
    """Test add, get, all and latest on the in-memory store."""
    repo = database.InMemoryMapRepository()
    assert repo.latest() is None

    older = repo.add(_custom_map("custom-1", 0))
    newer = repo.add(_custom_map("custom-2", 5))

    assert repo.get("custom-1") is older
    assert repo.get("missing") is None
    assert list(repo.all()) == [newer, older]
    assert repo.latest() is newer


def test_json_map_repository_persists(settings: config.Settings) -> None:
    """Records survive a new repository instance."""
    repo = database.JsonMapRepository(settings)
    repo.add(_custom_map("custom-1", 0))
    repo.add(_custom_map("custom-2", 5))

    registry = settings.storage_dir / database.JsonMapRepository.FILENAME
    assert registry.exists()
    assert [e["id"] for e in json.loads(registry.read_text())] == [
        "custom-2",
        "custom-1",
    ]

    reloaded = database.get_map_repository(settings)
    assert [m.id for m in reloaded.all()] == ["custom-2", "custom-1"]
    assert reloaded.get("custom-1") == _custom_map("custom-1", 0)


def test_json_map_repository_merges_concurrent_writers(
    settings: config.Settings,
) -> None:
    """Two instances opened before either writes keep each other's maps."""
    first = database.get_map_repository(settings)
    second = database.get_map_repository(settings)

    first.add(_custom_map("custom-1", 0))
    second.add(_custom_map("custom-2", 5))

    reloaded = database.get_map_repository(settings)
    assert [m.id for m in reloaded.all()] == ["custom-2", "custom-1"]
    assert [p.name for p in settings.storage_dir.glob("*.json")] == [
        database.JsonMapRepository.FILENAME
    ]


def test_in_memory_boundary_repository() -> None:
    repo = database.InMemoryBoundaryRepository(
        [
            db_models.BoundaryRegion(
                id="zywiecki-raj",
                name="LGD Żywiecki Raj",
                geometry=geo_models.MultiPolygon(polygons=(TRIANGLE,)),
                category="lgd",
            ),
            db_models.BoundaryRegion(
                id="jelesnia",
                name="Gmina Jeleśnia",
                geometry=TRIANGLE,
                category="gmina",
            ),
        ]
    )
    assert [r.id for r in repo.all()] == ["jelesnia", "zywiecki-raj"]
    assert [r.id for r in repo.by_category("lgd")] == ["zywiecki-raj"]
    assert repo.get("jelesnia").name == "Gmina Jeleśnia"
    assert repo.get("nowhere") is None


def test_file_boundary_repository_loads_features(
    settings: config.Settings,
) -> None:
    region = db_models.BoundaryRegion(
        id="jelesnia", name="Gmina Jeleśnia", geometry=TRIANGLE, code="2417042"
    )
    boundaries_dir: pathlib.Path = settings.boundaries_dir
    (boundaries_dir / "jelesnia.geojson").write_text(
        json.dumps(region.to_feature()), encoding="utf-8"
    )
    (boundaries_dir / "broken.geojson").write_text("{", encoding="utf-8")
    (boundaries_dir / "point.geojson").write_text(
        json.dumps(
            {
                "type": "Feature",
                "properties": {"id": "point"},
                "geometry": {"type": "Point", "coordinates": [19.0, 49.5]},
            }
        ),
        encoding="utf-8",
    )
    (boundaries_dir / "latin2.geojson").write_bytes(
        b'{"type": "Feature", "properties": {"id": "\xbfywiec"}}'
    )
    (boundaries_dir / "short-ring.geojson").write_text(
        json.dumps(
            {
                "type": "Feature",
                "properties": {"id": "short-ring"},
                "geometry": {"type": "Polygon", "coordinates": [[1, 2]]},
            }
        ),
        encoding="utf-8",
    )
    (boundaries_dir / "notes.txt").write_text("ignored", encoding="utf-8")

    repo = database.get_boundary_repository(settings)

    assert [r.id for r in repo.all()] == ["jelesnia"]
    assert repo.get("jelesnia") == region
