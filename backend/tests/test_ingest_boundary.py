"""Tests for pinmap.services.ingest_boundary PRG extraction.

ogr2ogr is never executed: ``gdal_helpers.run_command`` is monkeypatched
with a fake that writes a small FeatureCollection in CS92 coordinates to
the output path it was given, mimicking the real tool.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any

import pytest

from pinmap.db import models as db_models
from pinmap.geo import models as geo_models
from pinmap.services import ingest_boundary
from pinmap.utils import gdal_helpers

SHAPEFILE = pathlib.Path("/data/PRG/gminy.shp")


def _square(x: float, y: float, size: float = 5000.0) -> list[list[float]]:
    return [
        [x, y],
        [x + size, y],
        [x + size, y + size],
        [x, y + size],
        [x, y],
    ]


PRG_FEATURES = {
    "2417042": {
        "type": "Feature",
        "properties": {"JPT_KOD_JE": "2417042", "JPT_NAZWA_": "Jeleśnia"},
        "geometry": {
            "type": "Polygon",
            "coordinates": [_square(500000.0, 200000.0)],
        },
    },
    "2417072": {
        "type": "Feature",
        "properties": {"JPT_KOD_JE": "2417072", "JPT_NAZWA_": "Łękawica"},
        "geometry": {
            "type": "MultiPolygon",
            "coordinates": [
                [_square(510000.0, 200000.0)],
                [_square(520000.0, 200000.0, 1000.0)],
            ],
        },
    },
}


@pytest.fixture
def fake_ogr2ogr(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    """Replace run_command with an in-process ogr2ogr stand-in."""
    calls: list[list[str]] = []

    def fake_run(command: Any, workdir: Any = None) -> None:
        args = [str(part) for part in command]
        calls.append(args)
        output = pathlib.Path(args[3])
        where = args[args.index("-where") + 1]
        features = [
            f for code, f in PRG_FEATURES.items() if f"'{code}'" in where
        ]
        output.write_text(
            json.dumps({"type": "FeatureCollection", "features": features}),
            encoding="utf-8",
        )

    monkeypatch.setattr(gdal_helpers, "run_command", fake_run)
    return calls


@pytest.mark.parametrize(
    ("name", "slug"),
    [
        ("Jeleśnia", "jelesnia"),
        ("Łękawica", "lekawica"),
        ("Radziechowy-Wieprz", "radziechowy-wieprz"),
        ("Węgierska Górka", "wegierska-gorka"),
        ("Ujsoły", "ujsoly"),
    ],
)
def test_slugify_polish_names(name: str, slug: str) -> None:
    assert ingest_boundary.slugify(name) == slug


def test_extract_features_builds_ogr2ogr_command(
    tmp_path: pathlib.Path, fake_ogr2ogr: list[list[str]]
) -> None:
    features = ingest_boundary.extract_features(
        SHAPEFILE, ["2417042"], tmp_path
    )

    assert len(features) == 1
    assert fake_ogr2ogr == [
        [
            "ogr2ogr",
            "-f",
            "GeoJSON",
            str(tmp_path / "gminy_selection.geojson"),
            str(SHAPEFILE),
            "-where",
            "JPT_KOD_JE IN ('2417042')",
        ]
    ]


def test_extract_features_replaces_stale_output(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    stale = tmp_path / "gminy_selection.geojson"
    stale.write_text("stale", encoding="utf-8")

    def assert_removed(command: Any, workdir: Any = None) -> None:
        assert not stale.exists()
        stale.write_text('{"type": "FeatureCollection", "features": []}')

    monkeypatch.setattr(gdal_helpers, "run_command", assert_removed)
    assert ingest_boundary.extract_features(SHAPEFILE, ["1"], tmp_path) == []


def test_extract_features_rejects_unsafe_codes(
    tmp_path: pathlib.Path, fake_ogr2ogr: list[list[str]]
) -> None:
    with pytest.raises(ValueError):
        ingest_boundary.extract_features(SHAPEFILE, ["1' OR 1=1"], tmp_path)
    assert fake_ogr2ogr == []


def test_extract_features_propagates_command_error(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_run(command: Any, workdir: Any = None) -> None:
        raise gdal_helpers.CommandError("Unable to open datasource")

    monkeypatch.setattr(gdal_helpers, "run_command", failing_run)
    with pytest.raises(gdal_helpers.CommandError):
        ingest_boundary.extract_features(SHAPEFILE, ["2417042"], tmp_path)


def test_extract_features_without_output_file(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(gdal_helpers, "run_command", lambda *a, **k: None)
    with pytest.raises(ingest_boundary.BoundaryIngestError):
        ingest_boundary.extract_features(SHAPEFILE, ["2417042"], tmp_path)


def test_ingest_boundaries_reprojects_and_writes(
    tmp_path: pathlib.Path,
    fake_ogr2ogr: list[list[str]],
    caplog: pytest.LogCaptureFixture,
) -> None:
    output_dir = tmp_path / "boundaries"
    regions = ingest_boundary.ingest_boundaries(
        SHAPEFILE,
        ["2417042", "2417072", "2417999"],
        output_dir,
        workdir=tmp_path / "work",
    )

    assert [r.id for r in regions] == ["jelesnia", "lekawica"]
    jelesnia, lekawica = regions
    assert jelesnia.name == "Gmina Jeleśnia"
    assert jelesnia.category == "gmina"
    assert jelesnia.code == "2417042"
    assert isinstance(lekawica.geometry, geo_models.MultiPolygon)

    lng, lat = jelesnia.geometry.outer_ring[0]
    assert lng == pytest.approx(19.0, abs=1e-9)
    assert 49.5 < lat < 49.8

    assert "2417999 not found" in caplog.text

    feature = json.loads(
        (output_dir / "jelesnia.geojson").read_text(encoding="utf-8")
    )
    properties = feature["properties"]
    assert properties["id"] == "jelesnia"
    assert properties["code"] == "2417042"
    assert properties["crs"] == "EPSG:4326"
    assert properties["source"] == ingest_boundary.PRG_SOURCE
    assert properties["coordinates"] == 5
    assert "converted" in properties
    first = feature["geometry"]["coordinates"][0][0]
    assert first == [round(c, 6) for c in first]


def test_ingest_boundaries_uses_temporary_workdir(
    tmp_path: pathlib.Path, fake_ogr2ogr: list[list[str]]
) -> None:
    regions = ingest_boundary.ingest_boundaries(
        SHAPEFILE, ["2417042"], tmp_path / "out"
    )
    assert len(regions) == 1
    assert not pathlib.Path(fake_ogr2ogr[0][3]).exists()


def test_combine_regions_builds_multipolygon() -> None:
    square = geo_models.Polygon(
        rings=(((19.0, 49.5), (19.1, 49.5), (19.1, 49.6), (19.0, 49.5)),)
    )
    multi = geo_models.MultiPolygon(polygons=(square, square))
    regions = [
        db_models.BoundaryRegion(id="a", name="Gmina A", geometry=square),
        db_models.BoundaryRegion(id="b", name="Gmina B", geometry=multi),
    ]

    lgd = ingest_boundary.combine_regions(
        regions, region_id="zywiecki-raj", name="LGD Żywiecki Raj"
    )

    assert lgd.category == "lgd"
    assert isinstance(lgd.geometry, geo_models.MultiPolygon)
    assert len(lgd.geometry.polygons) == 3
    assert "Gmina A" in lgd.description


def test_combine_regions_requires_input() -> None:
    with pytest.raises(ingest_boundary.BoundaryIngestError):
        ingest_boundary.combine_regions([], region_id="x", name="X")


def test_written_region_loads_back(tmp_path: pathlib.Path) -> None:
    region = db_models.BoundaryRegion(
        id="lipowa",
        name="Gmina Lipowa",
        geometry=geo_models.Polygon(
            rings=(((19.1, 49.6), (19.2, 49.6), (19.2, 49.7), (19.1, 49.6)),)
        ),
        category="gmina",
        code="2417062",
    )
    path = ingest_boundary.write_region(region, tmp_path)
    assert path == tmp_path / "lipowa.geojson"
    loaded = db_models.BoundaryRegion.from_feature(
        json.loads(path.read_text(encoding="utf-8"))
    )
    assert loaded == region
