"""Administrative boundary ingestion from PRG shapefiles using ogr2ogr.

This module turns selected units of the Polish boundary register (PRG)
into WGS84 GeoJSON features the map can draw and test points against.
ogr2ogr filters the national shapefile by TERYT code and writes the
matching features as GeoJSON, keeping their planar CS92 (EPSG:2180)
coordinates; every ring is then reprojected to WGS84 with pyproj.

Regions can be merged into a single MultiPolygon, which is how a local
action group (LGD) made of several gminas is represented.

Example:
    Extract two gminas and merge them:
        >>> from pathlib import Path
        >>> from pinmap.services import ingest_boundary

        >>> regions = ingest_boundary.ingest_boundaries(
        ...     shapefile=Path("PRG/gminy.shp"),
        ...     codes=["2417042", "2417052"],
        ...     output_dir=Path("/data/boundaries"),
        ... )
        >>> lgd = ingest_boundary.combine_regions(
        ...     regions, region_id="zywiecki-raj", name="LGD Żywiecki Raj"
        ... )
        >>> ingest_boundary.write_region(lgd, Path("/data/boundaries"))
"""

from __future__ import annotations

import datetime
import json
import logging
import pathlib
import re
import tempfile
import unicodedata
from typing import TYPE_CHECKING, Any

from pinmap.db import models as db_models
from pinmap.geo import models as geo_models
from pinmap.geo import reproject
from pinmap.utils import gdal_helpers

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

PRG_SOURCE = "PRG via gis-support.pl"
OUTPUT_CRS = "EPSG:4326"


class BoundaryIngestError(RuntimeError):
    """Raised when extracted boundary data is missing or malformed."""


def slugify(name: str) -> str:
    """ASCII identifier for a Polish place name ("Łękawica" -> "lekawica")."""
    # NFKD does not decompose the stroke in ł
    text = name.lower().replace("ł", "l")
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")


def extract_features(
    shapefile: pathlib.Path,
    codes: Iterable[str],
    workdir: pathlib.Path,
    code_field: str = "JPT_KOD_JE",
) -> list[dict[str, Any]]:
    """Select features by code from a shapefile with ogr2ogr.

    Args:
        shapefile: Path to the ``.shp`` file (``.dbf``/``.shx`` alongside).
        codes: TERYT codes to select.
        workdir: Directory for the intermediate GeoJSON file.
        code_field: Attribute holding the codes.

    Returns:
        GeoJSON Feature mappings in the shapefile's own CRS.

    Raises:
        ValueError: If a code or the field name is not alphanumeric.
        CommandError: If ogr2ogr fails.
        BoundaryIngestError: If ogr2ogr produced no readable GeoJSON.
    """
    where = gdal_helpers.ogr2ogr_where_in(code_field, codes)
    workdir.mkdir(parents=True, exist_ok=True)
    output_path = workdir / f"{shapefile.stem}_selection.geojson"
    # ogr2ogr refuses to overwrite an existing GeoJSON file
    output_path.unlink(missing_ok=True)

    command = (
        "ogr2ogr",
        "-f",
        "GeoJSON",
        str(output_path),
        str(shapefile),
        "-where",
        where,
    )
    gdal_helpers.run_command(command)

    try:
        with output_path.open(encoding="utf-8") as fh:
            collection = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise BoundaryIngestError(
            f"ogr2ogr output {output_path} is unreadable: {exc}"
        ) from exc

    features = collection.get("features")
    if not isinstance(features, list):
        raise BoundaryIngestError(f"{output_path} is not a FeatureCollection")
    return features


def region_from_feature(
    feature: dict[str, Any],
    *,
    code_field: str,
    name_field: str,
    source_crs: str = reproject.POLAND_CS92,
) -> db_models.BoundaryRegion:
    """Build a WGS84 gmina region from a planar shapefile feature."""
    properties = feature.get("properties") or {}
    raw_name = str(properties.get(name_field) or "").strip()
    code = properties.get(code_field)
    if not raw_name:
        raise BoundaryIngestError(f"Feature {code!r} has no {name_field}")

    try:
        planar = geo_models.geometry_from_geojson(feature)
    except geo_models.GeometryError as exc:
        raise BoundaryIngestError(f"Feature {raw_name!r}: {exc}") from exc

    return db_models.BoundaryRegion(
        id=slugify(raw_name),
        name=f"Gmina {raw_name}",
        geometry=reproject.reproject_geometry(planar, source=source_crs),
        description=f"Official PRG boundary of gmina {raw_name}",
        category="gmina",
        code=str(code) if code is not None else None,
    )


def write_region(
    region: db_models.BoundaryRegion,
    output_dir: pathlib.Path,
    precision: int = 6,
    source: str = PRG_SOURCE,
) -> pathlib.Path:
    """Write a region as a GeoJSON Feature file named ``<id>.geojson``.

    Args:
        region: Region in WGS84.
        output_dir: Target directory (created if needed).
        precision: Decimal places kept for every coordinate.
        source: Provenance recorded in the feature properties.

    Returns:
        Path of the written file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    feature = region.to_feature(precision)
    feature["properties"].update(
        {
            "source": source,
            "crs": OUTPUT_CRS,
            "converted": datetime.date.today().isoformat(),
            "coordinates": geo_models.coordinate_count(region.geometry),
        }
    )
    path = output_dir / f"{region.id}.geojson"
    with path.open("w", encoding="utf-8") as fh:
        json.dump(feature, fh, ensure_ascii=False, indent=2)
    logger.info("Wrote %s (%s)", path, region.name)
    return path


def ingest_boundaries(
    shapefile: pathlib.Path,
    codes: Sequence[str],
    output_dir: pathlib.Path,
    *,
    code_field: str = "JPT_KOD_JE",
    name_field: str = "JPT_NAZWA_",
    precision: int = 6,
    source_crs: str = reproject.POLAND_CS92,
    workdir: pathlib.Path | None = None,
) -> list[db_models.BoundaryRegion]:
    """Extract, reproject and store gmina boundaries.

    Codes that are not present in the shapefile are logged and skipped.

    Args:
        shapefile: PRG shapefile with gmina polygons.
        codes: TERYT codes of the gminas to extract.
        output_dir: Directory receiving one GeoJSON file per region.
        code_field: Attribute holding the TERYT code.
        name_field: Attribute holding the unit name.
        precision: Decimal places kept in the written GeoJSON.
        source_crs: CRS of the shapefile coordinates.
        workdir: Directory for ogr2ogr output; a temporary directory is
            used when omitted.

    Returns:
        The regions that were found, in shapefile order.

    Raises:
        CommandError: If ogr2ogr fails.
        BoundaryIngestError: If the extracted data is malformed.
    """
    if workdir is None:
        with tempfile.TemporaryDirectory(prefix="pinmap-ogr-") as tmp:
            features = extract_features(
                shapefile, codes, pathlib.Path(tmp), code_field
            )
    else:
        features = extract_features(shapefile, codes, workdir, code_field)

    regions = []
    found = set()
    for feature in features:
        region = region_from_feature(
            feature,
            code_field=code_field,
            name_field=name_field,
            source_crs=source_crs,
        )
        found.add(region.code)
        write_region(region, output_dir, precision)
        regions.append(region)

    for code in codes:
        if code not in found:
            logger.warning("Code %s not found in %s", code, shapefile)

    logger.info("Ingested %d of %d boundaries", len(regions), len(codes))
    return regions


def combine_regions(
    regions: Sequence[db_models.BoundaryRegion],
    region_id: str,
    name: str,
    description: str = "",
    category: db_models.Category = "lgd",
) -> db_models.BoundaryRegion:
    """Merge several regions into one MultiPolygon region.

    Polygons are collected as they are; shared borders are not dissolved.

    Raises:
        BoundaryIngestError: If ``regions`` is empty.
    """
    if not regions:
        raise BoundaryIngestError(f"No regions to combine into {region_id}")

    polygons: list[geo_models.Polygon] = []
    for region in regions:
        match region.geometry:
            case geo_models.Polygon():
                polygons.append(region.geometry)
            case geo_models.MultiPolygon(polygons=parts):
                polygons.extend(parts)

    return db_models.BoundaryRegion(
        id=region_id,
        name=name,
        geometry=geo_models.MultiPolygon(polygons=tuple(polygons)),
        description=description
        or f"Union of {len(regions)} regions: "
        + ", ".join(r.name for r in regions),
        category=category,
    )
