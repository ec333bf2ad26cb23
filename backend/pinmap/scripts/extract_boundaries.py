"""Extract gmina boundaries from a PRG shapefile into WGS84 GeoJSON.

Selects administrative units by TERYT code with ogr2ogr, reprojects them
from CS92 (EPSG:2180) to WGS84 and writes one ``<id>.geojson`` Feature
per unit. With ``--group-id`` and ``--group-name`` the selected units are
also merged into a single MultiPolygon region, e.g. a local action group.

Usage:
    pinmap-extract-boundaries PRG/gminy.shp \\
        --code 2417042 --code 2417052 \\
        --output-dir /data/boundaries \\
        --group-id zywiecki-raj --group-name "LGD Żywiecki Raj"
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import TYPE_CHECKING

from pinmap.core import config
from pinmap.core import logging as core_logging
from pinmap.services import ingest_boundary
from pinmap.utils import gdal_helpers

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    settings = config.Settings()
    p = argparse.ArgumentParser(
        description=(
            "Extract administrative boundaries from a PRG shapefile and "
            "write them as WGS84 GeoJSON features."
        ),
    )
    p.add_argument("shapefile", type=pathlib.Path, help="Path to the .shp file")
    p.add_argument(
        "--code",
        dest="codes",
        action="append",
        required=True,
        help="TERYT code to extract; repeat for several units.",
    )
    p.add_argument(
        "--output-dir",
        type=pathlib.Path,
        default=settings.boundaries_dir,
        help=f"Directory for GeoJSON output (default: {settings.boundaries_dir})",
    )
    p.add_argument(
        "--code-field",
        default=settings.boundary_code_field,
        help=f"Attribute holding the code (default: {settings.boundary_code_field})",
    )
    p.add_argument(
        "--name-field",
        default=settings.boundary_name_field,
        help=f"Attribute holding the name (default: {settings.boundary_name_field})",
    )
    p.add_argument(
        "--precision",
        type=int,
        default=settings.coordinate_precision,
        help="Decimal places kept in the output coordinates.",
    )
    p.add_argument("--group-id", help="Id of a merged region to also write.")
    p.add_argument("--group-name", help="Display name of the merged region.")
    p.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable DEBUG-level logging.",
    )
    args = p.parse_args(argv)
    if (args.group_id is None) != (args.group_name is None):
        p.error("--group-id and --group-name must be given together")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point."""
    args = parse_args(argv)
    core_logging.configure_logging(logging.DEBUG if args.verbose else "INFO")

    if not args.shapefile.is_file():
        logger.error("Shapefile not found: %s", args.shapefile)
        return 1

    try:
        regions = ingest_boundary.ingest_boundaries(
            args.shapefile,
            args.codes,
            args.output_dir,
            code_field=args.code_field,
            name_field=args.name_field,
            precision=args.precision,
        )
    except gdal_helpers.CommandError as exc:
        logger.error("ogr2ogr failed: %s", exc)
        return 1
    except (ValueError, ingest_boundary.BoundaryIngestError) as exc:
        logger.error("%s", exc)
        return 1

    if args.group_id and regions:
        group = ingest_boundary.combine_regions(
            regions, region_id=args.group_id, name=args.group_name
        )
        ingest_boundary.write_region(group, args.output_dir, args.precision)
    elif args.group_id:
        logger.warning("No regions extracted, %s not written", args.group_id)

    logger.info("Extracted %d regions into %s", len(regions), args.output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
