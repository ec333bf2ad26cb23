"""Pinmap backend package: custom map tiles and administrative boundaries.

This package contains the geospatial core behind the pin map admin tool.
An uploaded raster image anchored to a WGS84 bounding box is cut into a
Slippy-Map tile pyramid, and official administrative boundaries are
ingested from shapefiles, reprojected from Poland CS92 (EPSG:2180) to
WGS84 and served for containment checks.

- Web Mercator tile/pixel math lives in ``pinmap.geo``
- Tile pyramid generation and boundary ingestion live in
  ``pinmap.services``
- A thin FastAPI surface (``pinmap.main``) exposes uploads, generated
  tiles and boundary queries

See the module docstrings for details on architecture and usage.
"""
