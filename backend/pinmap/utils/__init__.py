"""Helpers for invoking external GDAL/OGR tooling."""
