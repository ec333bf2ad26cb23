"""Pure geometry for custom map tiles and administrative boundaries.

Submodules:
    - models: value types (coordinates, bounding boxes, polygons).
    - mercator: Web Mercator lat/lng, tile and pixel conversions.
    - polygons: bounds, point-in-polygon and rectangle containment.
    - reproject: CRS-to-CRS reprojection backed by pyproj.

Nothing in this package performs I/O.
"""
