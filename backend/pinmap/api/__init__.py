"""API router subpackage for the pinmap backend.

Each module exposes its own APIRouter for composition in the
application's main FastAPI instance.

Submodules:
    - maps: Uploading custom base-map images, listing them and removing
      unused ones.
    - tiles: Serving generated ``{z}/{x}/{y}.png`` tiles.
    - boundaries: Administrative boundary geometries and point
      containment checks.
"""
