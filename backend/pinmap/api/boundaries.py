"""Administrative boundary query API endpoints.

Boundaries are served as WGS84 GeoJSON together with their bounding box
and a mask polygon covering everything around them, which the client
uses to grey out the area outside the region.

Example:
    Check whether a point falls inside a gmina:
        >>> response = client.get(
        ...     "/api/boundaries/contains",
        ...     params={"lat": 49.64, "lng": 19.33, "boundary_id": "jelesnia"},
        ... )
        >>> response.json()["inside"]
        True
"""

from typing import Any

import fastapi

from pinmap.core import config
from pinmap.db import database
from pinmap.db import models as db_models
from pinmap.geo import models as geo_models
from pinmap.geo import polygons

router = fastapi.APIRouter(prefix="/api/boundaries", tags=["boundaries"])


def _get_repo(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> database.BoundaryRepositoryProtocol:
    """Resolve the boundary repository dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        BoundaryRepositoryProtocol implementation
            (FileBoundaryRepository in production).
    """
    return database.get_boundary_repository(settings)


def _get_region(
    repo: database.BoundaryRepositoryProtocol, boundary_id: str
) -> db_models.BoundaryRegion:
    region = repo.get(boundary_id)
    if region is None:
        raise fastapi.HTTPException(
            status_code=404,
            detail="Boundary not found",
        )
    return region


def _mask_geometry(
    region: db_models.BoundaryRegion, precision: int
) -> dict[str, Any]:
    """World-covering polygon with the region's outer rings as holes."""
    bounds = region.bounds
    rings = [polygons.world_mask_ring(bounds)]
    match region.geometry:
        case geo_models.Polygon():
            rings.append(region.geometry.outer_ring)
        case geo_models.MultiPolygon(polygons=parts):
            rings.extend(p.outer_ring for p in parts)
    mask = geo_models.Polygon(rings=tuple(rings))
    return geo_models.geometry_to_geojson(mask, precision)


@router.get("")
async def list_boundaries(
    category: str | None = None,
    repo: database.BoundaryRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> list[dict[str, Any]]:
    """List available boundaries without their geometry.

    Args:
        category: Optional administrative level filter ("gmina", "lgd").
        repo: Boundary repository (injected via FastAPI Depends).
    """
    regions = repo.all() if category is None else repo.by_category(category)
    return [region.summary() for region in regions]


@router.get("/contains")
async def contains_point(
    lat: float = fastapi.Query(ge=-90, le=90),  # noqa: B008
    lng: float = fastapi.Query(ge=-180, le=180),  # noqa: B008
    boundary_id: str | None = None,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.BoundaryRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Check whether a point lies inside the active map boundary.

    With ``boundary_id`` the point is tested against that region's
    polygon(s); otherwise against the configured map rectangle.

    Args:
        lat: Point latitude.
        lng: Point longitude.
        boundary_id: Region to test against.
        settings: Application settings (injected via FastAPI Depends).
        repo: Boundary repository (injected via FastAPI Depends).

    Returns:
        Dictionary with ``inside``, ``boundary_type`` and ``boundary_id``.

    Raises:
        HTTPException: If ``boundary_id`` is unknown (404 status code).
    """
    geometry = None
    boundary_type: polygons.BoundaryType = "rectangle"
    if boundary_id is not None:
        geometry = _get_region(repo, boundary_id).geometry
        boundary_type = "polygon"

    inside = polygons.is_within_bounds(
        lat, lng, boundary_type, settings.map_bounds, geometry
    )
    return {
        "inside": inside,
        "boundary_type": boundary_type,
        "boundary_id": boundary_id,
    }


@router.get("/{boundary_id}")
async def get_boundary(
    boundary_id: str,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.BoundaryRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Get a boundary with its geometry, bounds and outside mask.

    Returns:
        Region summary plus ``geometry`` (GeoJSON), ``bounds`` (corner
        dictionary), ``leaflet_bounds`` and ``mask`` (GeoJSON Polygon).

    Raises:
        HTTPException: If the boundary is not found (404 status code).
    """
    region = _get_region(repo, boundary_id)
    precision = settings.coordinate_precision
    bounds = region.bounds
    return {
        **region.summary(),
        "geometry": geo_models.geometry_to_geojson(region.geometry, precision),
        "bounds": bounds.to_dict(),
        "leaflet_bounds": bounds.to_leaflet(),
        "mask": _mask_geometry(region, precision),
    }
