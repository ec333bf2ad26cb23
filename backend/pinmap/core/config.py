"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
storage directories for uploaded maps, generated tiles and boundary data,
the default map bounding box, the tile zoom range, CORS origins and
upload size limits.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from pinmap.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.tiles_dir)

    Environment variables can override defaults:
        >>> TILES_DIR=/srv/pinmap/tiles
        >>> TILE_MAX_ZOOM=16
        >>> MAP_SW_LAT=49.5
"""

import functools
import pathlib

import pydantic_settings

from pinmap.geo import models as geo_models


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.
    Directory paths are created by ensure_directories().

    Attributes:
        storage_dir: Directory for uploaded source images and the map
            registry file.
        tiles_dir: Root directory for generated tile pyramids, one
            sub-directory per custom map.
        boundaries_dir: Directory holding WGS84 boundary GeoJSON features.
        allow_origins: List of allowed CORS origins (["*"] allows all).
        max_upload_size_bytes: Maximum image upload size (default 5MB).
        map_sw_lat: South-west latitude of the configured map area.
        map_sw_lng: South-west longitude of the configured map area.
        map_ne_lat: North-east latitude of the configured map area.
        map_ne_lng: North-east longitude of the configured map area.
        tile_min_zoom: Coarsest zoom level generated for custom maps.
        tile_max_zoom: Finest zoom level generated for custom maps; above
            it the client falls back to OSM tiles.
        bounds_margin_ratio: Margin added on every side of the map bounds
            before an uploaded image is anchored to them.
        tile_compress_level: zlib level used when writing PNG tiles.
        boundary_code_field: Shapefile attribute holding the TERYT code.
        boundary_name_field: Shapefile attribute holding the unit name.
        coordinate_precision: Decimal places kept in emitted GeoJSON.
        log_level: Root logging level.
    """

    storage_dir: pathlib.Path = pathlib.Path("/tmp/pinmap/uploads")
    tiles_dir: pathlib.Path = pathlib.Path("/tmp/pinmap/tiles")
    boundaries_dir: pathlib.Path = pathlib.Path("/tmp/pinmap/boundaries")
    allow_origins: list[str] = ["*"]
    max_upload_size_bytes: int = 5 * 1024 * 1024

    map_sw_lat: float = 40.700
    map_sw_lng: float = -74.020
    map_ne_lat: float = 40.720
    map_ne_lng: float = -74.000

    tile_min_zoom: int = 8
    tile_max_zoom: int = 14
    bounds_margin_ratio: float = 0.05
    tile_compress_level: int = 6

    boundary_code_field: str = "JPT_KOD_JE"
    boundary_name_field: str = "JPT_NAZWA_"
    coordinate_precision: int = 6

    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def map_bounds(self) -> geo_models.BoundingBox:
        """Configured map area as a bounding box."""
        return geo_models.BoundingBox(
            sw_lat=self.map_sw_lat,
            sw_lng=self.map_sw_lng,
            ne_lat=self.map_ne_lat,
            ne_lng=self.map_ne_lng,
        )

    @property
    def maps_dir(self) -> pathlib.Path:
        """Directory where original uploaded map images are kept."""
        return self.storage_dir / "maps"

    def ensure_directories(self) -> None:
        """Create local directories for uploads, tiles and boundaries."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.maps_dir.mkdir(parents=True, exist_ok=True)
        self.tiles_dir.mkdir(parents=True, exist_ok=True)
        self.boundaries_dir.mkdir(parents=True, exist_ok=True)


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance with directories initialized.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Directories are created on first
    call. Subsequent calls return the same cached instance.

    Returns:
        Settings instance with all configuration values populated and
        directories ensured to exist.

    Example:
        The settings are cached, so multiple calls return the same instance:
            >>> settings1 = get_settings()
            >>> settings2 = get_settings()
            >>> assert settings1 is settings2  # Same instance
    """
    settings = Settings()
    settings.ensure_directories()
    return settings
