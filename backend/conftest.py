"""Pytest configuration to expose the pinmap package for imports."""

import pathlib
import sys

BACKEND_ROOT = pathlib.Path(__file__).resolve().parent

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import pytest  # noqa: E402

from pinmap.core import config  # noqa: E402


@pytest.fixture
def settings(tmp_path: pathlib.Path) -> config.Settings:
    """Settings with every directory inside a fresh temporary directory."""
    result = config.Settings(
        storage_dir=tmp_path / "uploads",
        tiles_dir=tmp_path / "tiles",
        boundaries_dir=tmp_path / "boundaries",
        tile_min_zoom=14,
        tile_max_zoom=15,
    )
    result.ensure_directories()
    return result
