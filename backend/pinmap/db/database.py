"""Repositories for custom map records and boundary regions."""

from __future__ import annotations

import json
import logging
import pathlib
import tempfile
import threading
from typing import TYPE_CHECKING, Protocol

from pinmap.db import models as db_models

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pinmap.core import config

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()


class MapRepositoryProtocol(Protocol):
    """Protocol interface for storing and retrieving custom map records.

    Implementations provide persistence for CustomMap objects, supporting
    both in-memory (testing) and JSON file (production) backends.
    """

    def add(self, custom_map: db_models.CustomMap) -> db_models.CustomMap: ...

    def get(self, map_id: str) -> db_models.CustomMap | None: ...

    def all(self) -> Iterable[db_models.CustomMap]: ...

    def latest(self) -> db_models.CustomMap | None: ...


class InMemoryMapRepository(MapRepositoryProtocol):
    """Simple in-memory store for tests and local development.

    Data is lost when the process exits.
    """

    def __init__(self) -> None:
        self._store: dict[str, db_models.CustomMap] = {}

    def add(self, custom_map: db_models.CustomMap) -> db_models.CustomMap:
        """Add or replace a map record.

        Args:
            custom_map: Record to store.

        Returns:
            The stored record.
        """
        self._store[custom_map.id] = custom_map
        return custom_map

    def get(self, map_id: str) -> db_models.CustomMap | None:
        return self._store.get(map_id)

    def all(self) -> Iterable[db_models.CustomMap]:
        """Get all records, newest first."""
        return sorted(
            self._store.values(), key=lambda m: m.created_at, reverse=True
        )

    def latest(self) -> db_models.CustomMap | None:
        """Most recently created map, which is the one in use."""
        return next(iter(self.all()), None)


class JsonMapRepository(InMemoryMapRepository):
    """Map registry persisted to a JSON file.

    The whole registry is rewritten on every ``add``; it holds one entry
    per upload, so it stays small.
    """

    FILENAME = "maps.json"

    def __init__(self, settings: config.Settings) -> None:
        """Load the registry from ``settings.storage_dir``.

        Args:
            settings: Application settings providing the storage directory.
        """
        super().__init__()
        self.path = settings.storage_dir / self.FILENAME
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with self.path.open(encoding="utf-8") as fh:
            entries = json.load(fh)
        for entry in entries:
            custom_map = db_models.CustomMap.from_dict(entry)
            self._store[custom_map.id] = custom_map

    def add(self, custom_map: db_models.CustomMap) -> db_models.CustomMap:
        """Merge a record into the registry file.

        The file is re-read under a process-wide lock before writing, so
        records added through other instances since this one was created
        are kept.
        """
        with _registry_lock:
            self._load()
            super().add(custom_map)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=".maps-",
                suffix=".json",
                delete=False,
            ) as tmp:
                json.dump([m.to_dict() for m in self.all()], tmp, indent=2)
            pathlib.Path(tmp.name).replace(self.path)
        return custom_map


class BoundaryRepositoryProtocol(Protocol):
    """Protocol interface for read access to boundary regions."""

    def get(self, region_id: str) -> db_models.BoundaryRegion | None: ...

    def all(self) -> Iterable[db_models.BoundaryRegion]: ...

    def by_category(
        self, category: str
    ) -> Iterable[db_models.BoundaryRegion]: ...


class InMemoryBoundaryRepository(BoundaryRepositoryProtocol):
    """Boundary regions held in a dictionary keyed by id."""

    def __init__(
        self, regions: Iterable[db_models.BoundaryRegion] = ()
    ) -> None:
        self._store: dict[str, db_models.BoundaryRegion] = {
            region.id: region for region in regions
        }

    def add(
        self, region: db_models.BoundaryRegion
    ) -> db_models.BoundaryRegion:
        self._store[region.id] = region
        return region

    def get(self, region_id: str) -> db_models.BoundaryRegion | None:
        return self._store.get(region_id)

    def all(self) -> Iterable[db_models.BoundaryRegion]:
        """Get all regions sorted by name."""
        return sorted(self._store.values(), key=lambda r: r.name)

    def by_category(
        self, category: str
    ) -> Iterable[db_models.BoundaryRegion]:
        return [r for r in self.all() if r.category == category]


class FileBoundaryRepository(InMemoryBoundaryRepository):
    """Regions loaded from ``*.geojson`` Feature files in a directory.

    Files that cannot be read or decoded (I/O errors, invalid UTF-8 or
    JSON) and files that are not a Polygon/MultiPolygon Feature with an
    ``id`` property are logged and skipped. ``ValueError`` covers
    ``JSONDecodeError``, ``UnicodeDecodeError`` and ``GeometryError``.
    """

    def __init__(self, directory: pathlib.Path) -> None:
        super().__init__()
        self.directory = directory
        for path in sorted(directory.glob("*.geojson")):
            try:
                with path.open(encoding="utf-8") as fh:
                    feature = json.load(fh)
                self.add(db_models.BoundaryRegion.from_feature(feature))
            except (
                OSError,
                AttributeError,
                KeyError,
                ValueError,
            ) as exc:
                logger.warning("Skipping boundary file %s: %s", path, exc)


def get_map_repository(settings: config.Settings) -> MapRepositoryProtocol:
    """Factory function to create the map repository.

    Args:
        settings: Application settings for the storage directory.

    Returns:
        JsonMapRepository instance for production use.
    """
    return JsonMapRepository(settings)


def get_boundary_repository(
    settings: config.Settings,
) -> BoundaryRepositoryProtocol:
    """Factory function to create the boundary repository.

    Args:
        settings: Application settings for the boundaries directory.

    Returns:
        FileBoundaryRepository reading ``settings.boundaries_dir``.
    """
    return FileBoundaryRepository(settings.boundaries_dir)
