"""Records and repository abstractions for custom maps and boundaries.

This package holds the dataclasses describing generated custom maps and
boundary regions, together with repository protocols and their in-memory
and file-backed implementations. Repositories are resolved through the
``get_map_repository`` and ``get_boundary_repository`` factories so the
API can inject test doubles.

Example:
    Use in a service or FastAPI dependency:
        >>> from pinmap.db import database
        >>> repo = database.get_map_repository(settings)
"""
