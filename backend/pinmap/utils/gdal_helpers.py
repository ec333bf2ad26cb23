"""Safe execution wrapper for GDAL/OGR command-line utilities.

Boundary ingestion shells out to ``ogr2ogr`` to pull selected
administrative units out of a national shapefile. This module wraps the
subprocess call so failures surface as CommandError carrying the tool's
stderr output instead of silently producing an empty file.

Example:
    Extract two gminas from a PRG shapefile:
        >>> from pinmap.utils.gdal_helpers import run_command, CommandError

        >>> try:
        ...     run_command([
        ...         "ogr2ogr",
        ...         "-f", "GeoJSON",
        ...         "gminy.geojson",
        ...         "PRG_jednostki_administracyjne/gminy.shp",
        ...         "-where", "JPT_KOD_JE IN ('2417052', '2417062')",
        ...     ])
        ... except CommandError as e:
        ...     print(f"Extraction failed: {e}")
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Exception raised when a GDAL/OGR subprocess command fails.

    The message holds the stderr output of the failed command, or a short
    description when the executable could not be started at all.
    """


def ogr2ogr_where_in(field: str, values: Iterable[str]) -> str:
    """Build an OGR SQL ``IN`` filter for an attribute.

    Args:
        field: Attribute name, e.g. "JPT_KOD_JE".
        values: Literal values to match.

    Returns:
        Expression such as ``JPT_KOD_JE IN ('2417052', '2417062')``.

    Raises:
        ValueError: If the field or any value is not purely alphanumeric
            (underscores allowed in the field name). Values end up inside
            an SQL expression, so nothing else is accepted.
    """
    if not field.replace("_", "").isalnum():
        raise ValueError(f"Invalid attribute name: {field!r}")
    quoted = []
    for value in values:
        if not value.isalnum():
            raise ValueError(f"Invalid attribute value: {value!r}")
        quoted.append(f"'{value}'")
    if not quoted:
        raise ValueError("At least one value is required")
    return f"{field} IN ({', '.join(quoted)})"


def run_command(
    command: Iterable[str | pathlib.Path],
    workdir: pathlib.Path | None = None,
) -> None:
    """Execute a command and raise on non-zero exit.

    Args:
        command: Iterable arguments to execute (e.g., ["ogr2ogr", "-f", ...]).
        workdir: Optional working directory for the command execution.

    Raises:
        CommandError: if the command exits with a non-zero status code or
            the executable is not installed.
    """
    args = [str(part) for part in command]
    logger.debug("Running %s", shlex.join(args))
    try:
        result = subprocess.run(
            args,
            cwd=workdir,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise CommandError(f"Executable not found: {args[0]}") from exc
    if result.returncode != 0:
        raise CommandError(result.stderr.strip() or "Unknown command failure")
