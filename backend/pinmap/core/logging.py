"""Logging setup shared by the API application and offline scripts."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install the root handler and format used across pinmap.

    Repeated calls only adjust the level, so the app factory and the CLI
    can both call it safely.

    Args:
        level: Logging level name (e.g. "DEBUG") or numeric level.
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
