"""Logging setup shared by the application factory and scripts."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once with the project's format.

    Args:
        level: Logging level name or number (e.g. "DEBUG", logging.INFO).
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("landcover").setLevel(level)
