"""
Logging setup for gallerycache entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are installed here by the CLI.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = "INFO", log_file: Path | None = None) -> None:
    """
    Attach console (and optional file) handlers to the ``gallerycache`` logger.

    Calling this again replaces the handlers installed by a previous call.

    Parameters
    ----------
    level : str | int
        Log level name or number.
    log_file : Path | None
        Optional file to mirror log output into. Parent directories are
        created as needed.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root_logger = logging.getLogger("gallerycache")

    for handler in list(root_logger.handlers):
        if getattr(handler, "_gallerycache_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler._gallerycache_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(formatter)
        file_handler._gallerycache_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)
