"""Application-wide logger writing to platformdirs user_log_dir."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

from platformdirs import user_log_dir

_APP_NAME = "collabdesk_cli"
_LOG_FILE = "collabdesk.log"
_LEVEL_ENV = "COLLABDESK_LOG_LEVEL"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_BACKUP_COUNT = 3

_logger: logging.Logger | None = None


def _configure() -> logging.Logger:
    log_dir = Path(user_log_dir(_APP_NAME))
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_dir / _LOG_FILE,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    logger = logging.getLogger(_APP_NAME)
    logger.setLevel(os.environ.get(_LEVEL_ENV, "DEBUG").upper())
    if not logger.handlers:
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(component: str | None = None) -> logging.Logger:
    """Return the application logger, or one of its children.

    The root application logger is configured on first call. Components log
    through ``collabdesk_cli.<component>`` so the file shows where a line
    came from.
    """
    global _logger
    if _logger is None:
        _logger = _configure()
    if component:
        return _logger.getChild(component)
    return _logger
