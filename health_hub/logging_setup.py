"""Rotating, tagged log output for the health hub.

Every hub log line goes to one logger with a size-rotated file handler and,
unless ``HUB_LOG_TO_CONSOLE`` is off, a stderr handler. Lines look like::

    [2025-01-15T08:00:00Z] [INFO] [SYNC] Health data refreshed: steps=8421, ...

The tag names the subsystem that wrote the line (``HUB``, ``SYNC``, ``CACHE``
and so on; see :data:`health_hub.infrastructure.log_utils.TAG_MAP`).
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from health_hub.config import get_env, settings

LOGGER_NAME = "health_hub"
LINE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(tag)s] %(message)s"
DEFAULT_TAG = "GEN"

_configured = False


class TaggedLogger(logging.LoggerAdapter):
    """Adapter filling the ``tag`` field unless the call passes its own."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("tag", self.extra["tag"])
        kwargs["extra"] = extra
        return msg, kwargs


def _level() -> int:
    name = str(get_env("HUB_LOG_LEVEL", default="INFO")).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _formatter() -> logging.Formatter:
    formatter = logging.Formatter(LINE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime
    return formatter


def configure_logging(log_path: Optional[Path] = None) -> logging.Logger:
    """(Re)build the hub logger's handlers and return the logger.

    Rotation limits come from ``HUB_LOG_MAX_BYTES`` and ``HUB_LOG_BACKUP_COUNT``.
    An unwritable log file is reported on stderr and leaves the console
    handler as the only output.
    """
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    reset_logging()
    logger.setLevel(_level())
    formatter = _formatter()

    path = Path(log_path) if log_path is not None else settings.log_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=settings.HUB_LOG_MAX_BYTES,
            backupCount=settings.HUB_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as exc:
        print(f"health_hub: cannot write log file {path}: {exc}", file=sys.stderr)
    else:
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if get_env("HUB_LOG_TO_CONSOLE", default=True):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    logger.propagate = False
    _configured = True
    return logger


def get_logger(tag: str = DEFAULT_TAG) -> TaggedLogger:
    """Tagged adapter over the hub logger, configured on first use."""

    logger = logging.getLogger(LOGGER_NAME) if _configured else configure_logging()
    return TaggedLogger(logger, {"tag": tag})


def reset_logging() -> None:
    """Close and detach every handler; the next :func:`get_logger` reconfigures."""

    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    _configured = False
