"""One-call logging for hub modules.

Modules call ``log_utils.log_message(msg, level)`` through the module
attribute so tests can swap it out. The tag is derived from the calling
module's name unless one is passed explicitly.
"""

from __future__ import annotations

import logging
import sys

from health_hub.logging_setup import DEFAULT_TAG, get_logger

# Leaf-module keyword -> tag. Checked in order, first match wins.
TAG_MAP = {
    "hub": "HUB",
    "broadcast": "HUB",
    "repository": "SYNC",
    "controller": "CTRL",
    "cache": "CACHE",
    "provider": "PROV",
    "cli": "CLI",
    "main": "CLI",
    "status": "CLI",
    "container": "SYS",
}

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def tag_for_module(module_name: str) -> str:
    # The package itself is called health_hub, so only the leaf is matched.
    leaf = module_name.lower().rsplit(".", 1)[-1]
    for keyword, tag in TAG_MAP.items():
        if keyword in leaf:
            return tag
    return DEFAULT_TAG


def log_message(msg: str, level: str = "INFO", tag: str | None = None, **kwargs) -> None:
    """Write ``msg`` to the hub log.

    ``level`` is a name such as ``"WARN"``; unknown names are logged at INFO
    after a warning. Extra keyword arguments (``exc_info`` and the like) are
    passed to :meth:`logging.Logger.log`.
    """
    if tag is None:
        tag = tag_for_module(sys._getframe(1).f_globals.get("__name__", ""))
    logger = get_logger(tag)

    numeric = _LEVELS.get(str(level).upper())
    if numeric is None:
        logger.warning("Unknown log level %r; logging at INFO", level)
        numeric = logging.INFO
    logger.log(numeric, msg, **kwargs)
