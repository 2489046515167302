"""
Package-wide logging setup.

Usage:
    from .logging_utils import get_logger
    logger = get_logger(__name__)

Environment variables:
    FORTRESS_VOX_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
"""

import logging
import os
from typing import Optional

ROOT_LOGGER_NAME = "fortress_vox"

_LEVEL_NAMES = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _resolve_level(env_value: Optional[str]) -> int:
    if not env_value:
        return logging.INFO
    return _LEVEL_NAMES.get(env_value.strip().upper(), logging.INFO)


def _configure_root_once() -> None:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return
    level = _resolve_level(os.getenv("FORTRESS_VOX_LOG_LEVEL"))
    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt="%(levelname)s | %(name)s | %(message)s"))
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return a logger below the package root logger.

    Module names already under the package (``fortress_vox.map``) are used
    as-is, anything else becomes a child of the root logger.
    """
    _configure_root_once()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not name or name == ROOT_LOGGER_NAME:
        return root
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return root.getChild(name)
