"""Logging setup and config-directory resolution for :mod:`nococli`."""

from __future__ import annotations

from .logging import configure_logging, get_logger, resolve_log_level
from .paths import ConfigPaths, resolve_config_dir, resolve_config_paths

__all__ = [
    "ConfigPaths",
    "configure_logging",
    "get_logger",
    "resolve_config_dir",
    "resolve_config_paths",
    "resolve_log_level",
]
