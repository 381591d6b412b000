"""Configuration package for :mod:`nococli`."""

from __future__ import annotations

from .aliases import ResolvedAlias, resolve_alias
from .environment import AUTH_HEADER, apply_env_overrides
from .manager import ConfigManager, EffectiveConfig
from .models import (
    CONFIG_VERSION,
    DEFAULT_RETRY_STATUS_CODES,
    GlobalSettings,
    UnifiedConfig,
    WorkspaceConfig,
    default_settings,
)
from .store import ConfigStore

__all__ = [
    "AUTH_HEADER",
    "CONFIG_VERSION",
    "DEFAULT_RETRY_STATUS_CODES",
    "ConfigManager",
    "ConfigStore",
    "EffectiveConfig",
    "GlobalSettings",
    "ResolvedAlias",
    "UnifiedConfig",
    "WorkspaceConfig",
    "apply_env_overrides",
    "default_settings",
    "resolve_alias",
]
