"""Configuration directory helpers for :mod:`nococli`."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

__all__ = [
    "CONFIG_DIR_ENV_VARS",
    "ConfigPaths",
    "resolve_config_dir",
    "resolve_config_paths",
]

# Checked in order; the first non-empty value wins.
CONFIG_DIR_ENV_VARS: tuple[str, ...] = ("NOCODB_SETTINGS_DIR", "NOCO_CONFIG_DIR")

_DEFAULT_DIRNAME = ".nocodb-cli"


@dataclass(frozen=True, slots=True)
class ConfigPaths:
    """Resolved locations inside a configuration directory.

    Example:
        >>> from pathlib import Path
        >>> paths = ConfigPaths.from_dir(Path("/tmp/noco"))
        >>> paths.logs_dir.name
        'logs'
    """

    config_dir: Path
    config_file: Path
    legacy_settings_file: Path
    legacy_aliases_file: Path
    logs_dir: Path

    @classmethod
    def from_dir(cls, config_dir: Path) -> "ConfigPaths":
        return cls(
            config_dir=config_dir,
            config_file=config_dir / "config.json",
            legacy_settings_file=config_dir / "settings.json",
            legacy_aliases_file=config_dir / "config.v2.json",
            logs_dir=config_dir / "logs",
        )


def resolve_config_dir(
    override: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Resolve the configuration directory.

    Precedence: explicit ``override``, then ``NOCODB_SETTINGS_DIR``, then
    ``NOCO_CONFIG_DIR``, then ``~/.nocodb-cli``.

    Raises:
        ValueError: If the resolved path points to a regular file.
    """

    environ = os.environ if env is None else env

    candidate: Path | None = None
    if override:
        candidate = Path(override)
    else:
        for name in CONFIG_DIR_ENV_VARS:
            value = environ.get(name)
            if value:
                candidate = Path(value)
                break
    if candidate is None:
        candidate = Path.home() / _DEFAULT_DIRNAME

    resolved = candidate.expanduser()
    if resolved.exists() and resolved.is_file():
        raise ValueError(f"Config directory path is a file: {resolved}")
    return resolved


def resolve_config_paths(
    override: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ConfigPaths:
    """Return :class:`ConfigPaths` for the resolved configuration directory."""

    return ConfigPaths.from_dir(resolve_config_dir(override, env=env))
