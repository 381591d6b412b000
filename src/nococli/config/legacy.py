"""Readers for pre-unified configuration files and the migration merge."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from nococli.config.models import (
    GlobalSettings,
    UnifiedConfig,
    WorkspaceConfig,
    default_settings,
    parse_settings,
    parse_workspace,
)
from nococli.config.store import read_json
from nococli.core.logging import Logger, get_logger
from nococli.core.paths import ConfigPaths
from nococli.errors import ValidationError

__all__ = [
    "DEFAULT_WORKSPACE",
    "LegacySources",
    "load_legacy_sources",
    "merge_legacy",
    "migrate_legacy",
]

DEFAULT_WORKSPACE = "default"


@dataclass(slots=True)
class LegacySources:
    """Raw values recovered from the three legacy files."""

    flat: dict[str, Any] = field(default_factory=dict)
    settings: GlobalSettings = field(default_factory=default_settings)
    workspaces: dict[str, WorkspaceConfig] = field(default_factory=dict)


def _load_flat(paths: ConfigPaths, logger: Logger) -> dict[str, Any]:
    raw = read_json(paths.config_file, logger=logger)
    # A version tag means this is a unified document, not the flat format.
    if not isinstance(raw, dict) or "version" in raw:
        return {}
    flat: dict[str, Any] = {}
    for key in ("baseUrl", "baseId", "headers"):
        if raw.get(key) is not None:
            flat[key] = raw[key]
    return flat


def _load_settings(paths: ConfigPaths, logger: Logger) -> GlobalSettings:
    raw = read_json(paths.legacy_settings_file, logger=logger)
    if not isinstance(raw, dict):
        return default_settings()
    present = {key: value for key, value in raw.items() if value is not None}
    try:
        return parse_settings(present)
    except ValidationError as exc:
        logger.warning(
            "legacy-settings-invalid",
            path=str(paths.legacy_settings_file),
            error=exc.message,
        )
        return default_settings()


def _load_workspaces(
    paths: ConfigPaths,
    logger: Logger,
) -> dict[str, WorkspaceConfig]:
    raw = read_json(paths.legacy_aliases_file, logger=logger)
    if not isinstance(raw, dict):
        return {}
    workspaces: dict[str, WorkspaceConfig] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            logger.warning("legacy-workspace-skipped", workspace=name)
            continue
        try:
            workspaces[name] = parse_workspace(entry)
        except ValidationError as exc:
            logger.warning(
                "legacy-workspace-skipped",
                workspace=name,
                error=exc.message,
            )
    return workspaces


def load_legacy_sources(
    paths: ConfigPaths,
    *,
    logger: Logger | None = None,
) -> LegacySources:
    """Read every legacy file under ``paths``; missing files are empty."""

    log = logger or get_logger(__name__, component="config-legacy")
    return LegacySources(
        flat=_load_flat(paths, log),
        settings=_load_settings(paths, log),
        workspaces=_load_workspaces(paths, log),
    )


def merge_legacy(
    sources: LegacySources,
    *,
    logger: Logger | None = None,
) -> UnifiedConfig:
    """Combine legacy values into a unified document.

    The flat global config becomes the ``default`` workspace and is marked
    active. Its ``baseUrl``, ``baseId`` and headers win over an existing
    ``default`` entry from ``config.v2.json``. Without a flat config the first
    migrated workspace becomes active.
    """

    log = logger or get_logger(__name__, component="config-legacy")
    workspaces = {
        name: workspace.model_copy(deep=True)
        for name, workspace in sources.workspaces.items()
    }
    active: str | None = None

    flat = sources.flat
    if flat.get("baseUrl"):
        existing = workspaces.get(DEFAULT_WORKSPACE)
        candidate: dict[str, Any] = (
            existing.to_document() if existing is not None else {"aliases": {}}
        )
        candidate["baseUrl"] = flat["baseUrl"]
        flat_headers = flat.get("headers")
        if isinstance(flat_headers, dict):
            candidate["headers"] = {
                **candidate.get("headers", {}),
                **flat_headers,
            }
        if flat.get("baseId"):
            candidate["baseId"] = flat["baseId"]
        try:
            workspaces[DEFAULT_WORKSPACE] = parse_workspace(candidate)
            active = DEFAULT_WORKSPACE
        except ValidationError as exc:
            log.warning("legacy-config-skipped", error=exc.message)

    if active is None and workspaces:
        active = next(iter(workspaces))

    return UnifiedConfig(
        active_workspace=active,
        workspaces=workspaces,
        settings=sources.settings.model_copy(deep=True),
    )


def migrate_legacy(
    paths: ConfigPaths,
    *,
    logger: Logger | None = None,
) -> UnifiedConfig:
    """Return the unified document assembled from legacy files."""

    log = logger or get_logger(__name__, component="config-legacy")
    return merge_legacy(load_legacy_sources(paths, logger=log), logger=log)
