"""Configuration manager orchestrating load, migration and mutations."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from nococli.config.aliases import ResolvedAlias, resolve_alias
from nococli.config.environment import apply_env_overrides
from nococli.config.legacy import migrate_legacy
from nococli.config.models import (
    GlobalSettings,
    UnifiedConfig,
    WorkspaceConfig,
    default_settings,
    parse_settings,
    parse_workspace,
)
from nococli.config.store import ConfigStore
from nococli.core.logging import Logger, get_logger
from nococli.core.paths import ConfigPaths, resolve_config_paths
from nococli.errors import ValidationError

__all__ = ["ConfigManager", "EffectiveConfig", "normalize_settings_keys"]


# Both the attribute name and the document key address a setting.
_SETTING_KEYS: dict[str, str] = {}
for _name, _field in GlobalSettings.model_fields.items():
    _SETTING_KEYS[_name] = _field.alias or _name
    _SETTING_KEYS[_field.alias or _name] = _field.alias or _name


def normalize_settings_keys(
    values: Mapping[str, Any],
    *,
    drop_none: bool = False,
) -> dict[str, Any]:
    """Map snake_case or camelCase setting keys onto document keys.

    Raises:
        ValidationError: If a key does not name a known setting.
    """

    normalized: dict[str, Any] = {}
    for key, value in values.items():
        if drop_none and value is None:
            continue
        document_key = _SETTING_KEYS.get(key)
        if document_key is None:
            raise ValidationError(
                f"Unknown setting: {key}",
                field_errors={key: ["unknown setting"]},
            )
        normalized[document_key] = value
    return normalized


@dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Workspace and settings after applying every precedence layer."""

    workspace: WorkspaceConfig | None
    settings: GlobalSettings
    workspace_name: str | None = None


class ConfigManager:
    """Own the unified configuration document for one config directory.

    Every mutating call validates first, writes the new document through
    :class:`ConfigStore`, and only then swaps the in-memory copy, so memory and
    disk agree whenever a call returns.

    Example:
        >>> manager = ConfigManager("/tmp/noco-example", env={})
        >>> manager.add_workspace("prod", {"baseUrl": "https://x.test"})
        >>> manager.list_workspaces()
        ['prod']
    """

    def __init__(
        self,
        config_dir: str | os.PathLike[str] | None = None,
        *,
        env: Mapping[str, str] | None = None,
        logger: Logger | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._env = os.environ if env is None else env
        self._logger = logger or get_logger(
            __name__,
            component="config-manager",
        )
        try:
            self._paths: ConfigPaths = resolve_config_paths(
                config_dir,
                env=self._env,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self._store = ConfigStore(
            self._paths.config_file,
            logger=self._logger,
            sleep=sleep,
        )
        self._config = self._load_or_migrate()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------
    @property
    def config_dir(self) -> Path:
        return self._paths.config_dir

    @property
    def config_path(self) -> Path:
        return self._paths.config_file

    @property
    def paths(self) -> ConfigPaths:
        return self._paths

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------
    def _load_or_migrate(self) -> UnifiedConfig:
        stored = self._store.load()
        if stored is not None:
            return stored

        replacing = self._paths.config_file.exists()
        if replacing:
            self._logger.warning(
                "config-migrating",
                path=str(self._paths.config_file),
            )
        migrated = migrate_legacy(self._paths, logger=self._logger)
        self._store.save(migrated, keep_backup=replacing)
        self._logger.info(
            "config-migrated",
            path=str(self._paths.config_file),
            workspaces=len(migrated.workspaces),
            active=migrated.active_workspace,
        )
        return migrated

    def _commit(self, **changes: Any) -> None:
        candidate = self._config.model_copy(deep=True, update=changes)
        self._store.save(candidate)
        self._config = candidate

    def _require_workspace(self, name: str) -> WorkspaceConfig:
        workspace = self._config.workspaces.get(name)
        if workspace is None:
            raise ValidationError(f"Workspace not found: {name}")
        return workspace

    def _replace_workspace(self, name: str, document: dict[str, Any]) -> None:
        workspaces = dict(self._config.workspaces)
        workspaces[name] = parse_workspace(document)
        self._commit(workspaces=workspaces)

    def to_document(self) -> dict[str, Any]:
        """Return the full configuration document as stored on disk."""

        return self._config.to_document()

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------
    def add_workspace(
        self,
        name: str,
        config: WorkspaceConfig | Mapping[str, Any],
    ) -> None:
        """Validate ``config`` and store it under ``name``, replacing any."""

        if not name:
            raise ValidationError("Workspace name is required")
        workspace = parse_workspace(config)
        workspaces = dict(self._config.workspaces)
        workspaces[name] = workspace
        self._commit(workspaces=workspaces)
        self._logger.info("workspace-saved", workspace=name)

    def update_workspace(
        self,
        name: str,
        *,
        base_url: str | None = None,
        base_id: str | None = None,
        workspace_id: str | None = None,
    ) -> None:
        """Change selected scalar fields of an existing workspace."""

        document = self._require_workspace(name).to_document()
        if base_url is not None:
            document["baseUrl"] = base_url
        if base_id is not None:
            document["baseId"] = base_id
        if workspace_id is not None:
            document["workspaceId"] = workspace_id
        self._replace_workspace(name, document)

    def remove_workspace(self, name: str) -> bool:
        """Delete a workspace, clearing the active pointer if it matched."""

        if name not in self._config.workspaces:
            return False
        workspaces = dict(self._config.workspaces)
        del workspaces[name]
        active = self._config.active_workspace
        if active == name:
            active = None
        self._commit(workspaces=workspaces, active_workspace=active)
        self._logger.info("workspace-removed", workspace=name)
        return True

    def get_workspace(self, name: str) -> WorkspaceConfig | None:
        """Return an independent copy of the named workspace."""

        workspace = self._config.workspaces.get(name)
        if workspace is None:
            return None
        return workspace.model_copy(deep=True)

    def list_workspaces(self) -> list[str]:
        return list(self._config.workspaces)

    def set_active_workspace(self, name: str) -> None:
        self._require_workspace(name)
        self._commit(active_workspace=name)

    def get_active_workspace_name(self) -> str | None:
        """Return the active name, or ``None`` if it is unset or dangling."""

        name = self._config.active_workspace
        if name is None or name not in self._config.workspaces:
            return None
        return name

    def get_active_workspace(self) -> WorkspaceConfig | None:
        name = self.get_active_workspace_name()
        return self.get_workspace(name) if name is not None else None

    def set_header(self, name: str, key: str, value: str) -> None:
        if not key:
            raise ValidationError("Header name is required")
        document = self._require_workspace(name).to_document()
        document["headers"] = {**document.get("headers", {}), key: value}
        self._replace_workspace(name, document)

    def remove_header(self, name: str, key: str) -> bool:
        workspace = self._require_workspace(name)
        if key not in workspace.headers:
            return False
        document = workspace.to_document()
        document["headers"] = {
            header: value
            for header, value in workspace.headers.items()
            if header != key
        }
        self._replace_workspace(name, document)
        return True

    # ------------------------------------------------------------------
    # Aliases
    # ------------------------------------------------------------------
    def set_alias(self, workspace_name: str, alias: str, target_id: str) -> None:
        """Map ``alias`` to ``target_id`` inside ``workspace_name``.

        Raises:
            ValidationError: If the workspace does not exist or a value is
                empty.
        """

        if not alias:
            raise ValidationError("Alias name is required")
        if not target_id:
            raise ValidationError(f"Alias target is required for {alias!r}")
        document = self._require_workspace(workspace_name).to_document()
        document["aliases"] = {**document.get("aliases", {}), alias: target_id}
        self._replace_workspace(workspace_name, document)
        self._logger.info(
            "alias-saved",
            workspace=workspace_name,
            alias=alias,
        )

    def remove_alias(self, workspace_name: str, alias: str) -> bool:
        workspace = self._require_workspace(workspace_name)
        if alias not in workspace.aliases:
            return False
        document = workspace.to_document()
        document["aliases"] = {
            key: value for key, value in workspace.aliases.items() if key != alias
        }
        self._replace_workspace(workspace_name, document)
        self._logger.info(
            "alias-removed",
            workspace=workspace_name,
            alias=alias,
        )
        return True

    def clear_aliases(self, workspace_name: str) -> int:
        """Remove every alias of a workspace and return how many were set."""

        workspace = self._require_workspace(workspace_name)
        count = len(workspace.aliases)
        if count:
            document = workspace.to_document()
            document["aliases"] = {}
            self._replace_workspace(workspace_name, document)
        return count

    def resolve_alias(self, value: str) -> ResolvedAlias:
        """Resolve ``value`` against stored aliases and workspaces."""

        resolved = resolve_alias(
            value,
            self._config.workspaces,
            self.get_active_workspace_name(),
        )
        if resolved.workspace is None:
            return resolved
        return dataclasses.replace(
            resolved,
            workspace=resolved.workspace.model_copy(deep=True),
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def get_settings(self) -> GlobalSettings:
        return self._config.settings.model_copy(deep=True)

    def update_settings(
        self,
        partial: GlobalSettings | Mapping[str, Any],
    ) -> None:
        """Merge ``partial`` onto the stored settings and persist.

        Nothing is applied when any merged field is invalid.
        """

        if isinstance(partial, GlobalSettings):
            patch = partial.to_document()
        else:
            patch = normalize_settings_keys(partial)
        merged = {**self._config.settings.to_document(), **patch}
        settings = parse_settings(merged)
        self._commit(settings=settings)
        self._logger.info("settings-updated", keys=sorted(patch))

    def reset_settings(self) -> None:
        self._commit(settings=default_settings())

    # ------------------------------------------------------------------
    # Effective configuration
    # ------------------------------------------------------------------
    def get_effective_config(
        self,
        cli_overrides: Mapping[str, Any] | None = None,
        *,
        workspace_name: str | None = None,
    ) -> EffectiveConfig:
        """Resolve the workspace and settings used for remote calls.

        Precedence, highest first: ``cli_overrides``, ``NOCO_*`` environment
        variables, the stored workspace, stored settings, built-in defaults.

        Args:
            cli_overrides: Setting values from command-line flags. ``None``
                values are ignored.
            workspace_name: Use this stored workspace instead of the active
                one.

        Raises:
            ValidationError: If a workspace name is unknown or a merged
                value is invalid.
        """

        if workspace_name is not None:
            self._require_workspace(workspace_name)
            name: str | None = workspace_name
        else:
            name = self.get_active_workspace_name()

        stored = self.get_workspace(name) if name is not None else None
        workspace = apply_env_overrides(stored, self._env)

        overrides = normalize_settings_keys(cli_overrides or {}, drop_none=True)
        merged = {
            **default_settings().to_document(),
            **self._config.settings.to_document(),
            **overrides,
        }
        return EffectiveConfig(
            workspace=workspace,
            settings=parse_settings(merged),
            workspace_name=name if workspace is not None else None,
        )
