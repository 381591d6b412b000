"""Durable persistence for the unified configuration document."""

from __future__ import annotations

import json
import os
import shutil
import time
from pathlib import Path
from typing import Any, Callable

from nococli.config.models import (
    CONFIG_VERSION,
    GlobalSettings,
    UnifiedConfig,
    WorkspaceConfig,
    default_settings,
    parse_document,
    parse_settings,
    parse_workspace,
)
from nococli.core.logging import Logger, get_logger
from nococli.errors import PersistenceError, ValidationError

__all__ = ["ConfigStore", "read_json"]

_REPLACE_ATTEMPTS = 3
_REPLACE_RETRY_DELAY = 0.05


def read_json(path: Path, *, logger: Logger) -> Any | None:
    """Return the decoded JSON payload at ``path`` or ``None``.

    Missing files, unreadable files and malformed JSON all yield ``None``;
    the latter two are logged as warnings.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("config-read-failed", path=str(path), error=str(exc))
        return None
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("config-malformed", path=str(path), error=str(exc))
        return None


class ConfigStore:
    """Read and atomically write ``config.json``.

    Writes go through ``<path>.tmp`` and, when a previous document exists,
    ``<path>.bak``. The rename onto the target is retried a few times to
    ride out transient locks held by other processes.

    Example:
        >>> from pathlib import Path
        >>> store = ConfigStore(Path("/tmp/noco/config.json"))
        >>> store.temp_path.name
        'config.json.tmp'
    """

    def __init__(
        self,
        path: Path,
        *,
        logger: Logger | None = None,
        sleep: Callable[[float], None] | None = None,
        attempts: int = _REPLACE_ATTEMPTS,
        retry_delay: float = _REPLACE_RETRY_DELAY,
    ) -> None:
        self._path = path
        self._logger = logger or get_logger(__name__, component="config-store")
        self._sleep = sleep or time.sleep
        self._attempts = max(1, attempts)
        self._retry_delay = retry_delay
        self._keep_backup = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def temp_path(self) -> Path:
        return self._path.with_name(f"{self._path.name}.tmp")

    @property
    def backup_path(self) -> Path:
        return self._path.with_name(f"{self._path.name}.bak")

    def read_raw(self) -> Any | None:
        """Return the decoded document without validation."""

        return read_json(self._path, logger=self._logger)

    def load(self) -> UnifiedConfig | None:
        """Return the stored version-2 document, normalized.

        ``None`` means the caller should fall back to migration or defaults:
        the file is missing, unparsable, or tagged with another version.
        Workspaces that fail validation are skipped and invalid settings
        fall back to their defaults; either case makes the next
        :meth:`save` keep ``<path>.bak``.
        """

        raw = self.read_raw()
        if not isinstance(raw, dict) or raw.get("version") != CONFIG_VERSION:
            return None
        return self._normalize(raw)

    def _normalize(self, raw: dict[str, Any]) -> UnifiedConfig:
        try:
            return parse_document(raw)
        except ValidationError as exc:
            self._logger.warning(
                "config-invalid",
                path=str(self._path),
                error=exc.message,
            )

        stored = raw.get("workspaces")
        if stored is not None and not isinstance(stored, dict):
            self._logger.warning(
                "config-workspaces-invalid",
                path=str(self._path),
                value_type=type(stored).__name__,
            )
            self._keep_backup = True
            stored = None

        workspaces: dict[str, WorkspaceConfig] = {}
        for name, entry in (stored or {}).items():
            try:
                workspaces[str(name)] = parse_workspace(entry)
            except ValidationError as exc:
                self._logger.warning(
                    "config-workspace-skipped",
                    path=str(self._path),
                    workspace=name,
                    error=exc.message,
                )
                self._keep_backup = True

        active = raw.get("activeWorkspace")
        return UnifiedConfig(
            active_workspace=active if isinstance(active, str) else None,
            workspaces=workspaces,
            settings=self._normalize_settings(raw.get("settings")),
        )

    def _normalize_settings(self, raw: Any) -> GlobalSettings:
        document = default_settings().to_document()
        if raw is None:
            return parse_settings(document)
        if not isinstance(raw, dict):
            self._logger.warning(
                "config-settings-reset",
                path=str(self._path),
                value_type=type(raw).__name__,
            )
            self._keep_backup = True
            return parse_settings(document)

        for key, value in raw.items():
            if value is None:
                continue
            candidate = {**document, key: value}
            try:
                parse_settings(candidate)
            except ValidationError as exc:
                self._logger.warning(
                    "config-setting-reset",
                    path=str(self._path),
                    setting=key,
                    error=exc.message,
                )
                self._keep_backup = True
                continue
            document = candidate
        return parse_settings(document)

    def save(self, config: UnifiedConfig, *, keep_backup: bool = False) -> None:
        """Persist ``config`` using the temp file, backup and rename protocol.

        The backup is removed after a successful replace unless
        ``keep_backup`` is set or the last :meth:`load` dropped entries.

        Raises:
            PersistenceError: If the document could not be durably written.
        """

        path = self._path
        temp_path = self.temp_path
        backup_path = self.backup_path
        keep_backup = keep_backup or self._keep_backup
        text = json.dumps(config.to_document(), indent=2) + "\n"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(path, "create directory for", exc) from exc

        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as exc:
            raise PersistenceError(path, "write temporary file for", exc) from exc

        if not temp_path.exists() or temp_path.stat().st_size == 0:
            raise PersistenceError(path, "verify temporary file for")

        if not path.exists():
            try:
                os.replace(temp_path, path)
            except OSError as exc:
                self._best_effort(
                    "config-temp-cleanup-failed",
                    lambda: temp_path.unlink(missing_ok=True),
                )
                raise PersistenceError(path, "replace", exc) from exc
            self._logger.info("config-saved", path=str(path))
            return

        self._best_effort(
            "config-backup-failed",
            lambda: shutil.copy2(path, backup_path),
        )

        last_error: OSError | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                path.unlink(missing_ok=True)
                os.replace(temp_path, path)
            except OSError as exc:
                last_error = exc
                self._logger.debug(
                    "config-replace-retry",
                    path=str(path),
                    attempt=attempt,
                    error=str(exc),
                )
                if attempt < self._attempts:
                    self._sleep(self._retry_delay)
                continue
            last_error = None
            break

        if last_error is not None:
            self._best_effort(
                "config-temp-cleanup-failed",
                lambda: temp_path.unlink(missing_ok=True),
            )
            if backup_path.exists() and not path.exists():
                self._best_effort(
                    "config-restore-failed",
                    lambda: shutil.copy2(backup_path, path),
                )
            raise PersistenceError(path, "replace", last_error) from last_error

        if keep_backup:
            self._keep_backup = False
            self._logger.info("config-backup-kept", path=str(backup_path))
        else:
            self._best_effort(
                "config-backup-cleanup-failed",
                lambda: backup_path.unlink(missing_ok=True),
            )
        self._logger.info("config-saved", path=str(path))

    def _best_effort(self, event: str, action: Callable[[], object]) -> bool:
        """Run a cleanup ``action``, logging instead of raising on OSError."""

        try:
            action()
        except OSError as exc:
            self._logger.warning(event, path=str(self._path), error=str(exc))
            return False
        return True
