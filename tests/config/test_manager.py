"""Tests for :class:`nococli.config.ConfigManager`."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from nococli.config import ConfigManager, GlobalSettings
from nococli.errors import PersistenceError, ValidationError


def _prod() -> dict:
    return {
        "baseUrl": "https://x.test",
        "headers": {"xc-token": "t"},
        "baseId": "p_prod",
    }


def test_round_trip_survives_reload(
    make_manager: Callable[..., ConfigManager],
    config_dir: Path,
) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())
    manager.set_active_workspace("prod")
    manager.set_alias("prod", "users", "tbl_users")
    manager.update_settings({"timeoutMs": 5000})

    reloaded = ConfigManager(config_dir, env={})

    assert reloaded.to_document() == manager.to_document()
    assert reloaded.get_active_workspace_name() == "prod"
    assert reloaded.get_workspace("prod").aliases == {"users": "tbl_users"}
    assert reloaded.get_settings().timeout_ms == 5000


def test_loading_is_idempotent(
    make_manager: Callable[..., ConfigManager],
    config_dir: Path,
) -> None:
    make_manager().add_workspace("prod", _prod())
    before = (config_dir / "config.json").read_bytes()

    ConfigManager(config_dir, env={})
    ConfigManager(config_dir, env={})

    assert (config_dir / "config.json").read_bytes() == before


def test_add_workspace_rejects_invalid_config(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager()

    with pytest.raises(ValidationError):
        manager.add_workspace("bad", {"baseUrl": "nope"})
    with pytest.raises(ValidationError):
        manager.add_workspace("", _prod())

    assert manager.list_workspaces() == []


def test_get_workspace_returns_copy(make_manager: Callable[..., ConfigManager]) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())

    copy = manager.get_workspace("prod")
    copy.headers["xc-token"] = "mutated"

    assert manager.get_workspace("prod").headers == {"xc-token": "t"}
    assert manager.get_workspace("missing") is None


def test_update_workspace_changes_selected_fields(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())

    manager.update_workspace("prod", base_id="p_new", workspace_id="ws_1")

    workspace = manager.get_workspace("prod")
    assert workspace.base_url == "https://x.test"
    assert workspace.base_id == "p_new"
    assert workspace.workspace_id == "ws_1"


def test_remove_active_workspace_clears_pointer(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())
    manager.set_active_workspace("prod")

    assert manager.remove_workspace("prod") is True
    assert manager.remove_workspace("prod") is False
    assert manager.get_active_workspace_name() is None
    assert "activeWorkspace" not in manager.to_document()


def test_dangling_active_pointer_reads_as_none(config_dir: Path) -> None:
    config_dir.mkdir(parents=True)
    (config_dir / "config.json").write_text(
        json.dumps(
            {
                "version": 2,
                "activeWorkspace": "gone",
                "workspaces": {"prod": {"baseUrl": "https://x.test"}},
            }
        ),
        encoding="utf-8",
    )

    manager = ConfigManager(config_dir, env={})

    assert manager.get_active_workspace_name() is None
    assert manager.get_active_workspace() is None
    assert manager.to_document()["activeWorkspace"] == "gone"


@pytest.mark.parametrize(
    "operation",
    [
        lambda m: m.set_active_workspace("missing"),
        lambda m: m.set_alias("missing", "users", "tbl"),
        lambda m: m.remove_alias("missing", "users"),
        lambda m: m.clear_aliases("missing"),
        lambda m: m.set_header("missing", "xc-token", "t"),
        lambda m: m.remove_header("missing", "xc-token"),
        lambda m: m.update_workspace("missing", base_id="p"),
        lambda m: m.get_effective_config(workspace_name="missing"),
    ],
)
def test_operations_on_missing_workspace_raise(
    make_manager: Callable[..., ConfigManager],
    operation: Callable[[ConfigManager], object],
) -> None:
    manager = make_manager()

    with pytest.raises(ValidationError, match="Workspace not found: missing"):
        operation(manager)


def test_alias_management(make_manager: Callable[..., ConfigManager]) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())

    manager.set_alias("prod", "users", "tbl_users")
    manager.set_alias("prod", "orders", "tbl_orders")

    assert manager.remove_alias("prod", "users") is True
    assert manager.remove_alias("prod", "users") is False
    assert manager.clear_aliases("prod") == 1
    assert manager.clear_aliases("prod") == 0
    assert manager.get_workspace("prod").aliases == {}

    with pytest.raises(ValidationError):
        manager.set_alias("prod", "", "tbl")
    with pytest.raises(ValidationError):
        manager.set_alias("prod", "users", "")


def test_header_management(make_manager: Callable[..., ConfigManager]) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())

    manager.set_header("prod", "x-extra", "1")
    assert manager.get_workspace("prod").headers == {"xc-token": "t", "x-extra": "1"}

    assert manager.remove_header("prod", "xc-token") is True
    assert manager.remove_header("prod", "xc-token") is False
    assert manager.get_workspace("prod").headers == {"x-extra": "1"}


def test_update_settings_merges_and_validates(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager()

    manager.update_settings({"retry_count": 5})
    manager.update_settings(GlobalSettings(timeout_ms=100))

    settings = manager.get_settings()
    assert settings.timeout_ms == 100
    assert settings.retry_count == 3

    with pytest.raises(ValidationError):
        manager.update_settings({"timeoutMs": 0})
    with pytest.raises(ValidationError, match="Unknown setting"):
        manager.update_settings({"colour": "blue"})
    assert manager.get_settings().timeout_ms == 100

    manager.reset_settings()
    assert manager.get_settings() == GlobalSettings()


def test_effective_config_precedence(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager(
        env={"NOCO_BASE_URL": "https://env.test", "NOCO_TOKEN": "env-token"},
    )
    manager.add_workspace("prod", _prod())
    manager.set_active_workspace("prod")
    manager.update_settings({"timeoutMs": 5000, "retryCount": 1})

    effective = manager.get_effective_config(
        {"timeout_ms": 100, "retry_count": None}
    )

    assert effective.workspace_name == "prod"
    assert effective.workspace.base_url == "https://env.test"
    assert effective.workspace.headers["xc-token"] == "env-token"
    assert effective.workspace.base_id == "p_prod"
    assert effective.settings.timeout_ms == 100
    assert effective.settings.retry_count == 1
    assert effective.settings.retry_delay == 1000
    assert manager.get_workspace("prod").base_url == "https://x.test"


def test_effective_config_env_only_workspace(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager(env={"NOCO_BASE_URL": "https://env.test"})

    effective = manager.get_effective_config()

    assert effective.workspace.base_url == "https://env.test"
    assert effective.workspace_name is None


def test_effective_config_without_workspace(
    make_manager: Callable[..., ConfigManager],
) -> None:
    effective = make_manager().get_effective_config()

    assert effective.workspace is None
    assert effective.settings == GlobalSettings()


def test_effective_config_rejects_invalid_override(
    make_manager: Callable[..., ConfigManager],
) -> None:
    with pytest.raises(ValidationError, match="timeoutMs"):
        make_manager().get_effective_config({"timeoutMs": -1})


def test_effective_config_named_workspace(
    make_manager: Callable[..., ConfigManager],
) -> None:
    manager = make_manager()
    manager.add_workspace("prod", _prod())
    manager.add_workspace("staging", {"baseUrl": "https://staging.test"})
    manager.set_active_workspace("prod")

    effective = manager.get_effective_config(workspace_name="staging")

    assert effective.workspace_name == "staging"
    assert effective.workspace.base_url == "https://staging.test"


def test_failed_save_leaves_memory_unchanged(
    make_manager: Callable[..., ConfigManager],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    manager = make_manager(sleep=lambda _delay: None)
    manager.add_workspace("prod", _prod())
    before = manager.to_document()

    def locked(_src, _dst):
        raise PermissionError("file locked")

    monkeypatch.setattr(os, "replace", locked)

    with pytest.raises(PersistenceError):
        manager.add_workspace("staging", {"baseUrl": "https://staging.test"})

    assert manager.to_document() == before
    assert manager.list_workspaces() == ["prod"]


def test_env_config_dir_is_honoured(tmp_path: Path) -> None:
    target = tmp_path / "from-env"

    manager = ConfigManager(env={"NOCODB_SETTINGS_DIR": str(target)})

    assert manager.config_dir == target
    assert manager.config_path == target / "config.json"
    assert manager.config_path.exists()


def test_config_dir_pointing_at_file_is_rejected(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ValidationError):
        ConfigManager(blocker, env={})
