"""CLI tests for ``noco alias``."""

from __future__ import annotations

import json

import pytest


@pytest.fixture
def prod(invoke) -> None:
    result = invoke(
        "workspace",
        "add",
        "prod",
        "https://x.test",
        "secret",
        "--base",
        "p_prod",
    )
    assert result.exit_code == 0, result.output


def test_bare_alias_requires_active_workspace(invoke, prod) -> None:
    result = invoke("alias", "set", "users", "tbl_users")

    assert result.exit_code == 4
    assert "No active workspace" in result.output


def test_namespaced_alias_round_trip(invoke, prod) -> None:
    set_result = invoke("alias", "set", "prod.users", "tbl_users")
    resolved = invoke("alias", "resolve", "prod.users")
    listed = invoke("alias", "list", "prod")

    assert set_result.exit_code == 0
    assert "Alias 'prod.users' set to tbl_users" in set_result.stdout
    assert json.loads(resolved.stdout) == {"id": "tbl_users", "workspace": "prod"}
    assert json.loads(listed.stdout) == {"users": "tbl_users"}


def test_bare_alias_uses_active_workspace(invoke, prod) -> None:
    invoke("workspace", "use", "prod")

    invoke("alias", "set", "orders", "tbl_orders")
    resolved = invoke("alias", "resolve", "orders")
    listed = invoke("alias", "list")

    assert json.loads(resolved.stdout) == {"id": "tbl_orders", "workspace": "prod"}
    assert json.loads(listed.stdout) == {"orders": "tbl_orders"}


def test_resolve_workspace_name_and_pass_through(invoke, prod) -> None:
    by_name = invoke("alias", "resolve", "prod")
    raw = invoke("alias", "resolve", "tbl_raw")

    assert json.loads(by_name.stdout) == {"id": "p_prod", "workspace": "prod"}
    assert json.loads(raw.stdout) == {"id": "tbl_raw"}


def test_invalid_namespaced_alias(invoke, prod) -> None:
    result = invoke("alias", "set", "prod.", "tbl")

    assert result.exit_code == 4
    assert "Invalid alias format" in result.output


def test_delete_and_clear(invoke, prod) -> None:
    invoke("alias", "set", "prod.users", "tbl_users")
    invoke("alias", "set", "prod.orders", "tbl_orders")

    deleted = invoke("alias", "delete", "prod.users")
    missing = invoke("alias", "delete", "prod.users")
    cleared = invoke("alias", "clear", "prod")

    assert deleted.exit_code == 0
    assert missing.exit_code == 3
    assert "Cleared 1 alias(es) from workspace 'prod'." in cleared.stdout
    assert json.loads(invoke("alias", "list", "prod").stdout) == {}


def test_alias_commands_on_unknown_workspace(invoke, prod) -> None:
    assert invoke("alias", "set", "nope.users", "tbl").exit_code == 4
    assert invoke("alias", "list", "nope").exit_code == 4
    assert invoke("alias", "clear", "nope").exit_code == 4
