"""Shared pytest fixtures for nococli tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Mapping

import pytest

from nococli.config import ConfigManager

_ENV_VARS = (
    "NOCODB_SETTINGS_DIR",
    "NOCO_CONFIG_DIR",
    "NOCO_BASE_URL",
    "NOCO_TOKEN",
    "NOCO_BASE_ID",
    "NOCO_WORKSPACE_ID",
    "NOCO_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from the developer's environment and home directory."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    return tmp_path / "noco-config"


@pytest.fixture
def make_manager(
    config_dir: Path,
) -> Callable[..., ConfigManager]:
    """Build managers bound to ``config_dir`` with an explicit environment."""

    def _make(env: Mapping[str, str] | None = None, **kwargs: Any) -> ConfigManager:
        return ConfigManager(config_dir, env=dict(env or {}), **kwargs)

    return _make


FailureHook = Callable[[Any], "Exception | None"]


class FakeRowsClient:
    """In-memory rows capability recording every call."""

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows: list[dict[str, Any]] = [dict(row) for row in rows or []]
        self.calls: list[tuple[str, str, Any]] = []
        self.failures: dict[str, FailureHook] = {}

    def fail_when(self, method: str, hook: FailureHook) -> None:
        self.failures[method] = hook

    def calls_to(self, method: str) -> list[Any]:
        return [payload for name, _, payload in self.calls if name == method]

    def _maybe_fail(self, method: str, payload: Any) -> None:
        hook = self.failures.get(method)
        if hook is None:
            return
        error = hook(payload)
        if error is not None:
            raise error

    def _allocate_id(self) -> int:
        taken = [row["Id"] for row in self.rows if isinstance(row.get("Id"), int)]
        return max(taken, default=0) + 1

    def _insert(self, item: Mapping[str, Any]) -> dict[str, Any]:
        row = {**dict(item), "Id": self._allocate_id()}
        self.rows.append(row)
        return row

    def _patch(self, item: Mapping[str, Any]) -> dict[str, Any]:
        for row in self.rows:
            if row.get("Id") == item.get("Id"):
                row.update(item)
                return dict(row)
        return dict(item)

    def list_records(
        self,
        table_id: str,
        query: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        params = dict(query or {})
        self.calls.append(("list", table_id, params))
        self._maybe_fail("list", params)
        page = int(params.get("page", 1))
        limit = int(params.get("limit", 25))
        start = (page - 1) * limit
        chunk = self.rows[start : start + limit]
        return {
            "list": [dict(row) for row in chunk],
            "pageInfo": {
                "totalRows": len(self.rows),
                "page": page,
                "pageSize": limit,
            },
        }

    def create_records(self, table_id: str, payload: Any) -> Any:
        self.calls.append(("create", table_id, payload))
        self._maybe_fail("create", payload)
        if isinstance(payload, list):
            return [{"Id": self._insert(item)["Id"]} for item in payload]
        return self._insert(payload)

    def update_records(self, table_id: str, payload: Any) -> Any:
        self.calls.append(("update", table_id, payload))
        self._maybe_fail("update", payload)
        if isinstance(payload, list):
            return [{"Id": self._patch(item)["Id"]} for item in payload]
        return self._patch(payload)

    def delete_records(self, table_id: str, payload: Any) -> Any:
        self.calls.append(("delete", table_id, payload))
        self._maybe_fail("delete", payload)
        items = payload if isinstance(payload, list) else [payload]
        ids = {item.get("Id") for item in items}
        self.rows = [row for row in self.rows if row.get("Id") not in ids]
        if isinstance(payload, list):
            return [{"Id": item.get("Id")} for item in payload]
        return {"Id": payload.get("Id")}


@pytest.fixture
def rows_client() -> Iterator[FakeRowsClient]:
    yield FakeRowsClient()


@pytest.fixture
def make_rows_client() -> Callable[..., FakeRowsClient]:
    return FakeRowsClient
