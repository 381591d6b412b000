"""Tests for :mod:`nococli.config.models`."""

from __future__ import annotations

import math

import pytest

from nococli.config.models import (
    DEFAULT_RETRY_STATUS_CODES,
    GlobalSettings,
    WorkspaceConfig,
    parse_document,
    parse_settings,
    parse_workspace,
)
from nococli.errors import ValidationError


def test_workspace_backfills_missing_maps() -> None:
    workspace = parse_workspace(
        {"baseUrl": "https://x.test", "headers": None}
    )

    assert workspace.headers == {}
    assert workspace.aliases == {}
    assert workspace.base_id is None


def test_workspace_document_uses_camel_case_and_omits_unset() -> None:
    workspace = WorkspaceConfig(base_url="https://x.test", base_id="p1")

    assert workspace.to_document() == {
        "baseUrl": "https://x.test",
        "headers": {},
        "baseId": "p1",
        "aliases": {},
    }


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({}, "Workspace baseUrl is required"),
        ({"baseUrl": ""}, "Workspace baseUrl is required"),
        ({"baseUrl": "not a url"}, "Invalid baseUrl format: not a url"),
        ({"baseUrl": "https://"}, "Invalid baseUrl format"),
        ({"baseUrl": "ftp://x.test"}, "Invalid baseUrl protocol: ftp:"),
        (
            {"baseUrl": "https://x.test", "headers": ["xc-token"]},
            "Workspace headers must be an object",
        ),
        (
            {"baseUrl": "https://x.test", "aliases": "users"},
            "Workspace aliases must be an object",
        ),
    ],
)
def test_workspace_validation_errors(raw: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        parse_workspace(raw)


def test_workspace_validation_error_is_typed() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_workspace({"baseUrl": "mailto:a@b.test"})

    assert excinfo.value.code == "VALIDATION_ERROR"
    assert "baseUrl" in excinfo.value.field_errors


def test_settings_defaults() -> None:
    settings = GlobalSettings()

    assert settings.to_document() == {
        "timeoutMs": 30000,
        "retryCount": 3,
        "retryDelay": 1000,
        "retryStatusCodes": list(DEFAULT_RETRY_STATUS_CODES),
    }


def test_settings_accept_snake_case_and_false_retry_count() -> None:
    settings = parse_settings({"timeout_ms": 500, "retryCount": False})

    assert settings.timeout_ms == 500
    assert settings.retry_count == 0
    assert settings.retry_delay == 1000


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"timeoutMs": -5}, "Invalid timeoutMs: -5"),
        ({"timeoutMs": 0}, "Invalid timeoutMs: 0"),
        ({"retryCount": -1}, "Invalid retryCount: -1"),
        ({"retryDelay": -10}, "Invalid retryDelay: -10"),
        ({"retryStatusCodes": "500"}, "retryStatusCodes must be an array"),
        ({"retryStatusCodes": [500, 600]}, "Invalid HTTP status code in retryStatusCodes: 600"),
        ({"retryStatusCodes": [99]}, "retryStatusCodes: 99"),
        ({"retryStatusCodes": [True]}, "retryStatusCodes: True"),
        ({"retryStatusCodes": [500.5]}, "retryStatusCodes: 500.5"),
    ],
)
def test_settings_validation_errors(raw: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        parse_settings(raw)


def test_settings_reject_non_finite_timeout() -> None:
    with pytest.raises(ValidationError, match="timeoutMs"):
        parse_settings({"timeoutMs": math.inf})


def test_document_normalizes_partial_payload() -> None:
    config = parse_document(
        {
            "version": 2,
            "activeWorkspace": "a",
            "workspaces": {"a": {"baseUrl": "https://x.test"}},
            "settings": {"timeoutMs": 5000},
        }
    )

    assert config.workspaces["a"].headers == {}
    assert config.workspaces["a"].aliases == {}
    assert config.settings.timeout_ms == 5000
    assert config.settings.retry_status_codes == list(DEFAULT_RETRY_STATUS_CODES)


def test_document_normalization_is_idempotent() -> None:
    raw = {
        "version": 2,
        "workspaces": {"a": {"baseUrl": "https://x.test", "aliases": None}},
    }

    first = parse_document(raw)
    second = parse_document(first.to_document())

    assert first == second
    assert "activeWorkspace" not in first.to_document()
    assert first.to_document()["settings"]["retryCount"] == 3


def test_document_rejects_other_versions() -> None:
    with pytest.raises(ValidationError):
        parse_document({"version": 1, "workspaces": {}})
