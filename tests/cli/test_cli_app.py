"""Integration tests for the Typer application exposed by :mod:`nococli.cli`."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from nococli.__main__ import main
from nococli.cli import create_app


@pytest.fixture(autouse=True)
def reset_root_handlers():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def test_help_does_not_touch_config_dir(
    runner: CliRunner,
    config_dir: Path,
) -> None:
    result = runner.invoke(create_app(), ["--config-dir", str(config_dir), "--help"])

    assert result.exit_code == 0
    assert "workspace" in result.stdout
    assert "rows" in result.stdout
    assert not config_dir.exists()


def test_group_help_lists_commands(runner: CliRunner) -> None:
    result = runner.invoke(create_app(), ["rows", "--help"])

    assert result.exit_code == 0
    for command in ("bulk-create", "bulk-update", "bulk-delete", "upsert"):
        assert command in result.stdout


def test_invalid_log_level_exits_with_validation_code(invoke) -> None:
    result = invoke("--log-level", "chatty", "workspace", "list")

    assert result.exit_code == 4
    assert "Unsupported log level" in result.output


def test_log_level_from_environment(
    runner: CliRunner,
    config_dir: Path,
) -> None:
    result = runner.invoke(
        create_app(),
        ["--config-dir", str(config_dir), "workspace", "list"],
        env={"NOCO_LOG_LEVEL": "bogus"},
    )

    assert result.exit_code == 4


def test_log_file_writes_json_records(invoke, config_dir: Path) -> None:
    result = invoke(
        "--log-level",
        "info",
        "--log-file",
        "workspace",
        "add",
        "prod",
        "https://x.test",
        "secret",
    )

    assert result.exit_code == 0, result.output
    log_file = config_dir / "logs" / "nococli.log"
    events = [
        json.loads(line)["event"]
        for line in log_file.read_text(encoding="utf-8").splitlines()
    ]
    assert "workspace-saved" in events


def test_config_dir_pointing_at_file_fails(
    runner: CliRunner,
    tmp_path: Path,
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    result = runner.invoke(
        create_app(),
        ["--config-dir", str(blocker), "workspace", "list"],
    )

    assert result.exit_code == 4
    assert "Config directory path is a file" in result.output


def test_main_runs_app(
    monkeypatch: pytest.MonkeyPatch,
    config_dir: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(
        "sys.argv",
        ["noco", "--config-dir", str(config_dir), "workspace", "list"],
    )

    with pytest.raises(SystemExit) as excinfo:
        main()

    assert excinfo.value.code == 0
    assert "No workspaces configured." in capsys.readouterr().out
