"""Fixtures shared by the CLI tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner, Result

from nococli.cli import create_app


@pytest.fixture()
def runner() -> CliRunner:
    """Return a Typer CLI runner for invoking the application."""

    return CliRunner()


@pytest.fixture()
def invoke(
    runner: CliRunner,
    config_dir: Path,
) -> Callable[..., Result]:
    """Invoke ``noco`` against the test configuration directory."""

    def _invoke(*args: str, input: str | None = None) -> Result:
        app = create_app()
        return runner.invoke(
            app,
            ["--config-dir", str(config_dir), *args],
            input=input,
        )

    return _invoke
