"""Command-line interface primitives for :mod:`nococli`.

This module exposes the Typer application behind the ``noco`` console script
and wires the command groups to a shared :class:`NocoCLIContext`.

Example:
    >>> import typer
    >>> from nococli.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

import os
from pathlib import Path

import typer

from nococli.cli.alias import create_alias_app
from nococli.cli.common import NocoCLIContext
from nococli.cli.rows import create_rows_app
from nococli.cli.settings import create_settings_app
from nococli.cli.workspace import create_workspace_app
from nococli.core.logging import configure_logging, get_logger, resolve_log_level
from nococli.core.paths import resolve_config_paths

_app_help = (
    "Command-line client for a remote tabular database."
    "\n\n"
    "Use `noco workspace add` to register an endpoint, then `noco rows ...`."
)


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``noco`` CLI.

    Returns:
        A configured Typer application ready to be invoked by ``noco``.
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    app.add_typer(create_workspace_app(), name="workspace")
    app.add_typer(create_alias_app(), name="alias")
    app.add_typer(create_settings_app(), name="settings")
    app.add_typer(create_rows_app(), name="rows")

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        config_dir: Path | None = typer.Option(
            None,
            "--config-dir",
            help=(
                "Override the config directory (defaults to "
                "NOCODB_SETTINGS_DIR, NOCO_CONFIG_DIR or ~/.nocodb-cli)."
            ),
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Logging level (DEBUG/INFO/WARNING/ERROR); env NOCO_LOG_LEVEL.",
        ),
        log_file: bool = typer.Option(
            False,
            "--log-file",
            help="Also write JSON logs under <config-dir>/logs.",
        ),
    ) -> None:
        """Configure logging and the shared command context."""

        env = os.environ
        level = resolve_log_level(log_level, env=env)
        log_dir: Path | None = None
        if log_file:
            try:
                log_dir = resolve_config_paths(config_dir, env=env).logs_dir
            except ValueError as exc:
                typer.secho(f"Config error: {exc}", fg=typer.colors.RED, err=True)
                raise typer.Exit(code=4) from exc

        try:
            configure_logging(level=level, log_dir=log_dir)
        except ValueError as exc:
            typer.secho(f"Logging error: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=4) from exc

        ctx.obj = NocoCLIContext(
            config_dir=config_dir,
            env=env,
            logger=get_logger(__name__, command=ctx.invoked_subcommand),
        )

    return app


__all__ = ["create_app"]
