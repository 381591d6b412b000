"""Typer command group for global HTTP settings."""

from __future__ import annotations

import typer

from nococli.cli.common import emit_json, fail, handle_failure, require_context
from nococli.errors import NocoError

_settings_app = typer.Typer(
    name="settings",
    help="Show or change timeout and retry settings.",
    no_args_is_help=True,
    invoke_without_command=False,
)


@_settings_app.command("show", help="Print the stored settings as JSON.")
def show_settings(ctx: typer.Context) -> None:
    context = require_context(ctx)
    try:
        settings = context.manager.get_settings()
    except NocoError as exc:
        handle_failure(context, action="settings show", error=exc)
    emit_json(settings.to_document(), pretty=True)


@_settings_app.command("set", help="Update one or more settings.")
def set_settings(
    ctx: typer.Context,
    timeout_ms: int | None = typer.Option(
        None,
        "--timeout-ms",
        help="Request timeout in milliseconds.",
    ),
    retry_count: int | None = typer.Option(
        None,
        "--retry-count",
        help="Retries for failed requests (0 disables retries).",
    ),
    retry_delay: int | None = typer.Option(
        None,
        "--retry-delay",
        help="Delay between retries in milliseconds.",
    ),
    retry_status_code: list[int] = typer.Option(
        None,
        "--retry-status-code",
        metavar="CODE",
        help="HTTP status that triggers a retry; repeat to list several.",
    ),
) -> None:
    context = require_context(ctx)
    patch: dict[str, object] = {}
    if timeout_ms is not None:
        patch["timeoutMs"] = timeout_ms
    if retry_count is not None:
        patch["retryCount"] = retry_count
    if retry_delay is not None:
        patch["retryDelay"] = retry_delay
    if retry_status_code:
        patch["retryStatusCodes"] = list(retry_status_code)
    if not patch:
        fail("Nothing to update. Pass at least one setting option.", code=4)

    try:
        context.manager.update_settings(patch)
        settings = context.manager.get_settings()
    except NocoError as exc:
        handle_failure(context, action="settings set", error=exc)
    emit_json(settings.to_document(), pretty=True)


@_settings_app.command("reset", help="Restore the default settings.")
def reset_settings(ctx: typer.Context) -> None:
    context = require_context(ctx)
    try:
        context.manager.reset_settings()
    except NocoError as exc:
        handle_failure(context, action="settings reset", error=exc)
    typer.echo("Settings reset to defaults.")


def create_settings_app() -> typer.Typer:
    """Return the Typer app handling `noco settings` subcommands."""

    return _settings_app


__all__ = ["create_settings_app"]
