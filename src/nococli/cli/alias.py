"""Typer command group for managing namespaced aliases."""

from __future__ import annotations

import typer

from nococli.cli.common import (
    NocoCLIContext,
    emit_json,
    fail,
    handle_failure,
    require_context,
    split_alias_target,
)
from nococli.errors import NocoError, ValidationError

_alias_app = typer.Typer(
    name="alias",
    help="Manage ID aliases (`alias` or `workspace.alias`).",
    no_args_is_help=True,
    invoke_without_command=False,
)


def _workspace_or_active(context: NocoCLIContext, name: str | None) -> str:
    if name is not None:
        if context.manager.get_workspace(name) is None:
            raise ValidationError(f"Workspace not found: {name}")
        return name
    active = context.manager.get_active_workspace_name()
    if active is None:
        raise ValidationError(
            "No active workspace. Use `noco workspace use <name>` or "
            "specify a workspace name."
        )
    return active


@_alias_app.command("set", help="Map an alias to a remote ID.")
def set_alias(
    ctx: typer.Context,
    name: str = typer.Argument(
        ...,
        metavar="NAME",
        help="Alias name, optionally namespaced as workspace.alias.",
    ),
    target_id: str = typer.Argument(..., metavar="ID", help="Remote ID."),
) -> None:
    context = require_context(ctx)
    try:
        workspace, alias = split_alias_target(context, name)
        context.manager.set_alias(workspace, alias, target_id)
    except NocoError as exc:
        handle_failure(context, action="alias set", error=exc)
    typer.echo(f"Alias '{workspace}.{alias}' set to {target_id}")


@_alias_app.command("list", help="Print the aliases of a workspace as JSON.")
def list_aliases(
    ctx: typer.Context,
    workspace: str | None = typer.Argument(None, metavar="[WORKSPACE]"),
) -> None:
    context = require_context(ctx)
    try:
        name = _workspace_or_active(context, workspace)
        config = context.manager.get_workspace(name)
    except NocoError as exc:
        handle_failure(context, action="alias list", error=exc)
    emit_json(config.aliases if config is not None else {}, pretty=True)


@_alias_app.command("delete", help="Delete an alias.")
def delete_alias(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME"),
) -> None:
    context = require_context(ctx)
    try:
        workspace, alias = split_alias_target(context, name)
        removed = context.manager.remove_alias(workspace, alias)
    except NocoError as exc:
        handle_failure(context, action="alias delete", error=exc)
    if not removed:
        fail(f"Alias '{workspace}.{alias}' not found.", code=3)
    typer.echo(f"Alias '{workspace}.{alias}' deleted.")


@_alias_app.command("clear", help="Delete every alias of a workspace.")
def clear_aliases(
    ctx: typer.Context,
    workspace: str | None = typer.Argument(None, metavar="[WORKSPACE]"),
) -> None:
    context = require_context(ctx)
    try:
        name = _workspace_or_active(context, workspace)
        count = context.manager.clear_aliases(name)
    except NocoError as exc:
        handle_failure(context, action="alias clear", error=exc)
    typer.echo(f"Cleared {count} alias(es) from workspace '{name}'.")


@_alias_app.command("resolve", help="Show what an alias or ID resolves to.")
def resolve(
    ctx: typer.Context,
    value: str = typer.Argument(..., metavar="INPUT"),
) -> None:
    context = require_context(ctx)
    try:
        resolved = context.manager.resolve_alias(value)
    except NocoError as exc:
        handle_failure(context, action="alias resolve", error=exc)
    payload: dict[str, object] = {"id": resolved.id}
    if resolved.workspace_name is not None:
        payload["workspace"] = resolved.workspace_name
    emit_json(payload)


def create_alias_app() -> typer.Typer:
    """Return the Typer app handling `noco alias` subcommands."""

    return _alias_app


__all__ = ["create_alias_app"]
