"""Typer command group for managing workspaces."""

from __future__ import annotations

import typer

from nococli.cli.common import (
    emit_json,
    fail,
    handle_failure,
    require_context,
)
from nococli.config import AUTH_HEADER
from nococli.errors import NocoError

_workspace_app = typer.Typer(
    name="workspace",
    help="Manage workspaces (URL, token, default base ID).",
    no_args_is_help=True,
    invoke_without_command=False,
)


@_workspace_app.command("add", help="Add or replace a workspace.")
def add_workspace(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME", help="Workspace name."),
    url: str = typer.Argument(..., metavar="URL", help="Base URL of the instance."),
    token: str = typer.Argument(..., metavar="TOKEN", help="API token (xc-token)."),
    base: str | None = typer.Option(
        None,
        "--base",
        help="Default base ID for this workspace.",
    ),
    workspace_id: str | None = typer.Option(
        None,
        "--workspace-id",
        help="Remote workspace identifier.",
    ),
) -> None:
    context = require_context(ctx)
    try:
        context.manager.add_workspace(
            name,
            {
                "baseUrl": url,
                "headers": {AUTH_HEADER: token},
                "baseId": base,
                "workspaceId": workspace_id,
                "aliases": {},
            },
        )
    except NocoError as exc:
        handle_failure(context, action="workspace add", error=exc)
    typer.secho(f"Workspace '{name}' added.", fg=typer.colors.GREEN)


@_workspace_app.command("use", help="Switch the active workspace.")
def use_workspace(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME"),
) -> None:
    context = require_context(ctx)
    try:
        context.manager.set_active_workspace(name)
    except NocoError as exc:
        handle_failure(context, action="workspace use", error=exc)
    typer.echo(f"Switched to workspace '{name}'.")


@_workspace_app.command("list", help="List workspaces; the active one is starred.")
def list_workspaces(ctx: typer.Context) -> None:
    context = require_context(ctx)
    try:
        manager = context.manager
    except NocoError as exc:
        handle_failure(context, action="workspace", error=exc)
    active = manager.get_active_workspace_name()
    names = manager.list_workspaces()
    if not names:
        typer.echo("No workspaces configured.")
        return
    for name in names:
        workspace = manager.get_workspace(name)
        marker = "* " if name == active else "  "
        base_url = workspace.base_url if workspace is not None else ""
        typer.echo(f"{marker}{name} ({base_url})")


@_workspace_app.command("delete", help="Delete a workspace.")
def delete_workspace(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME"),
) -> None:
    context = require_context(ctx)
    try:
        removed = context.manager.remove_workspace(name)
    except NocoError as exc:
        handle_failure(context, action="workspace delete", error=exc)
    if not removed:
        fail(f"Workspace '{name}' not found.", code=3)
    typer.echo(f"Workspace '{name}' deleted.")


@_workspace_app.command("show", help="Print a workspace (default: the active one) as JSON.")
def show_workspace(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, metavar="[NAME]"),
) -> None:
    context = require_context(ctx)
    try:
        manager = context.manager
    except NocoError as exc:
        handle_failure(context, action="workspace", error=exc)
    workspace = (
        manager.get_workspace(name)
        if name is not None
        else manager.get_active_workspace()
    )
    if workspace is None:
        fail("Workspace not found.", code=3)
    emit_json(workspace.to_document(), pretty=True)


@_workspace_app.command("set-header", help="Set a request header on a workspace.")
def set_header(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME"),
    key: str = typer.Argument(..., metavar="KEY"),
    value: str = typer.Argument(..., metavar="VALUE"),
) -> None:
    context = require_context(ctx)
    try:
        context.manager.set_header(name, key, value)
    except NocoError as exc:
        handle_failure(context, action="workspace set-header", error=exc)
    typer.echo(f"Header '{key}' set on workspace '{name}'.")


@_workspace_app.command("unset-header", help="Remove a request header from a workspace.")
def unset_header(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME"),
    key: str = typer.Argument(..., metavar="KEY"),
) -> None:
    context = require_context(ctx)
    try:
        removed = context.manager.remove_header(name, key)
    except NocoError as exc:
        handle_failure(context, action="workspace unset-header", error=exc)
    if not removed:
        fail(f"Header '{key}' not set on workspace '{name}'.", code=3)
    typer.echo(f"Header '{key}' removed from workspace '{name}'.")


def create_workspace_app() -> typer.Typer:
    """Return the Typer app handling `noco workspace` subcommands."""

    return _workspace_app


__all__ = ["create_workspace_app"]
