"""Shared helpers for the ``noco`` command groups."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, NoReturn

import typer

from nococli.config import ConfigManager
from nococli.core.logging import Logger
from nococli.errors import ValidationError, error_code, exit_code_for

__all__ = [
    "NocoCLIContext",
    "emit_json",
    "fail",
    "handle_failure",
    "load_json_input",
    "parse_key_value",
    "require_context",
    "split_alias_target",
]


@dataclass(slots=True)
class NocoCLIContext:
    """Shared context object carried across ``noco`` commands.

    The configuration manager is built on first use so that ``--help`` never
    touches the configuration directory.
    """

    config_dir: Path | None
    env: Mapping[str, str]
    logger: Logger
    _manager: ConfigManager | None = field(default=None, repr=False)

    @property
    def manager(self) -> ConfigManager:
        if self._manager is None:
            self._manager = ConfigManager(self.config_dir, env=self.env)
        return self._manager


def require_context(ctx: typer.Context) -> NocoCLIContext:
    context = getattr(ctx, "obj", None)
    if not isinstance(context, NocoCLIContext):
        typer.secho(
            "Internal error: CLI context not initialized.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
    return context


def handle_failure(
    context: NocoCLIContext,
    *,
    action: str,
    error: Exception,
) -> NoReturn:
    """Print ``error``, log it, and exit with its mapped exit code."""

    typer.secho(f"{action} failed: {error}", fg=typer.colors.RED, err=True)
    context.logger.bind(action=action).error(
        "command-failed",
        error=str(error),
        code=error_code(error),
    )
    raise typer.Exit(code=exit_code_for(error)) from error


def fail(message: str, *, code: int = 1) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def emit_json(payload: Any, *, pretty: bool = False) -> None:
    typer.echo(
        json.dumps(
            payload,
            indent=2 if pretty else None,
            ensure_ascii=False,
            default=str,
        )
    )


def load_json_input(data: str | None, file: Path | None) -> Any:
    """Decode JSON passed inline via ``--data`` or through ``--file``.

    Raises:
        ValidationError: If neither or both are given, or the JSON is invalid.
    """

    if (data is None) == (file is None):
        raise ValidationError("Provide exactly one of --data or --file")
    if file is not None:
        try:
            text = file.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"Cannot read {file}: {exc}") from exc
        source = str(file)
    else:
        text = data or ""
        source = "--data"
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON in {source}: {exc}") from exc


def parse_key_value(value: str, *, option: str) -> tuple[str, str]:
    """Split ``key=value``; the key must be non-empty.

    Example:
        >>> parse_key_value("email=a=b", option="--match")
        ('email', 'a=b')
    """

    key, sep, rest = value.partition("=")
    if not sep or not key:
        raise ValidationError(f"Invalid {option} value {value!r}; expected key=value")
    return key, rest


def split_alias_target(
    context: NocoCLIContext,
    name: str,
) -> tuple[str, str]:
    """Return ``(workspace, alias)`` for ``workspace.alias`` or a bare alias.

    A bare alias targets the active workspace.
    """

    head, sep, tail = name.partition(".")
    if sep:
        if not head or not tail:
            raise ValidationError(
                "Invalid alias format. Use 'workspace.alias' with non-empty "
                "workspace and alias names."
            )
        return head, tail
    active = context.manager.get_active_workspace_name()
    if active is None:
        raise ValidationError(
            "No active workspace. Use `noco workspace use <name>` or "
            "specify workspace.alias"
        )
    if not name:
        raise ValidationError("Alias name cannot be empty.")
    return active, name
