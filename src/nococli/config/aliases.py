"""Namespaced alias resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from nococli.config.models import WorkspaceConfig

__all__ = ["ResolvedAlias", "resolve_alias", "split_namespaced"]


@dataclass(frozen=True, slots=True)
class ResolvedAlias:
    """Identifier produced by :func:`resolve_alias`.

    ``workspace`` is ``None`` when the input passed through unresolved.
    """

    id: str
    workspace: WorkspaceConfig | None = None
    workspace_name: str | None = None


def split_namespaced(value: str) -> tuple[str, str] | None:
    """Split ``workspace.alias`` on the first dot.

    Example:
        >>> split_namespaced("prod.users.archive")
        ('prod', 'users.archive')
        >>> split_namespaced("users") is None
        True
    """

    head, sep, tail = value.partition(".")
    if not sep:
        return None
    return head, tail


def resolve_alias(
    value: str,
    workspaces: Mapping[str, WorkspaceConfig],
    active_name: str | None = None,
) -> ResolvedAlias:
    """Resolve ``value`` to a remote identifier.

    The first matching rule wins:

    1. ``workspace.alias`` when that workspace defines ``alias``.
    2. An alias of the active workspace equal to the whole input.
    3. A workspace name whose ``baseId`` is set.
    4. The input itself, unchanged.

    Args:
        value: Alias, namespaced alias, workspace name or raw identifier.
        workspaces: Known workspaces keyed by name.
        active_name: Name of the active workspace, if any.
    """

    namespaced = split_namespaced(value)
    if namespaced is not None:
        ws_name, alias = namespaced
        workspace = workspaces.get(ws_name)
        if workspace is not None and workspace.aliases.get(alias):
            return ResolvedAlias(workspace.aliases[alias], workspace, ws_name)

    active = workspaces.get(active_name) if active_name else None
    if active is not None and active.aliases.get(value):
        return ResolvedAlias(active.aliases[value], active, active_name)

    workspace = workspaces.get(value)
    if workspace is not None and workspace.base_id:
        return ResolvedAlias(workspace.base_id, workspace, value)

    return ResolvedAlias(value)
