"""Environment-variable overlay for the active workspace."""

from __future__ import annotations

from typing import Mapping

from nococli.config.models import WorkspaceConfig, parse_workspace

__all__ = [
    "AUTH_HEADER",
    "ENV_BASE_ID",
    "ENV_BASE_URL",
    "ENV_TOKEN",
    "ENV_WORKSPACE_ID",
    "apply_env_overrides",
]

ENV_BASE_URL = "NOCO_BASE_URL"
ENV_TOKEN = "NOCO_TOKEN"
ENV_BASE_ID = "NOCO_BASE_ID"
ENV_WORKSPACE_ID = "NOCO_WORKSPACE_ID"

AUTH_HEADER = "xc-token"


def _read(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    return value if value else None


def apply_env_overrides(
    workspace: WorkspaceConfig | None,
    env: Mapping[str, str],
) -> WorkspaceConfig | None:
    """Overlay ``NOCO_*`` variables onto ``workspace``.

    Returns ``workspace`` itself when no variable is set. Without a stored
    workspace an ephemeral one is synthesized, but only when
    ``NOCO_BASE_URL`` is set. The input is never mutated.

    Raises:
        ValidationError: If ``NOCO_BASE_URL`` is not an http(s) URL.
    """

    base_url = _read(env, ENV_BASE_URL)
    token = _read(env, ENV_TOKEN)
    base_id = _read(env, ENV_BASE_ID)
    workspace_id = _read(env, ENV_WORKSPACE_ID)

    if not any((base_url, token, base_id, workspace_id)):
        return workspace

    if workspace is None:
        if base_url is None:
            return None
        document: dict[str, object] = {
            "baseUrl": base_url,
            "headers": {},
            "aliases": {},
        }
    else:
        document = workspace.to_document()
        if base_url is not None:
            document["baseUrl"] = base_url

    if token is not None:
        headers = dict(document.get("headers") or {})
        headers[AUTH_HEADER] = token
        document["headers"] = headers
    if base_id is not None:
        document["baseId"] = base_id
    if workspace_id is not None:
        document["workspaceId"] = workspace_id

    return parse_workspace(document)
