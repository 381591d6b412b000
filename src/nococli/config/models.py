"""Configuration models for the unified ``config.json`` document."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from typing import Any, Literal, Mapping
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from nococli.errors import ValidationError

__all__ = [
    "CONFIG_VERSION",
    "DEFAULT_RETRY_STATUS_CODES",
    "GlobalSettings",
    "UnifiedConfig",
    "WorkspaceConfig",
    "default_settings",
    "parse_document",
    "parse_settings",
    "parse_workspace",
]

CONFIG_VERSION = 2

DEFAULT_RETRY_STATUS_CODES: tuple[int, ...] = (408, 429, 500, 502, 503, 504)


class WorkspaceConfig(BaseModel):
    """Remote endpoint profile with auth headers and aliases."""

    base_url: str = Field(
        alias="baseUrl",
        description="Root URL of the remote instance (http or https).",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request, e.g. the API token.",
    )
    base_id: str | None = Field(
        default=None,
        alias="baseId",
        description="Default base identifier for commands in this workspace.",
    )
    workspace_id: str | None = Field(
        default=None,
        alias="workspaceId",
        description="Optional remote workspace/tenant identifier.",
    )
    aliases: dict[str, str] = Field(
        default_factory=dict,
        description="Friendly names mapped to remote identifiers.",
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: Any) -> Any:
        if value is None or value == "":
            raise ValueError("Workspace baseUrl is required")
        if not isinstance(value, str):
            return value
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Invalid baseUrl format: {value}")
        if not parts.scheme.lower().startswith("http"):
            raise ValueError(
                f"Invalid baseUrl protocol: {parts.scheme}:. "
                "Must be http: or https:"
            )
        return value

    @field_validator("headers", "aliases", mode="before")
    @classmethod
    def _backfill_maps(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return {}
        if not isinstance(value, MappingABC):
            raise ValueError(
                f"Workspace {info.field_name} must be an object, "
                f"got {value!r}"
            )
        return dict(value)

    def to_document(self) -> dict[str, Any]:
        """Return the camelCase mapping persisted in ``config.json``."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GlobalSettings(BaseModel):
    """HTTP client defaults shared by every workspace."""

    timeout_ms: int = Field(
        default=30000,
        alias="timeoutMs",
        description="Request timeout in milliseconds.",
    )
    retry_count: int = Field(
        default=3,
        alias="retryCount",
        description="Retry attempts for failed requests; 0 disables retries.",
    )
    retry_delay: int = Field(
        default=1000,
        alias="retryDelay",
        description="Delay in milliseconds between retry attempts.",
    )
    retry_status_codes: list[int] = Field(
        default_factory=lambda: list(DEFAULT_RETRY_STATUS_CODES),
        alias="retryStatusCodes",
        description="HTTP status codes that trigger a retry.",
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("retry_count", mode="before")
    @classmethod
    def _coerce_disabled_retry(cls, value: Any) -> Any:
        # ``false`` is the legacy spelling of "no retries".
        if value is False:
            return 0
        return value

    @field_validator("timeout_ms")
    @classmethod
    def _validate_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"Invalid timeoutMs: {value}. Must be positive.")
        return value

    @field_validator("retry_count")
    @classmethod
    def _validate_retry_count(cls, value: int) -> int:
        if value < 0:
            raise ValueError(
                f"Invalid retryCount: {value}. Must be non-negative."
            )
        return value

    @field_validator("retry_delay")
    @classmethod
    def _validate_retry_delay(cls, value: int) -> int:
        if value < 0:
            raise ValueError(
                f"Invalid retryDelay: {value}. Must be non-negative."
            )
        return value

    @field_validator("retry_status_codes", mode="before")
    @classmethod
    def _validate_status_codes(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise ValueError(
                f"retryStatusCodes must be an array, got {value!r}"
            )
        for code in value:
            valid = (
                isinstance(code, int)
                and not isinstance(code, bool)
                and 100 <= code <= 599
            )
            if not valid:
                raise ValueError(
                    "Invalid HTTP status code in retryStatusCodes: "
                    f"{code!r}"
                )
        return list(value)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def default_settings() -> GlobalSettings:
    """Return a fresh copy of the hard-coded default settings."""

    return GlobalSettings()


class UnifiedConfig(BaseModel):
    """Root configuration document stored at ``<configDir>/config.json``."""

    version: Literal[2] = Field(
        default=CONFIG_VERSION,
        description="Schema tag; any other value triggers migration.",
    )
    active_workspace: str | None = Field(
        default=None,
        alias="activeWorkspace",
        description="Name of the workspace used by default.",
    )
    workspaces: dict[str, WorkspaceConfig] = Field(
        default_factory=dict,
        description="Workspace profiles keyed by name.",
    )
    settings: GlobalSettings = Field(
        default_factory=GlobalSettings,
        description="Global HTTP behaviour settings.",
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("workspaces", mode="before")
    @classmethod
    def _backfill_workspaces(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("settings", mode="before")
    @classmethod
    def _backfill_settings(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _to_validation_error(
    exc: PydanticValidationError,
    *,
    subject: str,
) -> ValidationError:
    """Translate a pydantic error into a single printable ``ValidationError``."""

    field_errors: dict[str, list[str]] = {}
    messages: list[str] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or subject
        if error["type"] == "value_error":
            # Custom validators already name the field and the value.
            message = str(error["msg"]).removeprefix("Value error, ")
        elif error["type"] == "missing":
            message = f"{subject} {field} is required"
        else:
            message = f"Invalid {field}: {error.get('input')!r} ({error['msg']})"
        field_errors.setdefault(field, []).append(message)
        messages.append(message)
    return ValidationError("; ".join(messages), field_errors=field_errors)


def parse_workspace(raw: WorkspaceConfig | Mapping[str, Any]) -> WorkspaceConfig:
    """Validate ``raw`` into a :class:`WorkspaceConfig`.

    Raises:
        ValidationError: If any field is invalid.
    """

    payload = raw.to_document() if isinstance(raw, WorkspaceConfig) else raw
    if not isinstance(payload, MappingABC):
        raise ValidationError(f"Workspace config must be an object, got {raw!r}")
    try:
        return WorkspaceConfig.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise _to_validation_error(exc, subject="Workspace") from exc


def parse_settings(raw: GlobalSettings | Mapping[str, Any]) -> GlobalSettings:
    """Validate ``raw`` into :class:`GlobalSettings`, backfilling defaults."""

    payload = raw.to_document() if isinstance(raw, GlobalSettings) else raw
    if not isinstance(payload, MappingABC):
        raise ValidationError(f"Settings must be an object, got {raw!r}")
    try:
        return GlobalSettings.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise _to_validation_error(exc, subject="Setting") from exc


def parse_document(raw: Mapping[str, Any]) -> UnifiedConfig:
    """Validate a full ``config.json`` payload."""

    try:
        return UnifiedConfig.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise _to_validation_error(exc, subject="Config") from exc
