"""Typed error hierarchy shared by configuration and row services."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence

__all__ = [
    "NocoError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "NetworkError",
    "PersistenceError",
    "error_code",
    "exit_code_for",
    "is_conflict",
]


class NocoError(RuntimeError):
    """Base error carrying a machine-readable classification ``code``."""

    code: str = "NOCO_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.status_code = status_code
        self.data = data


class ValidationError(NocoError):
    """Raised for malformed or semantically invalid input."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field_errors: Mapping[str, Sequence[str]] | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message, status_code=400, data=data)
        self.field_errors = {
            key: list(values) for key, values in (field_errors or {}).items()
        }


class NotFoundError(NocoError):
    """Raised when a referenced entity does not exist."""

    code = "NOT_FOUND"

    def __init__(
        self,
        resource: str,
        identifier: str,
        *,
        message: str | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(
            message or f"{resource} not found: {identifier}",
            status_code=404,
            data=data,
        )
        self.resource = resource
        self.identifier = identifier


class ConflictError(NocoError):
    """Raised for uniqueness or concurrent-write violations."""

    code = "CONFLICT"

    def __init__(self, message: str, *, data: Any = None) -> None:
        super().__init__(message, status_code=409, data=data)


class AuthenticationError(NocoError):
    """Raised when the remote API rejects the configured credentials."""

    code = "AUTH_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 401,
        data: Any = None,
    ) -> None:
        super().__init__(message, status_code=status_code, data=data)


class NetworkError(NocoError):
    """Raised when the remote API cannot be reached."""

    code = "NETWORK_ERROR"

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class PersistenceError(NocoError):
    """Raised when the configuration document cannot be durably saved."""

    code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        path: Path,
        stage: str,
        cause: BaseException | None = None,
    ) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to {stage} config at {path}{detail}")
        self.path = path
        self.stage = stage
        self.cause = cause


def error_code(error: BaseException) -> str | None:
    """Return the classification tag for ``error`` or ``None`` if untyped."""

    if isinstance(error, NocoError):
        return error.code
    return None


def is_conflict(error: BaseException) -> bool:
    """Return ``True`` for conflict errors, including bare 409 responses."""

    if isinstance(error, ConflictError):
        return True
    return getattr(error, "status_code", None) == 409


_EXIT_CODES: tuple[tuple[type[NocoError], int], ...] = (
    (AuthenticationError, 2),
    (NotFoundError, 3),
    (ValidationError, 4),
    (NetworkError, 5),
)


def exit_code_for(error: BaseException) -> int:
    """Map an error to the process exit code used by the CLI."""

    for error_type, exit_code in _EXIT_CODES:
        if isinstance(error, error_type):
            return exit_code
    return 1
