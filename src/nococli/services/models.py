"""Value types shared by the row services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Protocol

from nococli.errors import ValidationError

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "BulkKind",
    "BulkOperationError",
    "BulkOptions",
    "BulkResult",
    "BulkUpsertResult",
    "Row",
    "RowsClient",
    "UpsertOptions",
]

DEFAULT_BATCH_SIZE = 1000

Row = dict[str, Any]

BulkKind = Literal["created", "updated", "deleted"]


class RowsClient(Protocol):
    """Remote calls the row service depends on.

    Each method accepts a single row mapping or a list of rows and may raise
    any :class:`nococli.errors.NocoError` subclass or an arbitrary exception.
    """

    def list_records(
        self,
        table_id: str,
        query: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]: ...

    def create_records(self, table_id: str, payload: Any) -> Any: ...

    def update_records(self, table_id: str, payload: Any) -> Any: ...

    def delete_records(self, table_id: str, payload: Any) -> Any: ...


@dataclass(frozen=True, slots=True)
class BulkOptions:
    """Execution mode for bulk create/update/delete.

    ``fail_fast`` wins over ``continue_on_error`` when both are set.
    """

    fail_fast: bool = False
    continue_on_error: bool = True
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        if (
            isinstance(self.batch_size, bool)
            or not isinstance(self.batch_size, int)
            or self.batch_size < 1
        ):
            raise ValidationError(
                f"Invalid batchSize: {self.batch_size!r}. Must be at least 1."
            )

    @property
    def batched(self) -> bool:
        """Return ``True`` when items go out in chunks and errors abort."""

        return self.fail_fast or not self.continue_on_error


@dataclass(frozen=True, slots=True)
class UpsertOptions:
    """Flags for single-row and bulk upserts."""

    create_only: bool = False
    update_only: bool = False
    query: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.create_only and self.update_only:
            raise ValidationError(
                "Cannot specify both createOnly and updateOnly"
            )


@dataclass(frozen=True, slots=True)
class BulkOperationError:
    """A single failed item captured in continue-on-error mode."""

    index: int
    item: Any
    error: str
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "index": self.index,
            "item": self.item,
            "error": self.error,
        }
        if self.code is not None:
            payload["code"] = self.code
        return payload


@dataclass(slots=True)
class BulkResult:
    """Aggregate outcome of a bulk create, update or delete.

    ``failed`` and ``errors`` stay ``None`` unless at least one item failed;
    ``data`` is only collected in continue-on-error mode.
    """

    kind: BulkKind
    count: int = 0
    failed: int | None = None
    errors: list[BulkOperationError] | None = None
    data: list[Any] | None = None

    @property
    def succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        """Render the result with absent fields omitted.

        Example:
            >>> BulkResult("created", count=2).to_dict()
            {'created': 2}
        """

        payload: dict[str, Any] = {self.kind: self.count}
        if self.failed is not None:
            payload["failed"] = self.failed
        if self.errors is not None:
            payload["errors"] = [error.to_dict() for error in self.errors]
        if self.data is not None:
            payload["data"] = list(self.data)
        return payload


@dataclass(slots=True)
class BulkUpsertResult:
    """Raw responses of the create and update calls made by a bulk upsert."""

    created: Any = None
    updated: Any = None
    created_rows: list[Row] = field(default_factory=list)
    updated_rows: list[Row] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.created_rows:
            payload["created"] = self.created
        if self.updated_rows:
            payload["updated"] = self.updated
        return payload
