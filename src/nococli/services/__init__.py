"""Row services for :mod:`nococli`."""

from __future__ import annotations

from .models import (
    DEFAULT_BATCH_SIZE,
    BulkOperationError,
    BulkOptions,
    BulkResult,
    BulkUpsertResult,
    Row,
    RowsClient,
    UpsertOptions,
)
from .rows import PAGE_SIZE, RowService

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "PAGE_SIZE",
    "BulkOperationError",
    "BulkOptions",
    "BulkResult",
    "BulkUpsertResult",
    "Row",
    "RowService",
    "RowsClient",
    "UpsertOptions",
]
