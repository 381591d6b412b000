"""Row operations with batching, partial-failure capture and upserts."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from collections.abc import Sequence as SequenceABC
from typing import Any, Callable, Mapping, Sequence

from nococli.core.logging import Logger, get_logger
from nococli.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    error_code,
    is_conflict,
)
from nococli.services.models import (
    BulkKind,
    BulkOperationError,
    BulkOptions,
    BulkResult,
    BulkUpsertResult,
    Row,
    RowsClient,
    UpsertOptions,
)

__all__ = ["PAGE_SIZE", "RowService", "extract_rows", "record_id"]

PAGE_SIZE = 1000

_RECORD_ID_FIELDS = ("Id", "id")


def extract_rows(response: Any) -> list[Row]:
    """Return the row list from a list response (``{"list": [...]}``)."""

    if isinstance(response, MappingABC):
        rows = response.get("list")
        if isinstance(rows, list):
            return rows
        return []
    if isinstance(response, list):
        return response
    return []


def _total_rows(response: Any) -> int | None:
    if not isinstance(response, MappingABC):
        return None
    page_info = response.get("pageInfo")
    if not isinstance(page_info, MappingABC):
        return None
    total = page_info.get("totalRows")
    if isinstance(total, int) and not isinstance(total, bool):
        return total
    return None


def record_id(row: Mapping[str, Any]) -> Any:
    """Return the identifier of ``row``.

    Raises:
        ValidationError: If the row carries neither ``Id`` nor ``id``.
    """

    for key in _RECORD_ID_FIELDS:
        value = row.get(key)
        if value is not None:
            return value
    raise ValidationError("Matched row has no Id field; cannot update")


def _with_record_id(data: Mapping[str, Any], identifier: Any) -> Row:
    payload = dict(data)
    payload["Id"] = identifier
    return payload


def _matches(row: Mapping[str, Any], field: str, value: str) -> bool:
    current = row.get(field)
    return current is not None and str(current) == value


def _chunked(items: Sequence[Any], size: int) -> list[list[Any]]:
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def _response_count(response: Any, kind: BulkKind, fallback: int) -> int:
    """Count affected rows from a batch response.

    Prefers the ``created``/``updated``/``deleted`` key, then the length of
    a list response, then ``fallback`` (the chunk size).
    """

    if isinstance(response, MappingABC):
        value = response.get(kind)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        data = response.get("data")
        if isinstance(data, list):
            return len(data)
    if isinstance(response, list):
        return len(response)
    return fallback


def _require_sequence(rows: Any, operation: str) -> Sequence[Any]:
    if isinstance(rows, (str, bytes)) or not isinstance(rows, SequenceABC):
        raise ValidationError(f"{operation} expects an array of row objects")
    return rows


class RowService:
    """Bulk row mutations on top of an injected :class:`RowsClient`.

    Items are processed strictly in order, one remote call at a time, so the
    ``index`` of every captured error maps to the caller's input position.

    Example:
        >>> service = RowService(client)  # doctest: +SKIP
        >>> service.bulk_create("tbl", [{"Title": "a"}]).to_dict()  # doctest: +SKIP
        {'created': 1, 'data': [{'Id': 1, 'Title': 'a'}]}
    """

    def __init__(
        self,
        client: RowsClient,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._client = client
        self._logger = logger or get_logger(__name__, component="row-service")

    # ------------------------------------------------------------------
    # Single calls
    # ------------------------------------------------------------------
    def list(
        self,
        table_id: str,
        query: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]:
        return self._client.list_records(table_id, query)

    def create(self, table_id: str, data: Any) -> Any:
        return self._client.create_records(table_id, data)

    def update(self, table_id: str, data: Any) -> Any:
        return self._client.update_records(table_id, data)

    def delete(self, table_id: str, data: Any) -> Any:
        return self._client.delete_records(table_id, data)

    def fetch_all_rows(
        self,
        table_id: str,
        query: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        """Return every row of ``table_id``, following pagination.

        Pages of :data:`PAGE_SIZE` rows are requested until a page comes back
        empty or short, or ``pageInfo.totalRows`` rows have been collected.
        A response without ``pageInfo.totalRows`` ends the walk after its
        page.
        """

        base_query = dict(query or {})
        collected: list[Row] = []
        page = 1
        while True:
            response = self._client.list_records(
                table_id,
                {**base_query, "page": str(page), "limit": str(PAGE_SIZE)},
            )
            rows = extract_rows(response)
            collected.extend(rows)
            total = _total_rows(response)
            if not rows or len(rows) < PAGE_SIZE:
                break
            # No row total: the first page is all we trust.
            if total is None or len(collected) >= total:
                break
            page += 1
        self._logger.debug(
            "rows-fetched",
            table=table_id,
            rows=len(collected),
            pages=page,
        )
        return collected

    def find_by_field(
        self,
        table_id: str,
        field: str,
        value: Any,
        query: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        """Return rows whose ``field`` equals ``value`` as a string."""

        expected = str(value)
        return [
            row
            for row in self.fetch_all_rows(table_id, query)
            if _matches(row, field, expected)
        ]

    # ------------------------------------------------------------------
    # Bulk mutations
    # ------------------------------------------------------------------
    def bulk_create(
        self,
        table_id: str,
        rows: Sequence[Any],
        options: BulkOptions | None = None,
    ) -> BulkResult:
        return self._run_bulk(
            "created",
            self._client.create_records,
            table_id,
            _require_sequence(rows, "bulkCreate"),
            options or BulkOptions(),
        )

    def bulk_update(
        self,
        table_id: str,
        rows: Sequence[Any],
        options: BulkOptions | None = None,
    ) -> BulkResult:
        return self._run_bulk(
            "updated",
            self._client.update_records,
            table_id,
            _require_sequence(rows, "bulkUpdate"),
            options or BulkOptions(),
        )

    def bulk_delete(
        self,
        table_id: str,
        rows: Sequence[Any],
        options: BulkOptions | None = None,
    ) -> BulkResult:
        return self._run_bulk(
            "deleted",
            self._client.delete_records,
            table_id,
            _require_sequence(rows, "bulkDelete"),
            options or BulkOptions(),
        )

    def _run_bulk(
        self,
        kind: BulkKind,
        call: Callable[[str, Any], Any],
        table_id: str,
        rows: Sequence[Any],
        options: BulkOptions,
    ) -> BulkResult:
        if options.batched:
            return self._run_batched(kind, call, table_id, rows, options)
        return self._run_per_item(kind, call, table_id, rows)

    def _run_batched(
        self,
        kind: BulkKind,
        call: Callable[[str, Any], Any],
        table_id: str,
        rows: Sequence[Any],
        options: BulkOptions,
    ) -> BulkResult:
        total = 0
        for number, chunk in enumerate(_chunked(rows, options.batch_size), 1):
            response = call(table_id, chunk)
            total += _response_count(response, kind, len(chunk))
            self._logger.debug(
                "bulk-batch-complete",
                table=table_id,
                kind=kind,
                batch=number,
                size=len(chunk),
            )
        return BulkResult(kind, count=total)

    def _run_per_item(
        self,
        kind: BulkKind,
        call: Callable[[str, Any], Any],
        table_id: str,
        rows: Sequence[Any],
    ) -> BulkResult:
        data: list[Any] = []
        errors: list[BulkOperationError] = []
        for index, item in enumerate(rows):
            try:
                result = call(table_id, item)
            except Exception as exc:  # noqa: BLE001 - captured per item
                errors.append(
                    BulkOperationError(
                        index=index,
                        item=item,
                        error=str(exc),
                        code=error_code(exc),
                    )
                )
                self._logger.warning(
                    "bulk-item-failed",
                    table=table_id,
                    kind=kind,
                    index=index,
                    error=str(exc),
                )
                continue
            data.append(result)

        outcome = BulkResult(kind, count=len(data), data=data)
        if errors:
            outcome.failed = len(errors)
            outcome.errors = errors
        self._logger.info(
            "bulk-complete",
            table=table_id,
            kind=kind,
            succeeded=len(data),
            failed=len(errors),
        )
        return outcome

    # ------------------------------------------------------------------
    # Upserts
    # ------------------------------------------------------------------
    def upsert(
        self,
        table_id: str,
        data: Mapping[str, Any],
        match_field: str,
        match_value: Any,
        options: UpsertOptions | None = None,
    ) -> Any:
        """Create or update the single row where ``match_field == match_value``.

        Raises:
            ValidationError: If ``data`` is not an object or the match is
                ambiguous.
            NotFoundError: If ``update_only`` is set and nothing matched.
            ConflictError: If ``create_only`` is set and a row matched.
        """

        opts = options or UpsertOptions()
        if not isinstance(data, MappingABC):
            raise ValidationError("upsert expects a row object")

        label = f"{match_field}={match_value}"
        existing = self.find_by_field(table_id, match_field, match_value, opts.query)
        if len(existing) > 1:
            raise ValidationError(
                f"Multiple rows matched '{label}'. Upsert requires unique match."
            )

        if not existing:
            if opts.update_only:
                raise NotFoundError("Row", label)
            try:
                return self._client.create_records(table_id, dict(data))
            except Exception as exc:
                if opts.create_only or not is_conflict(exc):
                    raise
                self._logger.info(
                    "upsert-conflict-retry",
                    table=table_id,
                    match=label,
                )
                retry = self.find_by_field(
                    table_id,
                    match_field,
                    match_value,
                    opts.query,
                )
                if len(retry) != 1:
                    raise
                return self._client.update_records(
                    table_id,
                    _with_record_id(data, record_id(retry[0])),
                )

        if opts.create_only:
            raise ConflictError(f"Row already exists: {label}")
        return self._client.update_records(
            table_id,
            _with_record_id(data, record_id(existing[0])),
        )

    def bulk_upsert(
        self,
        table_id: str,
        rows: Sequence[Any],
        match_field: str,
        options: UpsertOptions | None = None,
    ) -> BulkUpsertResult:
        """Split ``rows`` into creates and updates and send one call each.

        Nothing is sent when any row fails the matching rules.
        """

        opts = options or UpsertOptions()
        items = _require_sequence(rows, "bulkUpsert")
        for item in items:
            if not isinstance(item, MappingABC):
                raise ValidationError("bulkUpsert expects an array of row objects")

        lookup: dict[str, list[Row]] = {}
        for existing in self.fetch_all_rows(table_id, opts.query):
            value = existing.get(match_field)
            if value is not None:
                lookup.setdefault(str(value), []).append(existing)

        to_create: list[Row] = []
        to_update: list[Row] = []
        for item in items:
            value = item.get(match_field)
            if value is None:
                if opts.update_only:
                    raise ValidationError(
                        f"Row missing match field '{match_field}'"
                    )
                to_create.append(dict(item))
                continue

            label = f"{match_field}={value}"
            matches = lookup.get(str(value), [])
            if len(matches) > 1:
                raise ValidationError(
                    f"Multiple rows matched '{label}'. "
                    "Bulk upsert requires unique matches."
                )
            if matches:
                if opts.create_only:
                    raise ConflictError(f"Row already exists for '{label}'")
                to_update.append(_with_record_id(item, record_id(matches[0])))
            else:
                if opts.update_only:
                    raise ValidationError(f"No existing row matched '{label}'")
                to_create.append(dict(item))

        result = BulkUpsertResult(created_rows=to_create, updated_rows=to_update)
        if to_create:
            result.created = self._client.create_records(table_id, to_create)
        if to_update:
            result.updated = self._client.update_records(table_id, to_update)
        self._logger.info(
            "bulk-upsert-complete",
            table=table_id,
            created=len(to_create),
            updated=len(to_update),
        )
        return result
