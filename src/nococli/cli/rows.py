"""Typer command group for row listing, bulk mutations and upserts."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import typer

from nococli.cli.common import (
    NocoCLIContext,
    emit_json,
    handle_failure,
    load_json_input,
    parse_key_value,
    require_context,
)
from nococli.client import client_from_config
from nococli.errors import NocoError, ValidationError
from nococli.services import BulkOptions, BulkResult, RowService, UpsertOptions

_rows_app = typer.Typer(
    name="rows",
    help="List, bulk-mutate and upsert table rows.",
    no_args_is_help=True,
    invoke_without_command=False,
)


def _table_argument() -> Any:
    return typer.Argument(
        ...,
        metavar="TABLE",
        help="Table ID, alias, or workspace.alias.",
    )


def _data_option() -> Any:
    return typer.Option(None, "--data", "-d", help="Inline JSON payload.")


def _file_option() -> Any:
    return typer.Option(
        None,
        "--file",
        "-f",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Read the JSON payload from a file.",
    )


def _pretty_option() -> Any:
    return typer.Option(False, "--pretty", help="Indent JSON output.")


def _timeout_option() -> Any:
    return typer.Option(
        None,
        "--timeout-ms",
        help="Override the request timeout for this call.",
    )


def _retry_option() -> Any:
    return typer.Option(
        None,
        "--retry-count",
        help="Override the retry count for this call.",
    )


@contextmanager
def _row_service(
    context: NocoCLIContext,
    table: str,
    *,
    timeout_ms: int | None,
    retry_count: int | None,
) -> Iterator[tuple[RowService, str]]:
    """Yield a :class:`RowService` and the resolved table ID."""

    manager = context.manager
    resolved = manager.resolve_alias(table)
    effective = manager.get_effective_config(
        {"timeoutMs": timeout_ms, "retryCount": retry_count},
        workspace_name=resolved.workspace_name,
    )
    client = client_from_config(effective)
    try:
        yield RowService(client), resolved.id
    finally:
        client.close()


def _emit_bulk(result: BulkResult, *, pretty: bool) -> None:
    emit_json(result.to_dict(), pretty=pretty)
    if result.failed:
        raise typer.Exit(code=1)


def _bulk_options(fail_fast: bool, batch_size: int) -> BulkOptions:
    return BulkOptions(fail_fast=fail_fast, batch_size=batch_size)


@_rows_app.command("list", help="List rows of a table.")
def list_rows(
    ctx: typer.Context,
    table: str = _table_argument(),
    query: list[str] = typer.Option(
        None,
        "--query",
        "-q",
        metavar="KEY=VALUE",
        help="Query parameter passed to the list endpoint; repeatable.",
    ),
    fetch_all: bool = typer.Option(
        False,
        "--all",
        help="Follow pagination and return every row.",
    ),
    pretty: bool = _pretty_option(),
    timeout_ms: int | None = _timeout_option(),
    retry_count: int | None = _retry_option(),
) -> None:
    context = require_context(ctx)
    try:
        params = dict(parse_key_value(item, option="--query") for item in query or ())
        with _row_service(
            context,
            table,
            timeout_ms=timeout_ms,
            retry_count=retry_count,
        ) as (service, table_id):
            if fetch_all:
                payload: Any = service.fetch_all_rows(table_id, params)
            else:
                payload = service.list(table_id, params or None)
    except NocoError as exc:
        handle_failure(context, action="rows list", error=exc)
    emit_json(payload, pretty=pretty)


def _run_bulk(
    ctx: typer.Context,
    *,
    action: str,
    table: str,
    data: str | None,
    file: Path | None,
    fail_fast: bool,
    batch_size: int,
    pretty: bool,
    timeout_ms: int | None,
    retry_count: int | None,
) -> None:
    context = require_context(ctx)
    try:
        rows = load_json_input(data, file)
        options = _bulk_options(fail_fast, batch_size)
        with _row_service(
            context,
            table,
            timeout_ms=timeout_ms,
            retry_count=retry_count,
        ) as (service, table_id):
            operation = {
                "bulk-create": service.bulk_create,
                "bulk-update": service.bulk_update,
                "bulk-delete": service.bulk_delete,
            }[action]
            result = operation(table_id, rows, options)
    except NocoError as exc:
        handle_failure(context, action=f"rows {action}", error=exc)
    context.logger.bind(action=action).info(
        "rows-bulk",
        table=table,
        failed=result.failed or 0,
    )
    _emit_bulk(result, pretty=pretty)


def _register_bulk(action: str, summary: str) -> None:
    @_rows_app.command(action, help=summary)
    def command(
        ctx: typer.Context,
        table: str = _table_argument(),
        data: str | None = _data_option(),
        file: Path | None = _file_option(),
        fail_fast: bool = typer.Option(
            False,
            "--fail-fast",
            help="Send rows in batches and stop at the first error.",
        ),
        batch_size: int = typer.Option(
            1000,
            "--batch-size",
            min=1,
            help="Rows per request in --fail-fast mode.",
        ),
        pretty: bool = _pretty_option(),
        timeout_ms: int | None = _timeout_option(),
        retry_count: int | None = _retry_option(),
    ) -> None:
        _run_bulk(
            ctx,
            action=action,
            table=table,
            data=data,
            file=file,
            fail_fast=fail_fast,
            batch_size=batch_size,
            pretty=pretty,
            timeout_ms=timeout_ms,
            retry_count=retry_count,
        )


_register_bulk("bulk-create", "Create many rows; failures are reported per row.")
_register_bulk("bulk-update", "Update many rows (each must include Id).")
_register_bulk("bulk-delete", "Delete many rows (each must include Id).")


def _upsert_options(create_only: bool, update_only: bool) -> UpsertOptions:
    return UpsertOptions(create_only=create_only, update_only=update_only)


@_rows_app.command("upsert", help="Create or update the row matching FIELD=VALUE.")
def upsert_row(
    ctx: typer.Context,
    table: str = _table_argument(),
    match: str = typer.Option(
        ...,
        "--match",
        "-m",
        metavar="FIELD=VALUE",
        help="Field and value identifying the row.",
    ),
    data: str | None = _data_option(),
    file: Path | None = _file_option(),
    create_only: bool = typer.Option(False, "--create-only"),
    update_only: bool = typer.Option(False, "--update-only"),
    pretty: bool = _pretty_option(),
    timeout_ms: int | None = _timeout_option(),
    retry_count: int | None = _retry_option(),
) -> None:
    context = require_context(ctx)
    try:
        field, value = parse_key_value(match, option="--match")
        payload = load_json_input(data, file)
        options = _upsert_options(create_only, update_only)
        with _row_service(
            context,
            table,
            timeout_ms=timeout_ms,
            retry_count=retry_count,
        ) as (service, table_id):
            result = service.upsert(table_id, payload, field, value, options)
    except NocoError as exc:
        handle_failure(context, action="rows upsert", error=exc)
    emit_json(result, pretty=pretty)


@_rows_app.command("bulk-upsert", help="Upsert many rows matched on FIELD.")
def bulk_upsert_rows(
    ctx: typer.Context,
    table: str = _table_argument(),
    match: str = typer.Option(
        ...,
        "--match",
        "-m",
        metavar="FIELD",
        help="Field used to match existing rows.",
    ),
    data: str | None = _data_option(),
    file: Path | None = _file_option(),
    create_only: bool = typer.Option(False, "--create-only"),
    update_only: bool = typer.Option(False, "--update-only"),
    pretty: bool = _pretty_option(),
    timeout_ms: int | None = _timeout_option(),
    retry_count: int | None = _retry_option(),
) -> None:
    context = require_context(ctx)
    try:
        if not match:
            raise ValidationError("--match requires a field name")
        rows = load_json_input(data, file)
        options = _upsert_options(create_only, update_only)
        with _row_service(
            context,
            table,
            timeout_ms=timeout_ms,
            retry_count=retry_count,
        ) as (service, table_id):
            result = service.bulk_upsert(table_id, rows, match, options)
    except NocoError as exc:
        handle_failure(context, action="rows bulk-upsert", error=exc)
    emit_json(result.to_dict(), pretty=pretty)


def create_rows_app() -> typer.Typer:
    """Return the Typer app handling `noco rows` subcommands."""

    return _rows_app


__all__ = ["create_rows_app"]
