from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import column, insert, inspect, table, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sheetdash.core.errors import RecordValidationError, StoreFailureError
from sheetdash.domain.models import DATA_TABLE_NAME
from sheetdash.domain.values import to_stored_value
from sheetdash.persistence.repos.base import Record
from sheetdash.services.query_builder import DEFAULT_DATE_COLUMN, QueryBuilder, SqlFragment


logger = logging.getLogger(__name__)

# Assigned by the database; never accepted from spreadsheet rows.
_GENERATED_COLUMNS = frozenset({"id"})


def normalize_records(records: Sequence[Record], columns: Sequence[str]) -> list[dict[str, Any]]:
    """Shape-check a batch against the live schema and convert values to stored text.

    Raises ``RecordValidationError`` for the first offending record, so callers
    can reject the whole batch before writing anything.
    """
    insertable = [name for name in columns if name not in _GENERATED_COLUMNS]
    allowed = frozenset(insertable)
    rows: list[dict[str, Any]] = []
    for index, record in enumerate(records):
        if not hasattr(record, "items"):
            raise RecordValidationError(f"Record {index} is not a mapping", row_index=index)
        for key in record:
            if key not in allowed:
                raise RecordValidationError(
                    f"Record {index} has unknown column: {key}", row_index=index, column=str(key)
                )
        row: dict[str, Any] = {name: None for name in insertable}
        for key, value in record.items():
            try:
                row[key] = to_stored_value(value)
            except TypeError as exc:
                raise RecordValidationError(
                    f"Record {index} has an invalid value for {key}", row_index=index, column=key
                ) from exc
        rows.append(row)
    return rows


def _inspect_columns(sync_conn) -> list[str]:
    return [item["name"] for item in inspect(sync_conn).get_columns(DATA_TABLE_NAME)]


class SqlRecordStore:
    def __init__(self, session: AsyncSession, *, date_column: str = DEFAULT_DATE_COLUMN) -> None:
        self._session = session
        self._date_column = date_column

    async def list_column_names(self) -> list[str]:
        # Introspect on every call so the catalog tracks the live table.
        try:
            conn = await self._session.connection()
            return await conn.run_sync(_inspect_columns)
        except SQLAlchemyError as exc:
            raise StoreFailureError("Failed to read data table schema") from exc

    async def query_builder(self) -> QueryBuilder:
        columns = await self.list_column_names()
        conn = await self._session.connection()
        preparer = conn.dialect.identifier_preparer
        return QueryBuilder(
            columns,
            quote=preparer.quote_identifier,
            date_column=self._date_column,
        )

    async def bulk_insert(self, records: Sequence[Record]) -> int:
        columns = await self.list_column_names()
        rows = normalize_records(records, columns)
        if not rows:
            return 0
        target = table(DATA_TABLE_NAME, *(column(name) for name in rows[0]))
        try:
            await self._session.execute(insert(target), rows)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.warning("bulk_insert_failed rows=%s", len(rows), exc_info=exc)
            raise StoreFailureError("Failed to insert records") from exc
        return len(rows)

    async def _fetch(self, fragment: SqlFragment) -> list[Any]:
        try:
            result = await self._session.execute(text(fragment.sql), fragment.params)
            return list(result.all())
        except SQLAlchemyError as exc:
            logger.warning("data_query_failed sql=%s", fragment.sql, exc_info=exc)
            raise StoreFailureError("Data query failed") from exc

    async def distinct_values(self, column: str) -> list[Any]:
        builder = await self.query_builder()
        rows = await self._fetch(builder.build_distinct_query(column))
        return [row[0] for row in rows]

    async def aggregate(
        self,
        axis_column: str,
        value_column: str,
        operation: str,
        where: SqlFragment | None = None,
    ) -> list[tuple[Any, Any]]:
        builder = await self.query_builder()
        query = builder.build_aggregate_query(axis_column, value_column, operation, where)
        rows = await self._fetch(query)
        return [(row[0], row[1]) for row in rows]

    async def select_where(
        self,
        column: str,
        value: Any,
        page: int,
        page_size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        builder = await self.query_builder()
        count_query, rows_query = builder.build_select_where(column, value, page, page_size)
        total_rows = await self._fetch(count_query)
        total = int(total_rows[0][0]) if total_rows else 0
        if total == 0:
            return [], 0
        rows = await self._fetch(rows_query)
        return [dict(row._mapping) for row in rows], total
