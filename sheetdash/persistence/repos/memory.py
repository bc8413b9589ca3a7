from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

from sheetdash.core.errors import StoreFailureError
from sheetdash.domain.models import DashboardConfig, ExcelData
from sheetdash.persistence.repos.base import DashboardConfigInput, Record
from sheetdash.persistence.repos.records import normalize_records
from sheetdash.services.query_builder import (
    DEFAULT_DATE_COLUMN,
    QueryBuilder,
    SqlFragment,
    normalize_operation,
)


DEFAULT_COLUMNS = tuple(item.name for item in ExcelData.__table__.columns)


def _sort_key(value: Any) -> tuple[int, Any]:
    # NULL group first, then values in natural order.
    return (0, "") if value is None else (1, value)


def _numeric(values: Iterable[Any]) -> list[Decimal]:
    numbers: list[Decimal] = []
    for value in values:
        try:
            numbers.append(Decimal(str(value)))
        except InvalidOperation as exc:
            raise StoreFailureError(f"Non-numeric value in aggregate: {value!r}") from exc
    return numbers


def _apply(operation: str, values: list[Any]) -> Any:
    present = [value for value in values if value is not None]
    if operation == "COUNT":
        return len(present)
    if not present:
        return None
    if operation == "SUM":
        return sum(_numeric(present), Decimal(0))
    if operation == "AVG":
        numbers = _numeric(present)
        return sum(numbers, Decimal(0)) / len(numbers)
    if operation == "MIN":
        return min(present)
    return max(present)


class InMemoryRecordStore:
    """Record store over a list of dicts; evaluates fragment predicates instead of SQL."""

    def __init__(
        self,
        rows: Sequence[Record] = (),
        *,
        columns: Sequence[str] = DEFAULT_COLUMNS,
        date_column: str = DEFAULT_DATE_COLUMN,
    ) -> None:
        self.columns = list(columns)
        self._date_column = date_column
        self.rows: list[dict[str, Any]] = []
        if rows:
            self._append(normalize_records(rows, self.columns))

    def _append(self, rows: list[dict[str, Any]]) -> None:
        for row in rows:
            if "id" in self.columns:
                row = {"id": len(self.rows) + 1, **row}
            self.rows.append(row)

    async def list_column_names(self) -> list[str]:
        return list(self.columns)

    async def query_builder(self) -> QueryBuilder:
        return QueryBuilder(self.columns, date_column=self._date_column)

    async def bulk_insert(self, records: Sequence[Record]) -> int:
        rows = normalize_records(records, self.columns)
        self._append(rows)
        return len(rows)

    async def distinct_values(self, column: str) -> list[Any]:
        builder = await self.query_builder()
        builder.validate_column_exists(column)
        distinct = {row.get(column) for row in self.rows}
        return sorted(distinct, key=_sort_key)

    async def aggregate(
        self,
        axis_column: str,
        value_column: str,
        operation: str,
        where: SqlFragment | None = None,
    ) -> list[tuple[Any, Any]]:
        builder = await self.query_builder()
        # Same validation path as the SQL store.
        builder.build_aggregate_query(axis_column, value_column, operation, where)
        op = normalize_operation(operation)
        groups: dict[Any, list[Any]] = {}
        for row in self.rows:
            if where is not None and not where.matches(row):
                continue
            groups.setdefault(row.get(axis_column), []).append(row.get(value_column))
        return [(axis, _apply(op, groups[axis])) for axis in sorted(groups, key=_sort_key)]

    async def select_where(
        self,
        column: str,
        value: Any,
        page: int,
        page_size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        builder = await self.query_builder()
        _count, rows_query = builder.build_select_where(column, value, page, page_size)
        matches = [dict(row) for row in self.rows if rows_query.matches(row)]
        offset = (page - 1) * page_size
        return matches[offset : offset + page_size], len(matches)


class InMemoryDashboardStore:
    def __init__(self) -> None:
        self.configs: list[DashboardConfig] = []

    async def create(self, config: DashboardConfigInput) -> DashboardConfig:
        row = DashboardConfig(
            id=len(self.configs) + 1,
            x_axis=config.x_axis,
            y_axis=config.y_axis,
            operation=config.operation,
            filtration=config.filtration,
            drilldown=config.drilldown,
            chart_type=config.chart_type,
            created_at=datetime.now(timezone.utc),
        )
        self.configs.append(row)
        return row

    async def list_all(self) -> list[DashboardConfig]:
        return list(self.configs)

    async def get(self, config_id: int) -> DashboardConfig | None:
        for config in self.configs:
            if config.id == config_id:
                return config
        return None
