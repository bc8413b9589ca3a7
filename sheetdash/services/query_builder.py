from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Sequence

from sheetdash.core.config import DATE_FORMAT
from sheetdash.core.errors import (
    InvalidOperationError,
    InvalidParameterError,
    MissingParameterError,
    UnknownColumnError,
)
from sheetdash.domain.models import DATA_TABLE_NAME
from sheetdash.domain.values import to_stored_value

if TYPE_CHECKING:
    from sheetdash.persistence.repos.base import RecordStore


AGGREGATE_OPERATIONS = ("COUNT", "SUM", "AVG", "MIN", "MAX")
# The data table is textual; these operations need a numeric cast.
_NUMERIC_OPERATIONS = frozenset({"SUM", "AVG"})

DATE_RANGE_TODAY = "today"
DATE_RANGE_THIS_MONTH = "this_month"
DATE_RANGE_LAST_MONTH = "last_month"
NAMED_DATE_RANGES = (DATE_RANGE_TODAY, DATE_RANGE_THIS_MONTH, DATE_RANGE_LAST_MONTH)

DEFAULT_DATE_COLUMN = "SaleDate"

Filtration = Mapping[str, Sequence[Any]]


def ansi_quote(identifier: str) -> str:
    # Standard SQL delimited identifier; embedded quotes are doubled.
    return '"' + identifier.replace('"', '""') + '"'


@dataclass(frozen=True)
class Predicate:
    # Structured form of a rendered condition, evaluated by in-memory stores.
    kind: str
    column: str
    values: tuple[Any, ...] = ()
    include_null: bool = False

    def matches(self, row: Mapping[str, Any]) -> bool:
        value = row.get(self.column)
        if self.kind == "in":
            if value is None:
                return self.include_null
            return value in self.values
        if self.kind == "between":
            if value is None:
                return False
            low, high = self.values
            return low <= value <= high
        if self.kind == "eq":
            return value is not None and value == self.values[0]
        raise ValueError(f"Unsupported predicate kind: {self.kind}")


@dataclass(frozen=True)
class SqlFragment:
    sql: str = ""
    params: dict[str, Any] = field(default_factory=dict)
    predicates: tuple[Predicate, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.sql)

    def matches(self, row: Mapping[str, Any]) -> bool:
        return all(predicate.matches(row) for predicate in self.predicates)


@dataclass(frozen=True)
class FiltrationOverride:
    # One request-supplied {column, values} pair; None in values is the null marker.
    column: str
    values: tuple[Any, ...]


def and_fragments(fragments: Iterable[SqlFragment]) -> SqlFragment:
    present = [fragment for fragment in fragments if fragment]
    if not present:
        return SqlFragment()
    params: dict[str, Any] = {}
    for fragment in present:
        params.update(fragment.params)
    return SqlFragment(
        sql=" AND ".join(fragment.sql for fragment in present),
        params=params,
        predicates=tuple(predicate for fragment in present for predicate in fragment.predicates),
    )


def normalize_operation(operation: str | None) -> str:
    normalized = (operation or "").strip().upper()
    if normalized not in AGGREGATE_OPERATIONS:
        raise InvalidOperationError(str(operation))
    return normalized


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_date(value: str) -> date:
    # Accept the stored MM/DD/YYYY form and ISO dates from date pickers.
    raw = value.strip()
    try:
        return datetime.strptime(raw, DATE_FORMAT).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise InvalidParameterError(f"Invalid date: {value}") from exc


def resolve_date_range(date_range: str, today: date | None = None) -> tuple[str, str]:
    current = today or date.today()
    name = date_range.strip().lower()
    if name == DATE_RANGE_TODAY:
        start = end = current
    elif name == DATE_RANGE_THIS_MONTH:
        start = current.replace(day=1)
        end = current.replace(day=calendar.monthrange(current.year, current.month)[1])
    elif name == DATE_RANGE_LAST_MONTH:
        end = current.replace(day=1) - timedelta(days=1)
        start = end.replace(day=1)
    else:
        raise InvalidParameterError(
            f"Unsupported date range: {date_range} (expected one of {', '.join(NAMED_DATE_RANGES)})"
        )
    return format_date(start), format_date(end)


def bind_value(value: Any) -> str | None:
    # Values compare against textual columns, so they are bound in stored form.
    try:
        return to_stored_value(value)
    except TypeError as exc:
        raise InvalidParameterError(f"Unsupported filter value: {value!r}") from exc


def filtration_from_overrides(overrides: Sequence[FiltrationOverride] | None) -> dict[str, list[Any]]:
    # Repeated columns accumulate their values.
    filtration: dict[str, list[Any]] = {}
    for override in overrides or ():
        bucket = filtration.setdefault(override.column, [])
        for value in override.values:
            if value not in bucket:
                bucket.append(value)
    return filtration


class QueryBuilder:
    """Builds parameterized SQL against a snapshot of the live column catalog.

    Identifiers cannot be bound as parameters, so every column name is checked
    against ``columns`` before it is quoted into a fragment. Values are always
    bound.
    """

    def __init__(
        self,
        columns: Iterable[str],
        *,
        quote: Callable[[str], str] = ansi_quote,
        date_column: str = DEFAULT_DATE_COLUMN,
        table_name: str = DATA_TABLE_NAME,
    ) -> None:
        self.columns: tuple[str, ...] = tuple(columns)
        self._known = frozenset(self.columns)
        self._quote = quote
        self.date_column = date_column
        self.table_name = table_name

    def validate_column_exists(self, column: str | None) -> str:
        if not column or column not in self._known:
            raise UnknownColumnError(str(column))
        return column

    def _identifier(self, column: str | None) -> str:
        return self._quote(self.validate_column_exists(column))

    @property
    def _table(self) -> str:
        return self._quote(self.table_name)

    def build_filtration_clause(
        self,
        filtration: Filtration | None,
        overrides: Sequence[FiltrationOverride] | None = None,
    ) -> SqlFragment:
        effective: Filtration = filtration_from_overrides(overrides) if overrides else (filtration or {})
        fragments: list[SqlFragment] = []
        for index, (column, raw_values) in enumerate(effective.items()):
            identifier = self._identifier(column)
            values = list(raw_values or ())
            include_null = any(value is None for value in values)
            concrete = [bind_value(value) for value in values if value is not None]
            if not concrete and not include_null:
                continue
            params = {f"f{index}_{position}": value for position, value in enumerate(concrete)}
            predicate = Predicate("in", column, tuple(concrete), include_null)
            if not concrete:
                sql = f"{identifier} IS NULL"
            else:
                binds = ", ".join(f":{name}" for name in params)
                sql = f"{identifier} IN ({binds})"
                if include_null:
                    sql = f"({sql} OR {identifier} IS NULL)"
            fragments.append(SqlFragment(sql=sql, params=params, predicates=(predicate,)))
        return and_fragments(fragments)

    def build_date_clause(
        self,
        start_date: str | None,
        end_date: str | None,
        date_range: str | None,
        *,
        today: date | None = None,
    ) -> SqlFragment:
        if start_date and end_date:
            start = format_date(parse_date(start_date))
            end = format_date(parse_date(end_date))
        elif date_range:
            start, end = resolve_date_range(date_range, today)
        elif start_date or end_date:
            missing = "endDate" if start_date else "startDate"
            raise MissingParameterError(f'"{missing}" is required when a date bound is supplied')
        else:
            return SqlFragment()
        identifier = self._identifier(self.date_column)
        return SqlFragment(
            sql=f"{identifier} BETWEEN :date_start AND :date_end",
            params={"date_start": start, "date_end": end},
            predicates=(Predicate("between", self.date_column, (start, end)),),
        )

    def build_equals_clause(self, column: str, value: Any, *, param: str = "match_value") -> SqlFragment:
        identifier = self._identifier(column)
        value = bind_value(value)
        return SqlFragment(
            sql=f"{identifier} = :{param}",
            params={param: value},
            predicates=(Predicate("eq", column, (value,)),),
        )

    def build_link_clause(self, column: str, value: Any) -> SqlFragment:
        return self.build_equals_clause(column, value, param="link_value")

    def build_where_clause(
        self,
        filtration: Filtration | None,
        overrides: Sequence[FiltrationOverride] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        date_range: str | None = None,
        *,
        extra: Sequence[SqlFragment] = (),
        today: date | None = None,
    ) -> SqlFragment:
        combined = and_fragments(
            [
                self.build_filtration_clause(filtration, overrides),
                self.build_date_clause(start_date, end_date, date_range, today=today),
                *extra,
            ]
        )
        if not combined:
            return combined
        return SqlFragment(sql=f"WHERE {combined.sql}", params=combined.params, predicates=combined.predicates)

    def build_aggregate_query(
        self,
        axis_column: str,
        value_column: str,
        operation: str,
        where: SqlFragment | None = None,
    ) -> SqlFragment:
        axis = self._identifier(axis_column)
        value = self._identifier(value_column)
        op = normalize_operation(operation)
        target = f"CAST({value} AS NUMERIC)" if op in _NUMERIC_OPERATIONS else value
        where = where or SqlFragment()
        parts = [
            f"SELECT {axis} AS axis_value, {op}({target}) AS {self._quote('calculatedValue')}",
            f"FROM {self._table}",
        ]
        if where:
            parts.append(where.sql)
        parts.append(f"GROUP BY {axis}")
        parts.append(f"ORDER BY {axis}")
        return SqlFragment(sql=" ".join(parts), params=dict(where.params), predicates=where.predicates)

    def build_distinct_query(self, column: str) -> SqlFragment:
        identifier = self._identifier(column)
        return SqlFragment(
            sql=f"SELECT DISTINCT {identifier} AS option_value FROM {self._table} ORDER BY {identifier}"
        )

    def build_select_where(
        self,
        column: str,
        value: Any,
        page: int,
        page_size: int,
    ) -> tuple[SqlFragment, SqlFragment]:
        if page < 1:
            raise InvalidParameterError("page must be a positive integer")
        if page_size < 1:
            raise InvalidParameterError("limit must be a positive integer")
        identifier = self._identifier(column)
        value = bind_value(value)
        predicates = (Predicate("eq", column, (value,)),)
        count = SqlFragment(
            sql=f"SELECT COUNT(*) AS total FROM {self._table} WHERE {identifier} = :match_value",
            params={"match_value": value},
            predicates=predicates,
        )
        order_column = self._quote("id") if "id" in self._known else identifier
        rows = SqlFragment(
            sql=(
                f"SELECT * FROM {self._table} WHERE {identifier} = :match_value "
                f"ORDER BY {order_column} LIMIT :limit OFFSET :offset"
            ),
            params={"match_value": value, "limit": page_size, "offset": (page - 1) * page_size},
            predicates=predicates,
        )
        return count, rows


async def discover_filtration_options(
    store: RecordStore,
    columns: Sequence[str],
) -> dict[str, list[Any]]:
    # Validate every column before any distinct-value read; the first unknown one is reported.
    builder = await store.query_builder()
    for column in columns:
        builder.validate_column_exists(column)
    options: dict[str, list[Any]] = {}
    for column in columns:
        options[column] = await store.distinct_values(column)
    return options
