from __future__ import annotations

from typing import Any, Iterable, Sequence

from sheetdash.core.errors import MissingParameterError
from sheetdash.domain.models import DashboardConfig
from sheetdash.domain.values import to_json_number
from sheetdash.persistence.repos.base import DashboardConfigInput, DashboardStore, RecordStore
from sheetdash.services.query_builder import discover_filtration_options, normalize_operation


def _missing(**values: Any) -> list[str]:
    return [name for name, value in values.items() if value is None or value == ""]


def _require(**values: Any) -> None:
    missing = _missing(**values)
    if missing:
        names = ", ".join(f'"{name}"' for name in missing)
        raise MissingParameterError(f"Missing required parameters: {names}")


def _axis_key(value: Any) -> str:
    # JSON object keys are strings; the NULL group is keyed "null".
    return "null" if value is None else str(value)


def chart_points(rows: Iterable[tuple[Any, Any]]) -> list[dict[str, Any]]:
    # One {axisValue: calculatedValue} entry per group, in query order.
    return [{_axis_key(axis): to_json_number(value)} for axis, value in rows]


def serialize_config(config: DashboardConfig) -> dict[str, Any]:
    return {
        "id": config.id,
        "rows": config.x_axis,
        "value": config.y_axis,
        "operation": config.operation,
        "filtration": config.filtration,
        "drilldown": config.drilldown,
        "chartType": config.chart_type,
        "createdAt": config.created_at.isoformat() if config.created_at else None,
    }


async def create_dashboard(
    records: RecordStore,
    dashboards: DashboardStore,
    *,
    rows: str | None,
    value: str | None,
    operation: str | None,
    filtration: Sequence[str] | None = None,
    drilldown: Any | None = None,
    chart_type: str | None = None,
) -> DashboardConfig:
    """Validate and persist a dashboard definition.

    Every check (required fields, operation, axis/value columns, filtration
    columns) runs before the configuration store is written, so a rejected
    definition leaves no trace.
    """
    _require(rows=rows, value=value, operation=operation)
    normalized_operation = normalize_operation(operation)
    builder = await records.query_builder()
    builder.validate_column_exists(rows)
    builder.validate_column_exists(value)

    snapshot: dict[str, list[Any]] | None = None
    if filtration:
        columns = list(dict.fromkeys(filtration))
        snapshot = await discover_filtration_options(records, columns)

    return await dashboards.create(
        DashboardConfigInput(
            x_axis=str(rows),
            y_axis=str(value),
            operation=normalized_operation,
            filtration=snapshot,
            drilldown=drilldown,
            chart_type=chart_type,
        )
    )


async def build_drilldown_chart(
    records: RecordStore,
    *,
    drilldown_column: str | None,
    rows_column: str | None,
    value_column: str | None,
    field_value: Any | None,
    operation: str | None,
) -> list[dict[str, Any]]:
    # Break one selected bar (rows_column = field_value) down by drilldown_column.
    _require(
        drilldownvalue=drilldown_column,
        rows=rows_column,
        values=value_column,
        fieldvalue=field_value,
        operator=operation,
    )
    normalized_operation = normalize_operation(operation)
    builder = await records.query_builder()
    where = builder.build_where_clause(None, extra=(builder.build_equals_clause(str(rows_column), field_value),))
    rows = await records.aggregate(str(drilldown_column), str(value_column), normalized_operation, where)
    return chart_points(rows)
