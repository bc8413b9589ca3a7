from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from sheetdash.core.errors import ReplayError, SheetDashError
from sheetdash.domain.models import DashboardConfig
from sheetdash.persistence.repos.base import DashboardStore, RecordStore
from sheetdash.services.dashboards import chart_points
from sheetdash.services.query_builder import (
    FiltrationOverride,
    QueryBuilder,
    SqlFragment,
    discover_filtration_options,
    normalize_operation,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayParams:
    # Runtime overrides applied on top of every stored configuration.
    config_id: int | None = None
    link_chart: str | None = None
    link_chart_value: Any | None = None
    start_date: str | None = None
    end_date: str | None = None
    date_range: str | None = None
    selected_filtration: tuple[FiltrationOverride, ...] = ()

    @property
    def link_active(self) -> bool:
        return bool(self.link_chart) and self.link_chart_value not in (None, "")


def _validate_request(builder: QueryBuilder, params: ReplayParams, today: date | None) -> SqlFragment | None:
    # Request-level input is rejected before any configuration or data is read.
    builder.build_filtration_clause(None, params.selected_filtration)
    builder.build_date_clause(params.start_date, params.end_date, params.date_range, today=today)
    if params.link_active:
        return builder.build_link_clause(str(params.link_chart), params.link_chart_value)
    return None


async def _replay_one(
    *,
    records: RecordStore,
    builder: QueryBuilder,
    config: DashboardConfig,
    params: ReplayParams,
    link_clause: SqlFragment | None,
    today: date | None,
) -> dict[str, Any]:
    stored = config.filtration or {}
    # The stored snapshot filters unless the caller selected filters explicitly.
    where = builder.build_where_clause(
        stored,
        params.selected_filtration,
        params.start_date,
        params.end_date,
        params.date_range,
        extra=(link_clause,) if link_clause is not None else (),
        today=today,
    )
    # Options shown to the caller are always re-read from live data.
    live_options = await discover_filtration_options(records, list(stored))
    operation = normalize_operation(config.operation)
    rows = await records.aggregate(config.x_axis, config.y_axis, operation, where)
    return {
        "id": config.id,
        "chart": chart_points(rows),
        "filtration": live_options,
        "drilldown": config.drilldown,
        "rows": config.x_axis,
        "operation": operation,
        "values": config.y_axis,
        "chartType": config.chart_type,
    }


async def replay_dashboards(
    records: RecordStore,
    dashboards: DashboardStore,
    params: ReplayParams,
    *,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Re-run stored dashboard configurations with runtime overrides.

    Configurations are replayed in stored order. The link-chart condition is
    applied to every configuration except the first one replayed, which is the
    chart driving the others. A failure in any configuration aborts the whole
    replay with ``ReplayError``.
    """
    builder = await records.query_builder()
    link_clause = _validate_request(builder, params, today)

    if params.config_id is not None:
        config = await dashboards.get(params.config_id)
        configs = [config] if config is not None else []
    else:
        configs = await dashboards.list_all()

    results: list[dict[str, Any]] = []
    for position, config in enumerate(configs):
        try:
            results.append(
                await _replay_one(
                    records=records,
                    builder=builder,
                    config=config,
                    params=params,
                    link_clause=link_clause if position > 0 else None,
                    today=today,
                )
            )
        except SheetDashError as exc:
            logger.warning("dashboard_replay_failed config_id=%s", config.id, exc_info=exc)
            raise ReplayError(f"Dashboard {config.id} failed: {exc}", config_id=config.id) from exc
    return results
