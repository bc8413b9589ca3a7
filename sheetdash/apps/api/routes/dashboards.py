from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from sheetdash.apps.api.deps import get_dashboard_store, get_record_store
from sheetdash.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from sheetdash.apps.api.response import Envelope, envelope_response
from sheetdash.persistence.repos.base import DashboardStore, RecordStore
from sheetdash.services.dashboards import build_drilldown_chart, create_dashboard, serialize_config
from sheetdash.services.query_builder import FiltrationOverride
from sheetdash.services.replay import ReplayParams, replay_dashboards


router = APIRouter(tags=["dashboards"], responses=DEFAULT_ERROR_RESPONSES)

# Request bodies use the camelCase keys the dashboard UI sends.
_BODY_CONFIG = {"populate_by_name": True}


class DashboardCreateRequest(BaseModel):
    rows: str | None = None
    value: str | None = None
    operation: str | None = None
    # Column names whose distinct values are snapshotted into the definition.
    filtration: list[str] | None = None
    drilldown: Any | None = None
    chart_type: str | None = Field(default=None, alias="chartType")

    model_config = _BODY_CONFIG


class DrilldownChartRequest(BaseModel):
    drilldownvalue: str | None = None
    rows: str | None = None
    values: str | None = None
    fieldvalue: Any | None = None
    operator: str | None = None


class FiltrationSelection(BaseModel):
    column: str
    values: list[Any] = Field(default_factory=list)


class FetchDetailsRequest(BaseModel):
    linkchart: str | None = None
    linkchartvalue: Any | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    date_range: str | None = Field(default=None, alias="dateRange")
    id: int | None = None
    selected_filtration: list[FiltrationSelection] | None = Field(default=None, alias="selectedFiltration")

    model_config = _BODY_CONFIG

    def to_params(self) -> ReplayParams:
        return ReplayParams(
            config_id=self.id,
            link_chart=self.linkchart,
            link_chart_value=self.linkchartvalue,
            start_date=self.start_date,
            end_date=self.end_date,
            date_range=self.date_range,
            selected_filtration=tuple(
                FiltrationOverride(column=item.column, values=tuple(item.values))
                for item in self.selected_filtration or ()
            ),
        )


@router.post("/dashboard", response_model=Envelope[dict[str, Any]])
async def post_dashboard(
    payload: DashboardCreateRequest,
    records: RecordStore = Depends(get_record_store),
    dashboards: DashboardStore = Depends(get_dashboard_store),
) -> dict[str, Any]:
    config = await create_dashboard(
        records,
        dashboards,
        rows=payload.rows,
        value=payload.value,
        operation=payload.operation,
        filtration=payload.filtration,
        drilldown=payload.drilldown,
        chart_type=payload.chart_type,
    )
    return envelope_response(value=serialize_config(config))


@router.post("/create-drilldown-chart", response_model=Envelope[dict[str, Any]])
async def post_drilldown_chart(
    payload: DrilldownChartRequest,
    records: RecordStore = Depends(get_record_store),
) -> dict[str, Any]:
    chart = await build_drilldown_chart(
        records,
        drilldown_column=payload.drilldownvalue,
        rows_column=payload.rows,
        value_column=payload.values,
        field_value=payload.fieldvalue,
        operation=payload.operator,
    )
    return envelope_response(value={"chart": chart})


@router.post("/fetch-details", response_model=Envelope[list[dict[str, Any]]])
async def post_fetch_details(
    payload: FetchDetailsRequest | None = None,
    records: RecordStore = Depends(get_record_store),
    dashboards: DashboardStore = Depends(get_dashboard_store),
) -> dict[str, Any]:
    params = payload.to_params() if payload is not None else ReplayParams()
    results = await replay_dashboards(records, dashboards, params)
    return envelope_response(value=results)
