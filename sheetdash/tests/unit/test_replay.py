from __future__ import annotations

from datetime import date

import pytest

from sheetdash.core.errors import InvalidParameterError, MissingParameterError, ReplayError, UnknownColumnError
from sheetdash.persistence.repos.base import DashboardConfigInput
from sheetdash.persistence.repos.memory import InMemoryDashboardStore, InMemoryRecordStore
from sheetdash.services.query_builder import FiltrationOverride
from sheetdash.services.replay import ReplayParams, replay_dashboards


SALES = [
    {"Project": "A", "Building": "T1", "SaleValue": 100, "SaleDate": "01/05/2024", "UnitStatus": "Sold"},
    {"Project": "A", "Building": "T2", "SaleValue": 50, "SaleDate": "01/20/2024", "UnitStatus": "Sold"},
    {"Project": "B", "Building": "T1", "SaleValue": 200, "SaleDate": "02/02/2024", "UnitStatus": "Reserved"},
    {"Building": "T3", "SaleValue": 5, "SaleDate": "02/03/2024"},
]


async def _stores(*configs: DashboardConfigInput) -> tuple[InMemoryRecordStore, InMemoryDashboardStore]:
    records = InMemoryRecordStore(SALES)
    dashboards = InMemoryDashboardStore()
    for config in configs:
        await dashboards.create(config)
    return records, dashboards


async def test_replay_sums_per_axis_value_with_normalized_operation() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="sum", chart_type="bar")
    )
    results = await replay_dashboards(records, dashboards, ReplayParams())
    assert len(results) == 1
    entry = results[0]
    assert entry["operation"] == "SUM"
    assert entry["rows"] == "Project"
    assert entry["values"] == "SaleValue"
    assert entry["chartType"] == "bar"
    assert entry["chart"] == [{"null": 5}, {"A": 150}, {"B": 200}]


async def test_replay_filters_with_snapshot_but_reports_live_options() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(
            x_axis="Building",
            y_axis="SaleValue",
            operation="SUM",
            filtration={"Project": ["A"]},
        )
    )
    await records.bulk_insert([{"Project": "C", "Building": "T9", "SaleValue": 1}])
    results = await replay_dashboards(records, dashboards, ReplayParams())
    assert results[0]["chart"] == [{"T1": 100}, {"T2": 50}]
    assert results[0]["filtration"] == {"Project": [None, "A", "B", "C"]}


async def test_selected_filtration_replaces_stored_filtration() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(
            x_axis="Project",
            y_axis="SaleValue",
            operation="SUM",
            filtration={"Project": ["A"]},
        )
    )
    params = ReplayParams(selected_filtration=(FiltrationOverride(column="Building", values=("T1",)),))
    results = await replay_dashboards(records, dashboards, params)
    assert results[0]["chart"] == [{"A": 100}, {"B": 200}]


async def test_link_chart_applies_to_every_config_but_the_first() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="SUM"),
        DashboardConfigInput(x_axis="Building", y_axis="SaleValue", operation="COUNT"),
    )
    params = ReplayParams(link_chart="Project", link_chart_value="A")
    first, second = await replay_dashboards(records, dashboards, params)
    assert first["chart"] == [{"null": 5}, {"A": 150}, {"B": 200}]
    assert second["chart"] == [{"T1": 1}, {"T2": 1}]


async def test_replay_single_config_by_id() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="SUM"),
        DashboardConfigInput(x_axis="Building", y_axis="SaleValue", operation="MAX"),
    )
    results = await replay_dashboards(records, dashboards, ReplayParams(config_id=2))
    assert [entry["id"] for entry in results] == [2]

    assert await replay_dashboards(records, dashboards, ReplayParams(config_id=99)) == []


async def test_replay_date_range_today() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="SUM")
    )
    results = await replay_dashboards(
        records,
        dashboards,
        ReplayParams(date_range="today"),
        today=date(2024, 2, 2),
    )
    assert results[0]["chart"] == [{"B": 200}]


async def test_replay_rejects_invalid_request_before_reading_configs() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="SUM")
    )
    with pytest.raises(UnknownColumnError):
        await replay_dashboards(
            records,
            dashboards,
            ReplayParams(selected_filtration=(FiltrationOverride(column="Nope", values=("x",)),)),
        )
    with pytest.raises(MissingParameterError):
        await replay_dashboards(records, dashboards, ReplayParams(start_date="01/01/2024"))


async def test_replay_aborts_when_any_config_fails() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="SUM"),
        DashboardConfigInput(x_axis="DroppedColumn", y_axis="SaleValue", operation="SUM"),
    )
    with pytest.raises(ReplayError) as excinfo:
        await replay_dashboards(records, dashboards, ReplayParams())
    assert excinfo.value.config_id == 2
    assert "DroppedColumn" in str(excinfo.value)


async def test_replay_rejects_unbindable_override_values_as_request_errors() -> None:
    records, dashboards = await _stores(
        DashboardConfigInput(x_axis="Project", y_axis="SaleValue", operation="SUM")
    )
    params = ReplayParams(selected_filtration=(FiltrationOverride(column="Project", values=({"a": 1},)),))
    with pytest.raises(InvalidParameterError):
        await replay_dashboards(records, dashboards, params)
