from __future__ import annotations

import pytest

from sheetdash.core.errors import InvalidOperationError, MissingParameterError, UnknownColumnError
from sheetdash.persistence.repos.memory import InMemoryDashboardStore, InMemoryRecordStore
from sheetdash.services.dashboards import build_drilldown_chart, chart_points, create_dashboard, serialize_config


def _records() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        [
            {"Project": "A", "Building": "T1", "SaleValue": 100, "UnitStatus": "Sold"},
            {"Project": "A", "Building": "T1", "SaleValue": 20, "UnitStatus": "Reserved"},
            {"Project": "A", "Building": "T2", "SaleValue": 50, "UnitStatus": "Sold"},
            {"Project": "B", "Building": "T1", "SaleValue": 200},
        ]
    )


async def test_create_dashboard_snapshots_filtration_options() -> None:
    dashboards = InMemoryDashboardStore()
    config = await create_dashboard(
        _records(),
        dashboards,
        rows="Project",
        value="SaleValue",
        operation="avg",
        filtration=["UnitStatus", "Building", "UnitStatus"],
        drilldown={"column": "Building"},
        chart_type="pie",
    )
    assert config.operation == "AVG"
    assert config.filtration == {"UnitStatus": [None, "Reserved", "Sold"], "Building": ["T1", "T2"]}
    payload = serialize_config(config)
    assert payload["rows"] == "Project"
    assert payload["value"] == "SaleValue"
    assert payload["chartType"] == "pie"
    assert payload["drilldown"] == {"column": "Building"}
    assert len(dashboards.configs) == 1


@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"rows": None, "value": "SaleValue", "operation": "SUM"}, MissingParameterError),
        ({"rows": "Project", "value": "SaleValue", "operation": "MEDIAN"}, InvalidOperationError),
        ({"rows": "Nope", "value": "SaleValue", "operation": "SUM"}, UnknownColumnError),
        ({"rows": "Project", "value": "SaleValue", "operation": "SUM", "filtration": ["Ghost"]}, UnknownColumnError),
    ],
)
async def test_create_dashboard_rejects_invalid_definitions(kwargs: dict, error: type[Exception]) -> None:
    dashboards = InMemoryDashboardStore()
    with pytest.raises(error):
        await create_dashboard(_records(), dashboards, **kwargs)
    assert dashboards.configs == []


async def test_drilldown_chart_breaks_down_selected_axis_value() -> None:
    chart = await build_drilldown_chart(
        _records(),
        drilldown_column="Building",
        rows_column="Project",
        value_column="SaleValue",
        field_value="A",
        operation="sum",
    )
    assert chart == [{"T1": 120}, {"T2": 50}]


async def test_drilldown_chart_requires_every_parameter() -> None:
    with pytest.raises(MissingParameterError) as excinfo:
        await build_drilldown_chart(
            _records(),
            drilldown_column="Building",
            rows_column=None,
            value_column="SaleValue",
            field_value="",
            operation="SUM",
        )
    assert '"rows"' in str(excinfo.value)
    assert '"fieldvalue"' in str(excinfo.value)


def test_chart_points_keys_null_group() -> None:
    assert chart_points([(None, 3), ("A", 1)]) == [{"null": 3}, {"A": 1}]
