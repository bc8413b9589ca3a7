from __future__ import annotations

from datetime import date

import pytest

from sheetdash.core.errors import (
    InvalidOperationError,
    InvalidParameterError,
    MissingParameterError,
    UnknownColumnError,
)
from sheetdash.services.query_builder import (
    FiltrationOverride,
    QueryBuilder,
    normalize_operation,
    parse_date,
    resolve_date_range,
)


COLUMNS = ("id", "Project", "Building", "UnitStatus", "SaleDate", "SaleValue")


def _builder() -> QueryBuilder:
    return QueryBuilder(COLUMNS)


def test_filtration_clause_binds_values_as_in_list() -> None:
    fragment = _builder().build_filtration_clause({"Project": ["A", "B"]})
    assert fragment.sql == '"Project" IN (:f0_0, :f0_1)'
    assert fragment.params == {"f0_0": "A", "f0_1": "B"}


def test_filtration_clause_null_marker_adds_is_null() -> None:
    builder = _builder()
    mixed = builder.build_filtration_clause({"Project": ["A", None]})
    assert mixed.sql == '("Project" IN (:f0_0) OR "Project" IS NULL)'
    assert mixed.params == {"f0_0": "A"}

    only_null = builder.build_filtration_clause({"Project": [None]})
    assert only_null.sql == '"Project" IS NULL'
    assert only_null.params == {}


def test_filtration_clause_skips_empty_lists_and_joins_with_and() -> None:
    fragment = _builder().build_filtration_clause({"Project": [], "Building": ["T1"], "UnitStatus": ["Sold"]})
    assert fragment.sql == '"Building" IN (:f1_0) AND "UnitStatus" IN (:f2_0)'
    assert fragment.params == {"f1_0": "T1", "f2_0": "Sold"}


def test_filtration_overrides_replace_stored_filtration() -> None:
    fragment = _builder().build_filtration_clause(
        {"Project": ["A", "B"]},
        [FiltrationOverride(column="Building", values=("T2",))],
    )
    assert fragment.sql == '"Building" IN (:f0_0)'
    assert fragment.params == {"f0_0": "T2"}


def test_filtration_values_are_bound_in_stored_form() -> None:
    fragment = _builder().build_filtration_clause({"SaleValue": [1500.0, 7]})
    assert fragment.params == {"f0_0": "1500", "f0_1": "7"}


def test_filtration_rejects_unknown_column() -> None:
    with pytest.raises(UnknownColumnError) as excinfo:
        _builder().build_filtration_clause({"Bogus": ["x"]})
    assert excinfo.value.column == "Bogus"


def test_date_clause_today() -> None:
    fragment = _builder().build_date_clause(None, None, "today", today=date(2024, 3, 7))
    assert fragment.sql == '"SaleDate" BETWEEN :date_start AND :date_end'
    assert fragment.params == {"date_start": "03/07/2024", "date_end": "03/07/2024"}


def test_explicit_dates_take_precedence_over_named_range() -> None:
    fragment = _builder().build_date_clause("2024-01-01", "01/31/2024", "today", today=date(2024, 3, 7))
    assert fragment.params == {"date_start": "01/01/2024", "date_end": "01/31/2024"}


def test_date_clause_requires_both_bounds() -> None:
    with pytest.raises(MissingParameterError):
        _builder().build_date_clause("01/01/2024", None, None)


def test_date_clause_absent_is_empty() -> None:
    assert not _builder().build_date_clause(None, None, None)


@pytest.mark.parametrize(
    ("name", "today", "expected"),
    [
        ("this_month", date(2024, 2, 10), ("02/01/2024", "02/29/2024")),
        ("last_month", date(2024, 1, 15), ("12/01/2023", "12/31/2023")),
        ("TODAY", date(2024, 5, 1), ("05/01/2024", "05/01/2024")),
    ],
)
def test_resolve_date_range(name: str, today: date, expected: tuple[str, str]) -> None:
    assert resolve_date_range(name, today) == expected


def test_resolve_date_range_rejects_unknown_name() -> None:
    with pytest.raises(InvalidParameterError) as excinfo:
        resolve_date_range("next_year", date(2024, 1, 1))
    assert "today, this_month, last_month" in str(excinfo.value)


def test_parse_date_rejects_garbage() -> None:
    with pytest.raises(InvalidParameterError):
        parse_date("not-a-date")


def test_normalize_operation() -> None:
    assert normalize_operation(" sum ") == "SUM"
    with pytest.raises(InvalidOperationError) as excinfo:
        normalize_operation("MEDIAN")
    assert excinfo.value.operation == "MEDIAN"
    with pytest.raises(InvalidOperationError):
        normalize_operation(None)


def test_where_clause_prefix_and_merged_params() -> None:
    builder = _builder()
    where = builder.build_where_clause(
        {"Project": ["A"]},
        start_date="01/01/2024",
        end_date="01/31/2024",
        extra=(builder.build_link_clause("Building", "T1"),),
    )
    assert where.sql == (
        'WHERE "Project" IN (:f0_0) AND "SaleDate" BETWEEN :date_start AND :date_end '
        'AND "Building" = :link_value'
    )
    assert where.params == {
        "f0_0": "A",
        "date_start": "01/01/2024",
        "date_end": "01/31/2024",
        "link_value": "T1",
    }


def test_where_clause_empty_without_conditions() -> None:
    where = _builder().build_where_clause(None)
    assert where.sql == ""
    assert where.params == {}


def test_aggregate_query_casts_numeric_operations() -> None:
    builder = _builder()
    query = builder.build_aggregate_query("Project", "SaleValue", "sum", builder.build_where_clause({"Building": ["T1"]}))
    assert query.sql == (
        'SELECT "Project" AS axis_value, SUM(CAST("SaleValue" AS NUMERIC)) AS "calculatedValue" '
        'FROM "excel_data" WHERE "Building" IN (:f0_0) GROUP BY "Project" ORDER BY "Project"'
    )
    assert query.params == {"f0_0": "T1"}

    count = builder.build_aggregate_query("Project", "UnitStatus", "COUNT")
    assert "COUNT(\"UnitStatus\")" in count.sql
    assert "WHERE" not in count.sql


def test_aggregate_query_validates_identifiers() -> None:
    with pytest.raises(UnknownColumnError):
        _builder().build_aggregate_query("Project; DROP TABLE x", "SaleValue", "SUM")


def test_select_where_paging() -> None:
    count, rows = _builder().build_select_where("Project", "A", page=3, page_size=20)
    assert count.sql == 'SELECT COUNT(*) AS total FROM "excel_data" WHERE "Project" = :match_value'
    assert rows.params == {"match_value": "A", "limit": 20, "offset": 40}
    assert rows.sql.endswith('ORDER BY "id" LIMIT :limit OFFSET :offset')


def test_select_where_rejects_non_positive_paging() -> None:
    with pytest.raises(InvalidParameterError):
        _builder().build_select_where("Project", "A", page=0, page_size=10)
    with pytest.raises(InvalidParameterError):
        _builder().build_select_where("Project", "A", page=1, page_size=0)
