from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Protocol, Sequence

from sheetdash.domain.models import DashboardConfig

if TYPE_CHECKING:
    from sheetdash.services.query_builder import QueryBuilder, SqlFragment


Record = Mapping[str, Any]


@dataclass(frozen=True)
class DashboardConfigInput:
    # Validated dashboard definition ready to persist.
    x_axis: str
    y_axis: str
    operation: str
    filtration: dict[str, list[Any]] | None = None
    drilldown: Any | None = None
    chart_type: str | None = None


class RecordStore(Protocol):
    async def query_builder(self) -> QueryBuilder:
        ...

    async def list_column_names(self) -> list[str]:
        ...

    async def bulk_insert(self, records: Sequence[Record]) -> int:
        ...

    async def distinct_values(self, column: str) -> list[Any]:
        ...

    async def aggregate(
        self,
        axis_column: str,
        value_column: str,
        operation: str,
        where: SqlFragment | None = None,
    ) -> list[tuple[Any, Any]]:
        ...

    async def select_where(
        self,
        column: str,
        value: Any,
        page: int,
        page_size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        ...


class DashboardStore(Protocol):
    async def create(self, config: DashboardConfigInput) -> DashboardConfig:
        ...

    async def list_all(self) -> list[DashboardConfig]:
        ...

    async def get(self, config_id: int) -> DashboardConfig | None:
        ...
