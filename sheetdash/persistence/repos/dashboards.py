from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sheetdash.core.errors import StoreFailureError
from sheetdash.domain.models import DashboardConfig
from sheetdash.persistence.repos.base import DashboardConfigInput


logger = logging.getLogger(__name__)


class SqlDashboardStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, config: DashboardConfigInput) -> DashboardConfig:
        row = DashboardConfig(
            x_axis=config.x_axis,
            y_axis=config.y_axis,
            operation=config.operation,
            filtration=config.filtration,
            drilldown=config.drilldown,
            chart_type=config.chart_type,
        )
        self._session.add(row)
        try:
            await self._session.commit()
            await self._session.refresh(row)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.warning("dashboard_config_insert_failed x_axis=%s", config.x_axis, exc_info=exc)
            raise StoreFailureError("Failed to save dashboard configuration") from exc
        return row

    async def list_all(self) -> list[DashboardConfig]:
        # Insertion order is the replay order.
        try:
            result = await self._session.execute(select(DashboardConfig).order_by(DashboardConfig.id))
        except SQLAlchemyError as exc:
            raise StoreFailureError("Failed to list dashboard configurations") from exc
        return list(result.scalars().all())

    async def get(self, config_id: int) -> DashboardConfig | None:
        try:
            result = await self._session.execute(
                select(DashboardConfig).where(DashboardConfig.id == config_id)
            )
        except SQLAlchemyError as exc:
            raise StoreFailureError("Failed to load dashboard configuration") from exc
        return result.scalar_one_or_none()
