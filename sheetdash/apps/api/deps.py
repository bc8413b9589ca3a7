from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sheetdash.core.config import get_settings
from sheetdash.persistence.db import get_session
from sheetdash.persistence.repos.base import DashboardStore, RecordStore
from sheetdash.persistence.repos.dashboards import SqlDashboardStore
from sheetdash.persistence.repos.records import SqlRecordStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; closed on success or error.
    async with get_session() as session:
        yield session


def get_record_store(db: AsyncSession = Depends(get_db)) -> RecordStore:
    return SqlRecordStore(db, date_column=get_settings().date_column)


def get_dashboard_store(db: AsyncSession = Depends(get_db)) -> DashboardStore:
    return SqlDashboardStore(db)
