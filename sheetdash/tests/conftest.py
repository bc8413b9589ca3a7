from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Point settings at a throwaway SQLite database before any sheetdash import reads them.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="sheetdash-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_ROOT / 'sheetdash.db'}")
os.environ.setdefault("UPLOAD_DIR", str(_TEST_ROOT / "uploads"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from sheetdash.domain.models import DashboardConfig, ExcelData  # noqa: E402
from sheetdash.persistence.db import SessionLocal, engine, init_db  # noqa: E402


@pytest.fixture(autouse=True)
async def reset_tables_between_tests() -> None:
    # Each test starts from empty tables on a freshly created schema.
    await init_db()
    async with SessionLocal() as session:
        await session.execute(delete(DashboardConfig))
        await session.execute(delete(ExcelData))
        await session.commit()
    yield
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    await engine.dispose()
