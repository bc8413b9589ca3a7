from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass

from sqlalchemy import func, select

from sheetdash.domain.models import DashboardConfig, ExcelData
from sheetdash.persistence.db import SessionLocal, init_db
from sheetdash.persistence.repos.dashboards import SqlDashboardStore
from sheetdash.persistence.repos.records import SqlRecordStore
from sheetdash.services.dashboards import create_dashboard


@dataclass(frozen=True)
class DemoSale:
    # Deterministic rows so charts look the same on every seed.
    project: str
    building: str
    unit_code: str
    sale_date: str
    sale_value: int
    unit_status: str


def build_demo_sales() -> tuple[DemoSale, ...]:
    return (
        DemoSale("Marina Heights", "A", "A-101", "01/15/2024", 1200000, "Sold"),
        DemoSale("Marina Heights", "A", "A-102", "01/28/2024", 1350000, "Sold"),
        DemoSale("Marina Heights", "B", "B-201", "02/03/2024", 980000, "Reserved"),
        DemoSale("Palm Gardens", "C", "C-301", "02/11/2024", 2100000, "Sold"),
        DemoSale("Palm Gardens", "C", "C-302", "03/05/2024", 1875000, "Available"),
        DemoSale("Palm Gardens", "D", "D-401", "03/19/2024", 2450000, "Sold"),
    )


def build_demo_records() -> list[dict[str, object]]:
    return [
        {
            "Project": sale.project,
            "Building": sale.building,
            "UnitCode": sale.unit_code,
            "SaleDate": sale.sale_date,
            "SaleValue": sale.sale_value,
            "UnitStatus": sale.unit_status,
        }
        for sale in build_demo_sales()
    ]


async def seed_demo() -> int:
    await init_db()
    async with SessionLocal() as session:
        existing = await session.execute(select(func.count()).select_from(ExcelData))
        if existing.scalar_one() > 0:
            print("Demo data already seeded; skipping.")
            return 0

        records = SqlRecordStore(session)
        inserted = await records.bulk_insert(build_demo_records())

        configured = await session.execute(select(func.count()).select_from(DashboardConfig))
        if configured.scalar_one() == 0:
            await create_dashboard(
                records,
                SqlDashboardStore(session),
                rows="Project",
                value="SaleValue",
                operation="sum",
                filtration=["UnitStatus"],
                drilldown={"column": "Building"},
                chart_type="bar",
            )
        print(f"Seeded {inserted} demo rows.")
        return 0


def main() -> int:
    # Surface clear failures and exit non-zero so dev scripts can detect issues.
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
