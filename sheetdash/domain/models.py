from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


DATA_TABLE_NAME = "excel_data"
DASHBOARD_TABLE_NAME = "DashboardConfig"


class Base(DeclarativeBase):
    pass


class ExcelData(Base):
    __tablename__ = DATA_TABLE_NAME

    # Surrogate key only; no business key is enforced and duplicates are allowed.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    Project: Mapped[str | None] = mapped_column(String, nullable=True)
    Building: Mapped[str | None] = mapped_column(String, nullable=True)
    UnitCode: Mapped[str | None] = mapped_column(String, nullable=True)
    # Stored as MM/DD/YYYY text to match the spreadsheet representation.
    SaleDate: Mapped[str | None] = mapped_column(String, nullable=True)
    CustomerName: Mapped[str | None] = mapped_column(String, nullable=True)
    Area: Mapped[str | None] = mapped_column(String, nullable=True)
    SaleValue: Mapped[str | None] = mapped_column(String, nullable=True)
    UnitType: Mapped[str | None] = mapped_column(String, nullable=True)
    BrokerName: Mapped[str | None] = mapped_column(String, nullable=True)
    SalesAgent: Mapped[str | None] = mapped_column(String, nullable=True)
    UnitStatus: Mapped[str | None] = mapped_column(String, nullable=True)
    UnitStatusNew: Mapped[str | None] = mapped_column(String, nullable=True)
    OQOOD: Mapped[str | None] = mapped_column(String, nullable=True)
    OQOODDone: Mapped[str | None] = mapped_column(String, nullable=True)
    InvoicedAmount: Mapped[str | None] = mapped_column(String, nullable=True)
    DueAmount: Mapped[str | None] = mapped_column(String, nullable=True)
    Ageing: Mapped[str | None] = mapped_column(String, nullable=True)
    PaymentPlan: Mapped[str | None] = mapped_column(String, nullable=True)
    Realised: Mapped[str | None] = mapped_column(String, nullable=True)
    PDC: Mapped[str | None] = mapped_column(String, nullable=True)
    TotalCollection: Mapped[str | None] = mapped_column(String, nullable=True)


class DashboardConfig(Base):
    __tablename__ = DASHBOARD_TABLE_NAME

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Axis (group-by) column.
    x_axis: Mapped[str] = mapped_column(String, nullable=False)
    # Aggregated value column.
    y_axis: Mapped[str] = mapped_column(String, nullable=False)
    operation: Mapped[str] = mapped_column(String, nullable=False)
    # Column -> distinct values snapshot taken when the dashboard was defined.
    filtration: Mapped[dict[str, list[Any]] | None] = mapped_column(JSON, nullable=True)
    # Opaque caller-defined structure, passed through unmodified.
    drilldown: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    chart_type: Mapped[str | None] = mapped_column("chartType", String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
