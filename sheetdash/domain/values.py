from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sheetdash.core.config import DATE_FORMAT


def to_stored_value(value: Any) -> str | None:
    # Every data column is textual; dates use the MM/DD/YYYY form date filters compare against.
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def to_json_number(value: Any) -> Any:
    # Drivers return Decimal for NUMERIC aggregates; JSON clients expect plain numbers.
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value
