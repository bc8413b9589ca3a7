from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Any, Iterable

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sheetdash.core.errors import ParseFailureError


def _header(values: Iterable[Any]) -> list[str]:
    return [str(value).strip() if value is not None else "" for value in values]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def rows_from_values(values: Iterable[Iterable[Any]]) -> list[dict[str, Any]]:
    # First row is the header; blank header cells drop their column and fully blank rows are skipped.
    iterator = iter(values)
    try:
        header = _header(next(iterator))
    except StopIteration:
        return []
    rows: list[dict[str, Any]] = []
    for raw in iterator:
        cells = list(raw)
        row: dict[str, Any] = {}
        for index, name in enumerate(header):
            if not name:
                continue
            value = cells[index] if index < len(cells) else None
            if _is_blank(value):
                continue
            row[name] = value
        if row:
            rows.append(row)
    return rows


def read_first_sheet(path: str | Path) -> list[dict[str, Any]]:
    """Read the first worksheet of an .xlsx workbook into header-keyed rows."""
    try:
        workbook = load_workbook(filename=str(path), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ParseFailureError(f"Unable to read workbook: {Path(path).name}") from exc
    try:
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[0]
        return rows_from_values(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()
