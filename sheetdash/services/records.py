from __future__ import annotations

import asyncio
import logging
import math
from pathlib import Path
from typing import Any
from uuid import uuid4

from sheetdash.core.config import get_settings
from sheetdash.core.errors import EmptyInputError, MissingParameterError, NotFoundError
from sheetdash.ingestion.spreadsheet import read_first_sheet
from sheetdash.persistence.repos.base import RecordStore


logger = logging.getLogger(__name__)


def _upload_dir() -> Path:
    directory = Path(get_settings().upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def write_upload(filename: str | None, payload: bytes) -> Path:
    # Unique names so concurrent uploads never collide on disk.
    suffix = Path(filename or "").suffix or ".xlsx"
    path = _upload_dir() / f"{uuid4().hex}{suffix}"
    path.write_bytes(payload)
    return path


async def ingest_spreadsheet(records: RecordStore, path: Path) -> int:
    """Parse the first sheet at ``path`` and bulk-insert its rows.

    The uploaded file is removed only after a successful insert; on failure it
    is left in place.
    """
    # openpyxl parsing is blocking; keep it off the event loop.
    rows = await asyncio.to_thread(read_first_sheet, path)
    if not rows:
        raise EmptyInputError("Excel sheet is empty")
    inserted = await records.bulk_insert(rows)
    path.unlink(missing_ok=True)
    logger.info("spreadsheet_ingested rows=%s", inserted)
    return inserted


async def view_details(
    records: RecordStore,
    *,
    field_name: str | None,
    field_value: str | None,
    page: int,
    limit: int,
) -> dict[str, Any]:
    if not field_name or field_value is None or field_value == "":
        raise MissingParameterError('"fieldname" and "fieldvalue" are required')
    rows, total = await records.select_where(field_name, field_value, page, limit)
    if total == 0:
        raise NotFoundError("No records found")
    return {
        "totalRecords": total,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "records": rows,
    }
