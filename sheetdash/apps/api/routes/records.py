from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel

from sheetdash.apps.api.deps import get_record_store
from sheetdash.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from sheetdash.apps.api.response import (
    ColumnNamesResponse,
    UploadResponse,
    header_code_response,
)
from sheetdash.core.config import get_settings
from sheetdash.core.errors import EmptyInputError, InvalidParameterError
from sheetdash.persistence.repos.base import RecordStore
from sheetdash.services.records import ingest_spreadsheet, view_details, write_upload


logger = logging.getLogger(__name__)
router = APIRouter(tags=["records"], responses=DEFAULT_ERROR_RESPONSES)


class ViewDetailsResponse(BaseModel):
    totalRecords: int
    totalPages: int
    currentPage: int
    records: list[dict[str, Any]]


@router.post("/upload-excel", response_model=UploadResponse)
async def upload_excel(
    file: UploadFile | None = File(default=None),
    records: RecordStore = Depends(get_record_store),
) -> dict[str, Any]:
    if file is None or not file.filename:
        raise EmptyInputError("No file uploaded")
    payload = await file.read()
    if not payload:
        raise EmptyInputError("Uploaded file is empty")
    path = await asyncio.to_thread(write_upload, file.filename, payload)
    logger.info("upload_received filename=%s bytes=%s", file.filename, len(payload))
    inserted = await ingest_spreadsheet(records, path)
    return header_code_response(message="Data inserted successfully", inserted=inserted)


@router.get("/get-column-names", response_model=ColumnNamesResponse)
async def get_column_names(records: RecordStore = Depends(get_record_store)) -> dict[str, Any]:
    columns = await records.list_column_names()
    return header_code_response(columns=columns)


@router.get("/view-details", response_model=ViewDetailsResponse)
async def get_view_details(
    fieldname: str | None = Query(default=None),
    fieldvalue: str | None = Query(default=None),
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    records: RecordStore = Depends(get_record_store),
) -> dict[str, Any]:
    settings = get_settings()
    page_size = settings.view_details_default_limit if limit is None else limit
    if page_size > settings.view_details_max_limit:
        raise InvalidParameterError(f"limit must not exceed {settings.view_details_max_limit}")
    return await view_details(
        records,
        field_name=fieldname,
        field_value=fieldvalue,
        page=page,
        limit=page_size,
    )
