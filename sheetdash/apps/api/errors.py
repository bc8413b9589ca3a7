from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sheetdash.apps.api.response import error_response, get_request_id
from sheetdash.core.errors import (
    EmptyInputError,
    InvalidOperationError,
    InvalidParameterError,
    MissingParameterError,
    NotFoundError,
    ParseFailureError,
    RecordValidationError,
    ReplayError,
    SheetDashError,
    StoreFailureError,
    UnknownColumnError,
)


logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides the status.
_STATUS_BY_ERROR: tuple[tuple[type[SheetDashError], int], ...] = (
    (MissingParameterError, 400),
    (InvalidParameterError, 400),
    (UnknownColumnError, 400),
    (InvalidOperationError, 400),
    (EmptyInputError, 400),
    (RecordValidationError, 400),
    (NotFoundError, 404),
    (ParseFailureError, 500),
    (StoreFailureError, 500),
    (ReplayError, 500),
)

_GENERIC_MESSAGES: dict[type[SheetDashError], str] = {
    ParseFailureError: "Error processing file",
    StoreFailureError: "Error accessing data store",
}


def status_for_error(exc: SheetDashError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _public_message(exc: SheetDashError, status_code: int) -> str:
    if status_code < 500 or isinstance(exc, ReplayError):
        return str(exc)
    for error_type, message in _GENERIC_MESSAGES.items():
        if isinstance(exc, error_type):
            return message
    return "Internal server error"


def _detail_message(detail: Any) -> str:
    if isinstance(detail, dict):
        return str(detail.get("message") or "Request failed")
    if isinstance(detail, str):
        return detail
    return "Request failed"


async def sheetdash_exception_handler(request: Request, exc: SheetDashError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(
            "request_failed path=%s error=%s request_id=%s",
            request.url.path,
            type(exc).__name__,
            get_request_id(request),
            exc_info=exc,
        )
    payload = error_response(
        request=request,
        status_code=status_code,
        message=_public_message(exc, status_code),
    )
    return JSONResponse(content=payload, status_code=status_code)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    payload = error_response(request=request, status_code=exc.status_code, message=_detail_message(exc.detail))
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def starlette_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    payload = error_response(request=request, status_code=exc.status_code, message=_detail_message(exc.detail))
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed or mistyped parameters are reported as 400 like missing ones.
    fields = sorted({".".join(str(part) for part in error.get("loc", ())[1:]) for error in exc.errors()})
    message = "Invalid request parameters"
    if any(fields):
        message = f"{message}: {', '.join(field for field in fields if field)}"
    payload = error_response(request=request, status_code=400, message=message)
    return JSONResponse(content=payload, status_code=400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_unhandled_error path=%s request_id=%s", request.url.path, get_request_id(request), exc_info=exc
    )
    payload = error_response(request=request, status_code=500, message="Internal server error")
    return JSONResponse(content=payload, status_code=500)
