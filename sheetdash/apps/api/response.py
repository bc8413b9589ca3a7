from __future__ import annotations

from typing import Any, Generic, TypeVar
from uuid import uuid4

from fastapi import Request
from pydantic import BaseModel


# Application-level success code carried in every response body.
SUCCESS_CODE = 600

# Routes answering with the flat {headerCode, ...} shape instead of {header, body}.
_HEADER_CODE_PATHS = ("/upload-excel", "/get-column-names")

T = TypeVar("T")


class ResponseHeader(BaseModel):
    code: int


class ResponseBody(BaseModel, Generic[T]):
    value: T | None = None
    error: str | None = None


class Envelope(BaseModel, Generic[T]):
    header: ResponseHeader
    body: ResponseBody[T]


class HeaderCodeResponse(BaseModel):
    headerCode: int
    message: str | None = None


class ColumnNamesResponse(HeaderCodeResponse):
    columns: list[str]


class UploadResponse(HeaderCodeResponse):
    inserted: int


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    header_request_id = request.headers.get("X-Request-Id")
    if header_request_id:
        request.state.request_id = header_request_id
        return header_request_id
    generated = str(uuid4())
    request.state.request_id = generated
    return generated


def uses_header_code(request: Request) -> bool:
    return request.url.path.startswith(_HEADER_CODE_PATHS)


def envelope_response(*, value: Any = None, error: str | None = None, code: int = SUCCESS_CODE) -> dict[str, Any]:
    return {"header": {"code": code}, "body": {"value": value, "error": error}}


def header_code_response(*, code: int = SUCCESS_CODE, message: str | None = None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"headerCode": code}
    if message is not None:
        payload["message"] = message
    payload.update(extra)
    return payload


def error_response(*, request: Request, status_code: int, message: str) -> dict[str, Any]:
    # Error bodies reuse the success shape of the route they came from.
    if uses_header_code(request):
        return header_code_response(code=status_code, message=message)
    return envelope_response(error=message, code=status_code)
