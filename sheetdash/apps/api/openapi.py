from __future__ import annotations

from typing import Any

from sheetdash.apps.api.response import Envelope


def _error_example(*, code: int, message: str) -> dict[str, Any]:
    return {"header": {"code": code}, "body": {"value": None, "error": message}}


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {
        "model": Envelope[Any],
        "description": "Missing or invalid parameters, unknown column or operation",
        "content": {
            "application/json": {
                "example": _error_example(code=400, message="Unknown column: NoSuchColumn"),
            }
        },
    },
    404: {
        "model": Envelope[Any],
        "description": "No matching rows",
        "content": {
            "application/json": {
                "example": _error_example(code=404, message="No records found"),
            }
        },
    },
    500: {
        "model": Envelope[Any],
        "description": "Store or parse failure",
        "content": {
            "application/json": {
                "example": _error_example(code=500, message="Error accessing data store"),
            }
        },
    },
}
