from __future__ import annotations


class SheetDashError(Exception):
    """Base error for SheetDash."""


class MissingParameterError(SheetDashError):
    """A required request parameter was not supplied."""


class InvalidParameterError(SheetDashError):
    """A request parameter was supplied but cannot be used."""


class UnknownColumnError(SheetDashError):
    """Column name is not part of the live data table schema."""

    def __init__(self, column: str) -> None:
        super().__init__(f"Unknown column: {column}")
        self.column = column


class InvalidOperationError(SheetDashError):
    """Aggregate operation is not one of COUNT, SUM, AVG, MIN, MAX."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Invalid operation: {operation}")
        self.operation = operation


class EmptyInputError(SheetDashError):
    """No file uploaded or the uploaded sheet has no rows."""


class NotFoundError(SheetDashError):
    """No rows or configurations match the lookup."""


class RecordValidationError(SheetDashError):
    """A record in a bulk-insert batch does not conform to the table schema."""

    def __init__(self, message: str, *, row_index: int, column: str | None = None) -> None:
        super().__init__(message)
        self.row_index = row_index
        self.column = column


class ParseFailureError(SheetDashError):
    """Uploaded spreadsheet could not be read."""


class StoreFailureError(SheetDashError):
    """Underlying database query or insert failed."""


class ReplayError(SheetDashError):
    """Dashboard replay aborted on a per-configuration failure."""

    def __init__(self, message: str, *, config_id: int | None = None) -> None:
        super().__init__(message)
        self.config_id = config_id
