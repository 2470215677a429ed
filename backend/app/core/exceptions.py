"""Error taxonomy surfaced by the directory service."""

from __future__ import annotations


class DirectoryError(Exception):
    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DirectoryError):
    """Bad input shape or range. ``fields`` maps field name to message."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, fields: dict[str, str]) -> None:
        super().__init__("; ".join(fields.values()) or "Invalid input")
        self.fields = fields


class InvalidInputError(DirectoryError):
    code = "INVALID_INPUT"
    status_code = 400


class NotFoundError(DirectoryError):
    code = "NOT_FOUND"
    status_code = 404


class UnknownOperationError(DirectoryError):
    code = "UNKNOWN_OPERATION"
    status_code = 400


class InternalError(DirectoryError):
    code = "INTERNAL_SERVER_ERROR"
    status_code = 500


class StoreUnavailableError(Exception):
    """Raised by the document store when it is not configured or not reachable."""
