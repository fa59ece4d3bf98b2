# workline/utils/errors.py
from __future__ import annotations


class WorklineError(Exception):
    """Base error carrying the HTTP status the API layer maps it to."""

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DomainValidationError(WorklineError, ValueError):
    http_status = 400


class Unauthorized(WorklineError):
    http_status = 401


class Forbidden(WorklineError):
    http_status = 403


class NotFoundError(WorklineError, LookupError):
    http_status = 404

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class ConflictError(WorklineError):
    http_status = 409
