"""
Error taxonomy for customer operations.

Every error carries a caller-facing message and the HTTP status it maps to.
Messages are passed through verbatim; backend errors keep the raw driver text.
"""
from __future__ import annotations

from typing import Any


class CustomerError(Exception):
    status_code = 500

    def __init__(self, message: str, *, details: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(CustomerError):
    """Missing required field or invalid value; the caller can correct it."""

    status_code = 400

    def __init__(self, message: str, *, fields: list[dict[str, str]] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class BackendError(CustomerError):
    """Record store failure."""

    status_code = 500


class NotFoundError(BackendError):
    pass


class UploadError(CustomerError):
    """Blob store write failed."""

    status_code = 500
