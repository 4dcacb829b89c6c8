"""
Portal Error Taxonomy
=====================
Every failure a handler can report to a caller is a `PortalError`. The HTTP
layer (`portal_shared.http`) turns these into the response envelope

    {"error": {"code": "CONFLICT", "message": "...", "details": {...}}}

so services raise and never build error responses themselves.
"""
from __future__ import annotations

from typing import Any


class PortalError(Exception):
    code = "INTERNAL_ERROR"
    status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(PortalError):
    code = "VALIDATION_ERROR"
    status = 400


class UnauthorizedError(PortalError):
    code = "UNAUTHORIZED"
    status = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(PortalError):
    code = "FORBIDDEN"
    status = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class NotFoundError(PortalError):
    code = "NOT_FOUND"
    status = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictError(PortalError):
    code = "CONFLICT"
    status = 409


class ConcurrentModificationError(ConflictError):
    """The record changed since the caller read it. Re-fetch and retry."""

    def __init__(
        self,
        message: str = "The data was modified by another user, please refresh and try again",
        reasons: list[dict] | None = None,
    ):
        super().__init__(message)
        self.reasons = reasons or []


class ReferentialIntegrityViolation(ConflictError):
    """A delete would orphan dependent records. Not retryable until they are removed."""

    def __init__(self, message: str, dependency: str | None = None):
        super().__init__(message, {"dependency": dependency} if dependency else None)
        self.dependency = dependency


class TransactionFailedError(ConflictError):
    def __init__(self, message: str, reasons: list[dict] | None = None):
        self.reasons = reasons or []
        super().__init__(message, {"reasons": self.reasons} if self.reasons else None)


class TransactionTooLargeError(PortalError):
    """More operations were queued than one TransactWriteItems call accepts."""
