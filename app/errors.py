"""Domain error taxonomy shared by services, endpoints and the API client.

Validation and conflict errors are user-correctable and carry the field they
refer to. Network/timeout errors are transient and may be retried by the
client. A partial failure (ledger write failed after the local write
committed) is recorded on the registration result, not raised.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class AffiliateError(Exception):
    """Base class for all affiliate workflow errors."""

    status_code: int = 500
    error_type: str = "unknown"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "message": self.message, "errorType": self.error_type}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(AffiliateError):
    status_code = 400
    error_type = "validation"

    def __init__(self, errors: Dict[str, str], message: str = "Invalid registration data"):
        first_field = next(iter(errors), None)
        super().__init__(message, field=first_field)
        self.errors = dict(errors)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["errors"] = self.errors
        return payload


class ConflictError(AffiliateError):
    """Unique constraint violation on a user-chosen identifier."""

    status_code = 409
    error_type = "duplicate"


class NotFoundError(AffiliateError):
    status_code = 404
    error_type = "not_found"


class NetworkError(AffiliateError):
    """Transient transport failure; safe to retry."""

    status_code = 503
    error_type = "network"


class RequestTimeoutError(NetworkError):
    error_type = "timeout"


class ApiError(AffiliateError):
    """Non-2xx application response. Never retried."""

    error_type = "api"

    def __init__(self, message: str, status_code: int, payload: Optional[Dict[str, Any]] = None):
        payload = payload or {}
        super().__init__(message, field=payload.get("field"))
        self.status_code = status_code
        self.payload = payload


class PartialFailureError(AffiliateError):
    """Ledger replication failed after the local registration committed."""

    error_type = "partial_failure"

    def __init__(self, message: str, affiliate_code: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.affiliate_code = affiliate_code
        self.cause = cause


class StorageError(AffiliateError):
    status_code = 503
    error_type = "storage"


class CodeGenerationError(AffiliateError):
    """Every generated candidate code was already taken."""

    status_code = 409
    error_type = "code_exhausted"


class UnknownError(AffiliateError):
    error_type = "unknown"


__all__ = [
    "AffiliateError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "NetworkError",
    "RequestTimeoutError",
    "ApiError",
    "PartialFailureError",
    "StorageError",
    "CodeGenerationError",
    "UnknownError",
]
