"""
Domain errors and the API error envelope.

Services raise these; the FastAPI app turns them into responses with a
stable machine-readable ``error_code``.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to API clients."""
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SERVICE_UPSTREAM_ERROR = "SERVICE_UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ProviderErrorKind(str, Enum):
    """How the completion provider adapter classifies a failure."""
    AUTH = "auth"      # Credentials rejected or missing
    QUOTA = "quota"    # Rate limit / quota exhausted, recoverable via fallback
    OTHER = "other"    # Timeouts, 5xx, malformed responses


class APIError(BaseModel):
    """Error body returned for every domain error."""
    error_code: str = Field(..., examples=["RESOURCE_NOT_FOUND"])
    message: str
    request_id: Optional[str] = None


class AIStaffError(Exception):
    """Base class for all domain errors."""
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AIStaffError):
    """Record missing or not owned by the caller."""
    error_code = ErrorCode.RESOURCE_NOT_FOUND
    status_code = 404


class ConflictError(AIStaffError):
    """Record already exists (e.g. duplicate email)."""
    error_code = ErrorCode.RESOURCE_CONFLICT
    status_code = 400


class ProviderError(AIStaffError):
    """The completion provider failed; fatal to the turn."""
    error_code = ErrorCode.SERVICE_UPSTREAM_ERROR
    status_code = 502
    kind: ProviderErrorKind = ProviderErrorKind.OTHER

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ProviderAuthError(ProviderError):
    """Provider rejected (or was never given) credentials."""
    error_code = ErrorCode.CONFIGURATION_ERROR
    status_code = 503
    kind = ProviderErrorKind.AUTH


class ProviderQuotaError(ProviderError):
    """Provider is rate limited or out of quota."""
    kind = ProviderErrorKind.QUOTA
