"""
Shared error handling for the offline access layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for offline access layer services."""

    #: Whether the failure is worth deferring and replaying later.
    transient = False

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        from shared.logging import request_id_var

        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class OfflineError(AccessLayerException):
    """No connectivity and no usable cached value."""

    def __init__(self, message: str = "Device is offline", details: Optional[Dict[str, Any]] = None):
        super().__init__("OFFLINE", message, details)


class TransportError(AccessLayerException):
    """Request failed to reach the server or timed out."""

    transient = True

    def __init__(self, message: str = "Transport error", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, details)


class ServerError(AccessLayerException):
    """Server reachable but explicitly rejected the call."""

    def __init__(self, error_code: str, message: str = "Server rejected the call", details: Optional[Dict[str, Any]] = None):
        self.error_code = str(error_code)
        super().__init__("SERVER_ERROR", f"{self.error_code}: {message}", details)


class MalformedResponseError(AccessLayerException):
    """Response could not be parsed as the expected structure."""

    def __init__(self, message: str = "Malformed response", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_RESPONSE", message, details)


class TransferError(AccessLayerException):
    """Upload or download failure."""

    def __init__(self, message: str = "File transfer failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSFER_ERROR", message, details)


class SiteNotFoundError(AccessLayerException):
    """Referenced site is not registered."""

    def __init__(self, site_id: str):
        super().__init__("SITE_NOT_FOUND", f"Unknown site: {site_id}", {"site_id": site_id})


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)
