"""Exception hierarchy for shiptrack."""

import traceback
from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ShiptrackError(Exception):
    """Base exception for all shiptrack errors.

    ``http_status`` is the response code the web layer uses when the error
    escapes a request handler.
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}
        self.severity = severity
        self.traceback_str = traceback.format_exc() if cause else None


class ConfigurationError(ShiptrackError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(ShiptrackError):
    """Raised when a request payload is malformed."""
    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, severity=ErrorSeverity.LOW, **kwargs)
        self.field = field


class AuthenticationError(ShiptrackError):
    """Raised when credentials or tokens are missing or invalid."""
    http_status = 401


class ShipmentNotFoundError(ShiptrackError):
    """Raised when a shipment id or tracking id does not exist."""
    http_status = 404

    def __init__(self, message: str = "Shipment not found", **kwargs):
        super().__init__(message, severity=ErrorSeverity.LOW, **kwargs)


class InvalidTransitionError(ShiptrackError):
    """Raised when a status change is not allowed from the current status."""
    http_status = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change status from '{current}' to '{requested}'",
            context={"current": current, "requested": requested},
            severity=ErrorSeverity.LOW,
        )
        self.current = current
        self.requested = requested


class StorageError(ShiptrackError):
    """Raised when the document store fails."""
    pass
