"""Error definitions for the connector.

Connector-level failures carry a stable error code. Errors raised by the
Firestore client itself are not wrapped here: they reach the caller as the
client raised them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for connector failures."""

    # Connection errors
    CONNECTION_FAILED = "CONNECTION_FAILED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"

    # Document errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"

    # Configuration errors
    INVALID_CONFIG = "INVALID_CONFIG"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"


class AdapterError(Exception):
    """Base exception for all connector errors.

    Attributes:
        code: Standardized error code.
        message: Human-readable error message.
        details: Additional error details.
        retryable: Whether the operation can be retried.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        """Initialize the connector error."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a serializable dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details if self.details else None,
                "retryable": self.retryable,
            }
        }


class ConnectionFailedError(AdapterError):
    """Failed to establish or use the connection to Firestore."""

    def __init__(
        self,
        message: str = "Failed to connect to Firestore",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize connection failed error."""
        super().__init__(
            code=ErrorCode.CONNECTION_FAILED,
            message=message,
            details=details,
            retryable=True,
        )


class AuthenticationFailedError(AdapterError):
    """Service account credentials were rejected or malformed."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize authentication failed error."""
        super().__init__(
            code=ErrorCode.AUTHENTICATION_FAILED,
            message=message,
            details=details,
            retryable=False,
        )


class DocumentNotFoundError(AdapterError):
    """A point operation targeted a document that does not exist."""

    def __init__(
        self,
        collection: str,
        document_id: str,
        message: str = "Document not found",
    ) -> None:
        """Initialize document not found error."""
        super().__init__(
            code=ErrorCode.DOCUMENT_NOT_FOUND,
            message=message,
            details={"collection": collection, "document_id": document_id},
            retryable=False,
        )
        self.collection = collection
        self.document_id = document_id


class InvalidConfigError(AdapterError):
    """Configuration is invalid."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        field: str | None = None,
    ) -> None:
        """Initialize invalid config error."""
        super().__init__(
            code=ErrorCode.INVALID_CONFIG,
            message=message,
            details={"field": field} if field else None,
            retryable=False,
        )


class MissingRequiredFieldError(AdapterError):
    """Required configuration field is missing."""

    def __init__(
        self,
        field: str,
        message: str | None = None,
    ) -> None:
        """Initialize missing required field error."""
        super().__init__(
            code=ErrorCode.MISSING_REQUIRED_FIELD,
            message=message or f"Missing required field: {field}",
            details={"field": field},
            retryable=False,
        )
