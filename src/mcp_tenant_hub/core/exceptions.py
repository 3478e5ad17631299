"""
Exception classes for the tenant hub.

Every error that can reach a client carries the HTTP status it maps to and a
short label used as the ``error`` field of the structured error body.
"""

from typing import Any, Dict, Optional


class MCPHubError(Exception):
    """Base exception for all tenant hub errors."""

    status_code: int = 500
    error_label: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize MCPHubError.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """String representation of the error."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error": self.error_label,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigError(MCPHubError):
    """Configuration-related errors."""


class AuthenticationError(MCPHubError):
    """Missing or malformed credentials."""

    status_code = 401
    error_label = "Unauthorized"


class AuthorizationError(MCPHubError):
    """Credentials present but not accepted."""

    status_code = 403
    error_label = "Forbidden"


class ValidationError(MCPHubError):
    """Request data is missing or invalid."""

    status_code = 400
    error_label = "Bad Request"


class NotFoundError(MCPHubError):
    """Requested record does not exist."""

    status_code = 404
    error_label = "Not Found"


class UpstreamUnavailable(MCPHubError):
    """The hub process could not be reached."""

    status_code = 503
    error_label = "Service Unavailable"


class UpstreamError(MCPHubError):
    """The hub answered with an error payload."""

    error_label = "MCP-Hub Error"

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)
        self.status_code = status_code


class PersistenceError(MCPHubError):
    """A database operation failed."""


class MaterializationError(MCPHubError):
    """The generated configuration file could not be written."""


class StartupFailure(MCPHubError):
    """The supervised hub process died during its startup grace period."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)
        self.returncode = returncode
