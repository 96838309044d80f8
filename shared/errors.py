"""
Shared error handling for the access token login service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field
from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


def current_trace_id() -> Optional[str]:
    """Return the trace ID of the current span, if one is recording."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            return f"{span_context.trace_id:032x}"
    return None


class OAuthLayerException(Exception):
    """Base exception for the login layer."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, public_message: Optional[str] = None) -> ErrorResponse:
        """Convert to error response.

        When ``public_message`` is given the message is replaced and details
        are dropped, so provider responses never reach the client.
        """
        if public_message is not None:
            return ErrorResponse(
                trace_id=current_trace_id(),
                code=self.code,
                message=public_message
            )
        return ErrorResponse(
            trace_id=current_trace_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(OAuthLayerException):
    """Malformed login request. Raised before any network call."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class IntrospectionError(OAuthLayerException):
    """Token introspection failed. Advisory only, never aborts a login."""

    status_code = 502

    def __init__(
        self,
        service: str,
        message: str = "Token introspection failed",
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        error: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"service": service}
        if status_code is not None:
            details["status_code"] = status_code
        if body is not None:
            details["body"] = body
        if error is not None:
            details["error"] = error
        super().__init__(
            "INTROSPECTION_ERROR",
            f"Failed to fetch tokeninfo from custom OAuth {service}. {message}",
            details
        )


class IdentityFetchError(OAuthLayerException):
    """Identity endpoint call failed; there is no user to log in."""

    status_code = 401

    def __init__(
        self,
        service: str,
        message: str = "Identity fetch failed",
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        error: Optional[str] = None,
    ):
        self.response_status = status_code
        self.response_body = body
        details: Dict[str, Any] = {"service": service}
        if status_code is not None:
            details["status_code"] = status_code
        if body is not None:
            details["body"] = body
        if error is not None:
            details["error"] = error
        super().__init__(
            "IDENTITY_FETCH_ERROR",
            f"Failed to fetch identity from custom OAuth {service}. {message}",
            details
        )


class ConfigurationError(OAuthLayerException):
    """Service configuration is missing or cannot produce a valid record."""

    status_code = 500

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ServiceNotConfiguredError(ConfigurationError):
    """A handler exists for the service but no configuration was stored."""

    def __init__(self, service: str):
        super().__init__(f"Service not configured: {service}", {"service": service})
        self.code = "SERVICE_NOT_CONFIGURED"


class UnexpectedServiceError(OAuthLayerException):
    """Neither a handler nor a configuration exists for the service."""

    status_code = 400

    def __init__(self, service: str):
        super().__init__(
            "UNEXPECTED_SERVICE",
            f"Unexpected AccessToken service {service}",
            {"service": service}
        )


class LoginCancelledError(Exception):
    """Structured, client-reportable reason a login did not proceed.

    Returned inside a login result rather than raised.
    """

    numeric_error = 0x8acdc2f

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        self.error = self.numeric_error
        self.reason = reason
        self.details = details or {}
        super().__init__(reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error,
            "reason": self.reason,
            "details": self.details,
        }
