"""
Error taxonomy and JSON error bodies.

Every failure the API reports is one of the ``AppError`` subclasses below.
The exception handlers in ``exception_handlers`` turn them into a response
of the shape::

    {"error": "<message>", "type": "<error type>", "details": <optional>}
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class ConfigurationError(AppError):
    status_code = 500
    default_message = "Tracking not configured"


class UpstreamError(AppError):
    status_code = 500
    default_message = "Upstream request failed"


def error_type_for_status(status_code: int) -> str:
    """Map an HTTP status to the error type reported in the body."""
    if status_code == 401:
        return "authentication_error"
    elif status_code == 403:
        return "permission_denied_error"
    elif status_code == 404:
        return "not_found_error"
    elif 400 <= status_code < 500:
        return "invalid_request_error"
    return "api_error"


def create_api_error(
    message: str,
    status_code: int,
    details: Any = None,
    error_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the JSON error body.

    Args:
        message: human readable message
        status_code: HTTP status the body is sent with
        details: optional field errors or upstream body
        error_type: overrides the type inferred from the status

    Returns:
        error body dict
    """
    body: Dict[str, Any] = {
        "error": message,
        "type": error_type or error_type_for_status(status_code),
    }
    if details is not None:
        body["details"] = details
    return body


def error_type_for(exc: AppError) -> str:
    if isinstance(exc, ConfigurationError):
        return "configuration_error"
    if isinstance(exc, UpstreamError):
        return "upstream_error"
    if isinstance(exc, ValidationFailed):
        return "validation_error"
    return error_type_for_status(exc.status_code)
