"""Base exceptions for community-access.

This module defines the root of the exception hierarchy. All exceptions
carry an error code, structured details and map to an HTTP status code for
callers that translate them into request-level responses.
"""

from typing import Any, Dict, Optional


class CommunityAccessError(Exception):
    """Base exception for all community-access errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception.

    Args:
        exception: The exception instance

    Returns:
        HTTP status code
    """
    from .http_mapping import get_http_status_code as get_mapped_status_code
    return get_mapped_status_code(exception)


def create_error_response(exception: CommunityAccessError) -> Dict[str, Any]:
    """Create standardized error response from exception.

    Args:
        exception: The community-access exception

    Returns:
        Error response dictionary
    """
    return {
        "error": {
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "type": exception.__class__.__name__,
        }
    }
