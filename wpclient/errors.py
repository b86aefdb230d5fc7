"""Exception hierarchy raised by the WordPress client."""
from __future__ import annotations

from typing import Any, Optional


class WordPressError(RuntimeError):
    """Raised when the WordPress API returns an error response."""


class NotFoundError(WordPressError):
    """The requested resource does not exist."""


class ValidationError(WordPressError):
    """The server rejected the request parameters (HTTP 400)."""

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.code = code
        self.details = details


class UnauthorizedError(WordPressError):
    """Credentials were rejected or the resource is not visible to them."""


class ServerError(WordPressError):
    """Unexpected status code or payload shape."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RequestTimeoutError(WordPressError):
    """No response arrived before the transport deadline.

    Kept apart from :class:`ServerError` so callers can decide to retry the
    whole operation.
    """


class ConfigurationError(WordPressError):
    """The local site registry could not be read."""
