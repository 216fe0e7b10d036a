"""
Custom exceptions for RailBar.

This module defines the exception hierarchy raised by the Railway API
transport and the polling engine.
"""

from typing import Any


class RailBarError(Exception):
    """Base exception for RailBar errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or "RAILBAR_ERROR"
        self.context = context or {}


class RailwayAPIError(RailBarError):
    """Exception for Railway API related errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, code or "RAILWAY_API_ERROR", context)


class RailwayInvalidResponseError(RailwayAPIError):
    """Response could not be read as a GraphQL envelope."""

    def __init__(
        self,
        message: str = "Invalid response from Railway API",
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "INVALID_RESPONSE", context)


class RailwayHTTPError(RailwayAPIError):
    """Non-200, non-429 HTTP status from the API."""

    def __init__(self, status_code: int, context: dict[str, Any] | None = None):
        super().__init__(
            f"Railway API returned HTTP {status_code}", "HTTP_ERROR", context
        )
        self.status_code = status_code


class RailwayGraphQLError(RailwayAPIError):
    """Well-formed response carrying API-level errors."""

    def __init__(self, messages: list[str], context: dict[str, Any] | None = None):
        super().__init__(
            f"Railway API error: {', '.join(messages)}", "GRAPHQL_ERROR", context
        )
        self.messages = messages


class RailwayNoDataError(RailwayAPIError):
    """A 200 response with neither errors nor data."""

    def __init__(self, context: dict[str, Any] | None = None):
        super().__init__("No data returned from Railway API", "NO_DATA", context)


class RailwayRateLimitError(RailwayAPIError):
    """Retry budget exhausted while the API kept answering 429."""

    def __init__(
        self,
        message: str = "Railway API rate limit exceeded. Try again shortly.",
        reset_time: float | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "RATE_LIMIT_ERROR", context)
        self.reset_time = reset_time


class RailwayConnectionError(RailwayAPIError):
    """The request never produced an HTTP response."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "CONNECTION_ERROR", context)


class ConfigurationError(RailBarError):
    """Exception for configuration related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "CONFIGURATION_ERROR", context)
