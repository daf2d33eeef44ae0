"""Structured error types shared by the limiter, the API client and the tools."""

from __future__ import annotations

import math
from typing import Any, Optional

from loguru import logger


def _fmt(value: float) -> str:
    return f"{value:g}" if isinstance(value, float) else str(value)


class MCPServerError(Exception):
    """Base error carrying a machine-readable code and an HTTP-style status."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ConfigurationError(MCPServerError):
    """Invalid construction arguments. Fatal, never retried."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", 500, details)


class ValidationError(MCPServerError):
    """Tool input failed validation."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class RateLimitExceeded(MCPServerError):
    """Not enough tokens for the requested unit of work.

    Always recoverable: the caller decides whether to retry after
    ``retry_after_seconds`` or abandon the operation.
    """

    def __init__(
        self,
        available: float,
        requested: float,
        retry_after_seconds: int,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            message = (
                f"Rate limit exceeded. Available tokens: {_fmt(available)}, "
                f"required: {_fmt(requested)}. Retry after {retry_after_seconds} seconds."
            )
        super().__init__(
            message,
            "RATE_LIMIT_EXCEEDED",
            429,
            {
                "available": available,
                "requested": requested,
                "retryAfter": retry_after_seconds,
            },
        )
        self.available = available
        self.requested = requested
        self.retry_after_seconds = retry_after_seconds

    @classmethod
    def from_retry_after(cls, retry_after: float) -> "RateLimitExceeded":
        """Build from an upstream ``Retry-After`` header value (seconds)."""
        seconds = max(0, math.ceil(retry_after))
        return cls(
            available=0.0,
            requested=1.0,
            retry_after_seconds=seconds,
            message=f"EP API rate limit hit. Retry after {seconds} seconds.",
        )


class EPAPIError(MCPServerError):
    """European Parliament API failure; keeps the upstream status code."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, "EP_API_ERROR", status_code or 500, details)
        self.upstream_status = status_code


class ToolError(MCPServerError):
    """A tool handler failed while performing *operation*."""

    def __init__(
        self,
        tool_name: str,
        operation: str,
        message: str,
        is_retryable: bool = False,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(f"[{tool_name}] {operation}: {message}", "TOOL_ERROR", 500)
        self.tool_name = tool_name
        self.operation = operation
        self.is_retryable = is_retryable
        self.__cause__ = cause


def format_error(error: BaseException) -> dict[str, Any]:
    """Format an error for transmission to a client.

    Structured errors keep their code and details. Anything else is
    logged in full and replaced by a generic message so internals do not
    leak.
    """
    if isinstance(error, MCPServerError):
        payload: dict[str, Any] = {"code": error.code, "message": error.message}
        if error.details is not None:
            payload["details"] = error.details
        return payload

    logger.opt(exception=error).error(f"Internal error: {error!r}")
    return {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
