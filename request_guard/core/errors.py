"""Application-level exception types.

Sanitizer validators raise the ``SanitizationError`` family; the web layer
turns any ``ValidationAppError`` into a 400 response. A throttle denial is a
normal outcome and has no exception type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    field: str
    actual_length: int
    scheme: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class SanitizationError(ValidationAppError):
    """Raised when a sanitizer rejects untrusted input instead of cleaning it."""


class InvalidFormatError(SanitizationError):
    """Identifier is neither a canonical UUID nor all decimal digits."""

    def __init__(
        self,
        message: str = "Invalid ID format",
        details: ErrorDetails | None = None,
    ) -> None:
        super().__init__(code="invalid_format", message=message, details=details)


class InvalidUrlError(SanitizationError):
    """URL cannot be parsed as absolute, or its scheme is not http/https."""

    def __init__(
        self,
        message: str = "Invalid URL",
        details: ErrorDetails | None = None,
    ) -> None:
        super().__init__(code="invalid_url", message=message, details=details)
