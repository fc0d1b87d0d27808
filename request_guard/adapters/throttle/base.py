"""Throttle store interfaces.

The web layer depends on this abstraction rather than the in-memory store so
a shared backend (e.g. Redis) can replace it without touching route code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

DEFAULT_WINDOW_MILLIS = 60_000
DEFAULT_MAX_REQUESTS = 5

UNKNOWN_IDENTIFIER = "unknown"


@dataclass(frozen=True)
class ThrottleConfig:
    """Window length and admission budget for one throttled scope.

    Attributes:
        window_millis: Fixed window length in milliseconds.
        max_requests: Requests admitted per identifier per window.
    """

    window_millis: int = DEFAULT_WINDOW_MILLIS
    max_requests: int = DEFAULT_MAX_REQUESTS

    def __post_init__(self) -> None:
        if self.window_millis < 1:
            raise ValueError("window_millis must be >= 1")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")

    @property
    def window_seconds(self) -> float:
        return self.window_millis / 1000


@dataclass
class ThrottleEntry:
    """Request count for one identifier in its current window."""

    identifier: str
    count: int
    reset_at: float


@dataclass(frozen=True)
class ThrottleDecision:
    """Admission decision returned by a throttle check.

    Attributes:
        admitted: Whether the request may proceed.
        limit: Max requests per window that applied to this check.
        remaining: Requests still admissible in the current window.
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait in whole seconds when denied.
    """

    admitted: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None = None


class AbstractThrottleStore(ABC):
    """Interface for throttle stores."""

    @abstractmethod
    def check(self, identifier: str, config: ThrottleConfig | None = None) -> ThrottleDecision:
        """Count a request for ``identifier`` and decide whether to admit it.

        Never raises for a denial; denial is reported via ``admitted=False``.
        """
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        """Number of identifiers currently tracked."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Remove stale entries and return how many were evicted."""
        raise NotImplementedError

    def start(self) -> None:
        """Start any background maintenance. No-op by default."""

    def shutdown(self) -> None:
        """Stop background maintenance. No-op by default."""
