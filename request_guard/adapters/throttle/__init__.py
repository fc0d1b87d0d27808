"""Throttle store adapters.

A small abstraction layer so the service can start with an in-memory store
and later move to a shared backend without changing the API layer.
"""

from __future__ import annotations

from request_guard.adapters.throttle.base import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_WINDOW_MILLIS,
    UNKNOWN_IDENTIFIER,
    AbstractThrottleStore,
    ThrottleConfig,
    ThrottleDecision,
    ThrottleEntry,
)
from request_guard.adapters.throttle.in_memory import InMemoryThrottleStore

__all__ = [
    "DEFAULT_MAX_REQUESTS",
    "DEFAULT_WINDOW_MILLIS",
    "UNKNOWN_IDENTIFIER",
    "AbstractThrottleStore",
    "InMemoryThrottleStore",
    "ThrottleConfig",
    "ThrottleDecision",
    "ThrottleEntry",
]
