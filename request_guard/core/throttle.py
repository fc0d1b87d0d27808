"""Throttling dependency for FastAPI routes.

This module wires the throttle store into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on ``throttle(scope)`` only.
- No module-level singleton: the store lives on ``app.state`` and is created
  and shut down by the application lifespan.
- The store only decides; this layer owns the 429 response.

Identifier strategy: the client address resolved from proxy headers, falling
back to the socket peer, then ``"unknown"``. Keys are namespaced by scope so
``login`` and ``customers.create`` budgets are independent.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol

from fastapi import HTTPException, Request, status

from request_guard.adapters.throttle.base import (
    UNKNOWN_IDENTIFIER,
    AbstractThrottleStore,
    ThrottleConfig,
    ThrottleDecision,
)
from request_guard.core.config import settings
from request_guard.core.logging import hash_for_log, log_security_event

logger = logging.getLogger(__name__)


class HeaderLookup(Protocol):
    def get(self, name: str) -> str | None: ...


def _first_hop(value: str) -> str:
    return value.split(",")[0].strip()


def get_client_ip(headers: HeaderLookup) -> str:
    """Resolve the client address from proxy headers.

    Tried in fixed priority order: first entry of ``x-forwarded-for``,
    ``x-real-ip``, first entry of ``x-vercel-forwarded-for``. Header names are
    passed lowercase; Starlette's ``Headers`` matches them case-insensitively.

    Args:
        headers: Any mapping-like object with ``get(name)``.

    Returns:
        Client address, or ``"unknown"`` when no header carries one.
    """

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for and _first_hop(forwarded_for):
        return _first_hop(forwarded_for)

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    vercel_ip = headers.get("x-vercel-forwarded-for")
    if vercel_ip and _first_hop(vercel_ip):
        return _first_hop(vercel_ip)

    return UNKNOWN_IDENTIFIER


def resolve_identifier(request: Request) -> str:
    """Client identifier for a request: proxy headers, then socket peer."""

    identifier = get_client_ip(request.headers)
    if identifier == UNKNOWN_IDENTIFIER and request.client and request.client.host:
        return request.client.host
    return identifier


def get_throttle_store(request: Request) -> AbstractThrottleStore:
    """Return the store the application lifespan attached to ``app.state``.

    Raises:
        RuntimeError: If the app was built without a throttle store.
    """

    store = getattr(request.app.state, "throttle_store", None)
    if store is None:
        raise RuntimeError("throttle store is not initialized; build the app with create_app()")
    return store


def _rate_limit_headers(decision: ThrottleDecision) -> dict[str, str]:
    return {
        "Retry-After": str(decision.retry_after_seconds or 0),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_at)),
    }


def throttle(
    scope: str,
    *,
    window_millis: int | None = None,
    max_requests: int | None = None,
) -> Callable[[Request], Awaitable[ThrottleDecision | None]]:
    """Build a FastAPI dependency enforcing a per-client budget for ``scope``.

    Omitted limits fall back to ``THROTTLE_WINDOW_MILLIS`` and
    ``THROTTLE_MAX_REQUESTS``, read when each request is checked.

    Usage:
        @router.post("/login", dependencies=[Depends(throttle("login"))])
        async def login(): ...

    Args:
        scope: Namespace for the throttle key, usually the action name.
        window_millis: Window length override for this scope.
        max_requests: Budget override for this scope.

    Returns:
        Async dependency returning the decision (``None`` when disabled) and
        raising HTTP 429 on denial.
    """

    if not scope:
        raise ValueError("scope must be a non-empty string")

    async def enforce_throttle(request: Request) -> ThrottleDecision | None:
        throttle_settings = settings.throttle
        if not throttle_settings.enabled:
            return None

        config = ThrottleConfig(
            window_millis=window_millis or throttle_settings.window_millis,
            max_requests=max_requests or throttle_settings.max_requests,
        )
        identifier = resolve_identifier(request)
        key = f"{scope}:{identifier}"

        decision = get_throttle_store(request).check(key, config)
        if decision.admitted:
            logger.info(
                "throttle.admitted",
                extra={
                    "scope": scope,
                    "key_hash": hash_for_log(key),
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "window_ms": config.window_millis,
                },
            )
            return decision

        log_security_event(
            "throttle.denied",
            "medium",
            scope=scope,
            key_hash=hash_for_log(key),
            limit=decision.limit,
            window_ms=config.window_millis,
            retry_after_s=decision.retry_after_seconds,
            path=request.url.path,
        )

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Try again later.",
            headers=_rate_limit_headers(decision) if throttle_settings.include_headers else None,
        )

    return enforce_throttle
