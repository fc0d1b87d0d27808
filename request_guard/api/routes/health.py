from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from request_guard.adapters.throttle.base import AbstractThrottleStore
from request_guard.core.throttle import get_throttle_store

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(store: AbstractThrottleStore = Depends(get_throttle_store)) -> JSONResponse:
    """Health check endpoint.

    Reports whether the throttle store's sweeper is running. The endpoint
    itself is never throttled so load balancers can poll it freely.

    Returns:
        200 with ``status: ok`` when healthy, 503 with ``status: degraded``
        when the sweeper has stopped.
    """

    running = getattr(store, "running", True)
    body = {
        "status": "ok" if running else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {"throttle_store": "ok" if running else "sweeper_stopped"},
        "tracked_identifiers": len(store),
    }
    return JSONResponse(status_code=200 if running else 503, content=body)
