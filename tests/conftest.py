"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``settings`` so every
test starts from the documented throttle defaults.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("THROTTLE_ENABLED", "true")
os.environ.setdefault("THROTTLE_WINDOW_MILLIS", "60000")
os.environ.setdefault("THROTTLE_MAX_REQUESTS", "5")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Generator

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from request_guard.adapters.throttle.base import ThrottleDecision
from request_guard.adapters.throttle.in_memory import InMemoryThrottleStore
from request_guard.core.app_factory import create_app
from request_guard.core.throttle import throttle


class FakeClock:
    """Deterministic clock used to test window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryThrottleStore:
    return InMemoryThrottleStore(clock=clock)


@pytest.fixture
def guarded_app(store: InMemoryThrottleStore) -> FastAPI:
    """App with the real lifespan plus two throttled routes."""
    app = create_app(throttle_store=store)

    @app.post("/login")
    async def login(decision: ThrottleDecision | None = Depends(throttle("login"))) -> dict:
        return {"remaining": decision.remaining if decision else None}

    @app.post(
        "/customers",
        dependencies=[Depends(throttle("customers.create", max_requests=2, window_millis=10_000))],
    )
    async def create_customer() -> dict:
        return {"status": "created"}

    return app


@pytest.fixture
def client(guarded_app: FastAPI) -> Generator[TestClient, None, None]:
    # Entering the context runs the lifespan (store start/shutdown)
    with TestClient(guarded_app) as test_client:
        yield test_client
