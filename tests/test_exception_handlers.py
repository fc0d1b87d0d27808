"""Tests for global exception handlers.

Sanitizer rejections must surface as 400s with a stable error shape, and
unexpected failures must never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from request_guard.core.errors import AppError, InvalidFormatError, InvalidUrlError
from request_guard.core.exception_handlers import general_exception_handler, setup_exception_handlers
from request_guard.utils.sanitize import sanitize_identifier, sanitize_url


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/customers/{customer_id}")
    async def get_customer(customer_id: str) -> dict:
        return {"id": sanitize_identifier(customer_id)}

    @app.get("/avatar")
    async def avatar(url: str) -> dict:
        return {"url": sanitize_url(url)}

    @app.get("/broken")
    async def broken() -> dict:
        raise AppError(code="store_unavailable", message="Throttle backend unreachable")

    return app


@pytest.fixture
def handler_client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    def test_valid_identifier_passes(self, handler_client: TestClient) -> None:
        response = handler_client.get("/customers/550E8400-E29B-41D4-A716-446655440000")

        assert response.status_code == 200
        assert response.json() == {"id": "550e8400-e29b-41d4-a716-446655440000"}

    def test_invalid_identifier_returns_400(self, handler_client: TestClient) -> None:
        response = handler_client.get("/customers/not-an-id")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_format"
        assert error["message"] == "Invalid ID format"
        assert "request_id" in error

    def test_invalid_url_returns_400_with_details(self, handler_client: TestClient) -> None:
        response = handler_client.get("/avatar", params={"url": "ftp://example.com/a.png"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_url"
        assert error["details"] == {"hint": "scheme_not_allowed", "scheme": "ftp"}

    def test_non_validation_app_error_returns_500(self, handler_client: TestClient) -> None:
        response = handler_client.get("/broken")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "store_unavailable"

    def test_error_types_carry_codes(self) -> None:
        assert InvalidFormatError().code == "invalid_format"
        assert InvalidUrlError().code == "invalid_url"
        assert str(InvalidUrlError()) == "Invalid URL"


class TestGeneralExceptionHandler:
    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI) -> None:
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_hides_message(self) -> None:
        request = AsyncMock()
        request.url.path = "/login"
        request.method = "POST"

        exc = RuntimeError("lock acquisition failed in store internals")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "lock acquisition" not in data["error"]["message"]
        assert "request_id" in data["error"]
