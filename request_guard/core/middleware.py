"""HTTP middleware for request correlation and access logging.

Every response carries the request id (accepted from the client when it looks
like a plain token, generated otherwise) and the handling duration. One
``http.request`` log line is written per request.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request, Response

from request_guard.core.config import settings
from request_guard.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

# Client-supplied ids end up in every log line; accept only plain tokens.
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def _resolve_request_id(incoming: str | None) -> str:
    if incoming and _REQUEST_ID_PATTERN.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id and duration to each request/response pair.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        The downstream response with request id and duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = _resolve_request_id(request.headers.get(header_name))
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
