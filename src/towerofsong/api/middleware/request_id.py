"""Per-request log context and access logging."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request id to every log line emitted while handling a request.

    The id is taken from ``X-Request-ID`` when the client sends one and is
    echoed back. One access line is logged per request; only the path is
    logged, never the query string, because stream URLs carry the session
    token as ``?token=``.

    Attributes:
        slow_request_threshold: Seconds after which a non-stream request is
            logged as slow.
    """

    def __init__(self, app, slow_request_threshold: float = 1.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        with logger.contextualize(request_id=request_id):
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            line = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms} ms)"
            if response.status_code >= 500:
                logger.error(line)
            elif (
                duration_ms / 1000 > self.slow_request_threshold
                and not request.url.path.endswith("/stream")
            ):
                logger.warning(f"Slow request: {line}")
            else:
                logger.debug(line)

            response.headers["X-Request-ID"] = request_id
            return response
