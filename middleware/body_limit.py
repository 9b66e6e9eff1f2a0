"""
Request body size guard.

Bodies larger than `max_body_bytes` are rejected with 413 before any handler
parses them. The declared Content-Length is checked first; bodies sent without
one (chunked uploads) are read and measured.
"""

from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from utils.logger import get_logfire

logger = get_logfire(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies above `max_body_bytes`."""

    def __init__(self, app: FastAPI, max_body_bytes: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    def _too_large(self, request: Request, size: int) -> JSONResponse:
        logger.warning(f"Rejected {size} byte body to {request.url.path} (limit {self.max_body_bytes})")
        return JSONResponse(
            status_code=413,
            content={
                "error": "Request body too large",
                "details": f"Maximum request body size is {self.max_body_bytes} bytes.",
            },
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in BODY_METHODS:
            return await call_next(request)

        content_length = request.headers.get("content-length")

        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={"error": "Invalid request body", "details": "Malformed Content-Length header"},
                )

            if declared > self.max_body_bytes:
                return self._too_large(request, declared)
        else:
            body = await request.body()
            if len(body) > self.max_body_bytes:
                return self._too_large(request, len(body))

        return await call_next(request)
