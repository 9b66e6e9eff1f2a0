"""
Origin allow-list middleware.

Browser requests whose `Origin` header is not allow-listed are rejected
before they reach any handler. Requests without an `Origin` header
(curl, server-to-server, same-origin navigation) pass through.
"""

from typing import Callable, Iterable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from utils.logger import get_logfire

logger = get_logfire(__name__)


class OriginAllowListMiddleware(BaseHTTPMiddleware):
    """Reject cross-origin requests from origins outside `allowed_origins`."""

    def __init__(self, app: FastAPI, allowed_origins: Iterable[str]):
        super().__init__(app)
        self.allowed_origins = {origin.rstrip("/") for origin in allowed_origins}

    def is_allowed(self, origin: str) -> bool:
        return "*" in self.allowed_origins or origin.rstrip("/") in self.allowed_origins

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        origin = request.headers.get("origin")

        if origin and not self.is_allowed(origin):
            logger.warning(f"Rejected request from disallowed origin {origin} to {request.url.path}")
            return JSONResponse(
                status_code=403,
                content={"error": "Origin not allowed", "details": origin},
            )

        return await call_next(request)
