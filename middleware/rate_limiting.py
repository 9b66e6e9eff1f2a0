"""
Per-client rate limiting middleware using the token bucket algorithm.

Every endpoint shares one ceiling per client IP: `max_requests` per
`window_seconds`, with the bucket refilling continuously over the window.
"""

import time

from typing import Callable, Dict, Optional
from threading import Lock
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from utils.logger import get_logfire

logger = get_logfire(__name__)


class TokenBucket:
    """
    Token bucket holding up to `capacity` tokens, refilled at `refill_rate`
    tokens per second. Each request consumes one token.
    """

    def __init__(self, capacity: int, refill_rate: float):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self.last_refill = time.monotonic()
        self.lock = Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill

        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, tokens: int = 1) -> bool:
        """
        Attempt to consume tokens from the bucket.

        Args:
            tokens: Number of tokens to consume (default: 1)

        Returns:
            True if tokens were successfully consumed, False otherwise
        """
        with self.lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False

    def get_available_tokens(self) -> float:
        with self.lock:
            self._refill()
            return self.tokens

    def seconds_until_available(self, tokens: int = 1) -> float:
        """Time until `tokens` tokens will be available."""
        with self.lock:
            self._refill()
            missing = max(0.0, tokens - self.tokens)
            return missing / self.refill_rate


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Tracks requests per client IP address and rejects requests over the
    ceiling with 429 and the standard error body.
    """

    def __init__(
        self,
        app: FastAPI,
        max_requests: int = 100,
        window_seconds: int = 15 * 60,
        cleanup_interval: int = 3600,
        exclude_paths: Optional[list] = None,
    ):
        """
        Args:
            app: FastAPI application instance
            max_requests: Requests allowed per client per window (default: 100)
            window_seconds: Length of the window in seconds (default: 15 minutes)
            cleanup_interval: Interval in seconds to clean up idle buckets (default: 3600)
            exclude_paths: List of paths to exclude from rate limiting (default: None)
        """
        super().__init__(app)

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.refill_rate = max_requests / float(window_seconds)
        self.cleanup_interval = cleanup_interval
        self.exclude_paths = set(exclude_paths) if exclude_paths else set()

        self.buckets: Dict[str, TokenBucket] = {}
        self.bucket_lock = Lock()
        self.last_cleanup = time.monotonic()

        logger.info(
            f"Rate limiter initialized: {max_requests} requests per {window_seconds}s, "
            f"refill rate: {self.refill_rate:.3f} tokens/sec"
        )

    def _get_client_identifier(self, request: Request) -> str:
        """
        Uses the connection's client address. Forwarded headers are only honoured
        once ProxyHeadersMiddleware has rewritten `request.client` for a trusted proxy.
        """
        return request.client.host if request.client else "unknown"

    def _get_or_create_bucket(self, client_id: str) -> TokenBucket:
        with self.bucket_lock:
            if client_id not in self.buckets:
                self.buckets[client_id] = TokenBucket(
                    capacity=self.max_requests, refill_rate=self.refill_rate
                )
                logger.debug(f"Created new token bucket for client: {client_id}")

            return self.buckets[client_id]

    def _cleanup_old_buckets(self) -> None:
        """
        Remove full buckets that have been idle for longer than
        `cleanup_interval` so the bucket map does not grow without bound.
        """
        now = time.monotonic()

        if now - self.last_cleanup < self.cleanup_interval:
            return

        with self.bucket_lock:
            to_remove = [
                client_id
                for client_id, bucket in self.buckets.items()
                if (now - bucket.last_refill) > self.cleanup_interval
                and bucket.get_available_tokens() >= bucket.capacity
            ]

            for client_id in to_remove:
                del self.buckets[client_id]

            if to_remove:
                logger.info(f"Cleaned up {len(to_remove)} inactive token buckets")

            self.last_cleanup = now

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        self._cleanup_old_buckets()

        client_id = self._get_client_identifier(request)
        bucket = self._get_or_create_bucket(client_id)

        if bucket.consume():
            response = await call_next(request)
            response.headers["X-RateLimit-Limit"] = str(self.max_requests)
            response.headers["X-RateLimit-Remaining"] = str(
                int(bucket.get_available_tokens())
            )

            return response

        logger.warning(f"Rate limit exceeded for {client_id} on {request.url.path}")

        retry_after = int(bucket.seconds_until_available()) + 1

        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many requests from this IP, please try again later.",
                "details": f"Maximum {self.max_requests} requests per {self.window_seconds} seconds allowed.",
                "retry_after": retry_after,
            },
            headers={
                "X-RateLimit-Limit": str(self.max_requests),
                "X-RateLimit-Remaining": "0",
                "Retry-After": str(retry_after),
            },
        )
