"""Per-client request throttling with in-memory token buckets.

Every request spends one token from the client's general budget
(``settings.rate_limit_rpm`` per minute). Login and password change also
spend from a smaller credentials budget (``settings.auth_rate_limit_rpm``)
so password guessing stays slow. State lives in process memory, which is
enough for a single-worker deployment.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

CREDENTIAL_ENDPOINTS = frozenset({
    ("POST", "/api/v1/auth/login"),
    ("PUT", "/api/v1/auth/password"),
})

UNTHROTTLED_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})

RETRY_AFTER_SECONDS = 60


@dataclass
class TokenBucket:
    """Refills ``rate`` tokens per second up to ``capacity``."""

    rate: float
    capacity: int
    tokens: float = field(init=False)
    updated: float = field(init=False, default_factory=time.monotonic)

    def __post_init__(self) -> None:
        self.tokens = float(self.capacity)

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(float(self.capacity), self.tokens + (now - self.updated) * self.rate)
        self.updated = now

    def consume(self) -> bool:
        """Take one token if available."""
        self._refill()
        if self.tokens < 1.0:
            return False
        self.tokens -= 1.0
        return True


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests over budget with 429 and a Retry-After header."""

    def __init__(self, app, global_rpm: int = 120, auth_rpm: int = 10) -> None:
        super().__init__(app)
        self.budgets = {"global": global_rpm, "credentials": auth_rpm}
        self._buckets: dict[tuple[str, str], TokenBucket] = {}

    def _bucket(self, budget: str, client: str) -> TokenBucket:
        key = (budget, client)
        bucket = self._buckets.get(key)
        if bucket is None:
            rpm = self.budgets[budget]
            bucket = self._buckets[key] = TokenBucket(rate=rpm / 60.0, capacity=rpm)
        return bucket

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in UNTHROTTLED_PATHS:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"

        if not self._bucket("global", client).consume():
            logger.warning("Request budget exhausted for %s (%s %s)", client, request.method, path)
            return _too_many("Rate limit exceeded. Please retry later.")

        if (request.method, path) in CREDENTIAL_ENDPOINTS and not self._bucket("credentials", client).consume():
            logger.warning("Credential budget exhausted for %s (%s %s)", client, request.method, path)
            return _too_many("Too many attempts. Please retry later.")

        return await call_next(request)


def _too_many(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"error": message},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
