"""Optional API-key gate for ``/api/*``.

Disabled unless MATHTUTOR_API_KEY is set. The key protects the deployment
as a whole; per-user scoping still relies on the ``userId`` the client
sends. Clients that keep presenting a wrong key are throttled with 429.
"""

from __future__ import annotations

import hmac
import logging
import os
import threading
import time
from collections import defaultdict, deque

from fastapi import Request
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

_OPEN_PREFIXES = (
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    # loaded by <img> tags, which cannot send headers
    "/api/files/serve",
)

_AUTH_FAIL_MAX = 10
_AUTH_FAIL_WINDOW_SECONDS = 300


class FailureLimiter:
    """Sliding-window count of auth failures per client address."""

    def __init__(self, limit: int, window_seconds: float) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def _prune(self, hits: deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def blocked(self, client: str) -> bool:
        now = time.monotonic()
        with self._lock:
            hits = self._hits[client]
            self._prune(hits, now)
            return len(hits) >= self.limit

    def record(self, client: str) -> None:
        with self._lock:
            self._hits[client].append(time.monotonic())

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = FailureLimiter(_AUTH_FAIL_MAX, _AUTH_FAIL_WINDOW_SECONDS)


def reset_rate_limiter() -> None:
    """Forget recorded failures (tests)."""
    _limiter.clear()


def get_expected_api_key() -> str:
    """Configured key, or "" when auth is off."""
    return os.environ.get("MATHTUTOR_API_KEY", "").strip()


def should_authenticate(path: str) -> bool:
    return path.startswith("/api/") and not path.startswith(_OPEN_PREFIXES)


def _reject(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


async def maybe_require_api_key(request: Request, call_next) -> Response:
    """HTTP middleware: enforce the API key when one is configured."""
    expected = get_expected_api_key()
    if (
        not expected
        or request.method.upper() == "OPTIONS"
        or not should_authenticate(request.url.path)
    ):
        return await call_next(request)

    client = request.client.host if request.client else "unknown"
    if _limiter.blocked(client):
        logger.warning("Auth rate limit exceeded for %s", client)
        return _reject(429, "Too many authentication failures. Try again later.")

    provided = request.headers.get(API_KEY_HEADER, "")
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        _limiter.record(client)
        logger.info("Rejected %s %s: bad API key", request.method, request.url.path)
        return _reject(401, "Invalid or missing API key")
    return await call_next(request)
