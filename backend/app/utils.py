from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from uuid import uuid4

import structlog
from fastapi import Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .logging_config import get_logger
from .settings import settings

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


def add_cors(app):
    origins = settings.allow_origins
    if not origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


def add_request_id_tracing(app):
    """Bind a request id to every log line emitted while serving the request."""

    @app.middleware("http")
    async def _request_id(request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


@dataclass(frozen=True, slots=True)
class Admission:
    allowed: bool
    remaining: int
    retry_after: int = 0


class SlidingWindowLimiter:
    """At most ``limit`` hits per ``window`` seconds for each caller key."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def admit(self, key: str, limit: int, window: float) -> Admission:
        now = self._clock()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - window:
                hits.popleft()
            if len(hits) >= limit:
                wait = max(1, math.ceil(window - (now - hits[0])))
                return Admission(allowed=False, remaining=0, retry_after=wait)
            hits.append(now)
            return Admission(allowed=True, remaining=limit - len(hits))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def client_key(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


def add_rate_limiting(app):
    limiter = SlidingWindowLimiter()
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def _rate_limit(request: Request, call_next):  # type: ignore[override]
        limit = settings.RATE_LIMIT_REQUESTS
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        if not settings.RATE_LIMIT_ENABLED or limit <= 0 or window <= 0:
            return await call_next(request)

        key = client_key(request)
        admission = limiter.admit(key, limit, window)
        if not admission.allowed:
            logger.warning("rate_limited", client=key, retry_after=admission.retry_after)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests"},
                headers={"Retry-After": str(admission.retry_after), "X-RateLimit-Remaining": "0"},
            )
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(admission.remaining)
        return response
