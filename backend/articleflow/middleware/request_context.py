"""Request context middleware: request id, timing, access log and rate limiting.

Rate limits are token buckets per caller and per budget. A caller is the
verified user id of the bearer token, or the client address when there is
none. Generation (trial included), diagram rendering and publishing call paid
or rate-limited upstream services, so they draw from a separate, smaller
``costly`` budget; every other ``/api`` call draws from ``api``.
"""

import logging
import re
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.auth import token_subject
from ..core.config import settings
from ..core.logging_config import caller_var, request_id_var

logger = logging.getLogger(__name__)

Bucket = dict[str, tuple[float, float]]


def check_rate_limit(
    bucket: Bucket,
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> tuple[bool, float]:
    """Take one token for *key* from the bucket.

    Args:
        bucket: ``{key: (tokens, last_refill)}``, modified in place.
        key: Caller and budget identifier.
        max_per_minute: Sustained rate cap; ``<= 0`` disables limiting.
        now: Injectable clock, defaults to ``time.monotonic()``.

    Returns:
        ``(allowed, retry_after)`` where *retry_after* is the wait in seconds
        until the next token, or 0.0 when allowed.
    """
    if max_per_minute <= 0:
        return True, 0.0
    if now is None:
        now = time.monotonic()

    per_second = max_per_minute / 60.0
    tokens, last_refill = bucket.get(key, (float(max_per_minute), now))
    tokens = min(float(max_per_minute), tokens + (now - last_refill) * per_second)

    if tokens >= 1.0:
        bucket[key] = (tokens - 1.0, now)
        return True, 0.0

    bucket[key] = (tokens, now)
    return False, (1.0 - tokens) / per_second


class RateLimiter:
    """Thread-safe bucket store. Idle keys are dropped once the store grows."""

    def __init__(self, max_keys: int = 10_000, idle_seconds: float = 300.0):
        self.buckets: Bucket = {}
        self.max_keys = max_keys
        self.idle_seconds = idle_seconds
        self._lock = threading.Lock()

    def hit(self, key: str, max_per_minute: int, now: Optional[float] = None) -> tuple[bool, float]:
        if now is None:
            now = time.monotonic()
        with self._lock:
            if len(self.buckets) >= self.max_keys:
                self._evict_idle(now)
            return check_rate_limit(self.buckets, key, max_per_minute, now)

    def reset(self) -> None:
        with self._lock:
            self.buckets.clear()

    def _evict_idle(self, now: float) -> None:
        cutoff = now - self.idle_seconds
        for key in [k for k, (_, last) in self.buckets.items() if last < cutoff]:
            del self.buckets[key]


rate_limiter = RateLimiter()


@dataclass(frozen=True)
class RatePolicy:
    name: str
    per_minute: int


_COSTLY_PATH_RE = re.compile(
    r"^/api/(?:articles/generate"
    r"|articles/[^/]+/process-diagrams"
    r"|articles/[^/]+/publish/[^/]+"
    r"|diagrams/render"
    r"|trial/generate)$"
)


def rate_policy_for(method: str, path: str) -> Optional[RatePolicy]:
    """Budget a request draws from, None for unthrottled paths."""
    if not path.startswith("/api/"):
        return None
    if method == "POST" and _COSTLY_PATH_RE.match(path):
        return RatePolicy("costly", settings.rate_limit_costly_per_minute)
    return RatePolicy("api", settings.rate_limit_per_minute)


def caller_key(request: Request) -> str:
    """``user:<id>`` for a valid bearer token, else ``ip:<address>``."""
    user_id = token_subject(request.headers.get("authorization"))
    if user_id:
        return f"user:{user_id}"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, throttles callers, and logs the outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)
        caller = caller_key(request)
        caller_var.set(caller)

        policy = rate_policy_for(request.method, request.url.path)
        if policy is not None:
            allowed, retry_after = rate_limiter.hit(f"{policy.name}:{caller}", policy.per_minute)
            if not allowed:
                retry_after = round(retry_after, 1)
                logger.warning(
                    "Rate limit exceeded",
                    extra={"budget": policy.name, "path": request.url.path, "retry_after": retry_after},
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": "RATE_LIMITED",
                        "message": "Too many requests",
                        "details": {"budget": policy.name, "retry_after": retry_after},
                    },
                    headers={"Retry-After": str(int(retry_after) + 1), "X-Request-ID": rid},
                )

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        logger.info(
            "%s %s %s", request.method, request.url.path, response.status_code,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
