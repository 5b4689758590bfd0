"""Rate limiting for the JournalQ API

Fixed-window admission control per (client, endpoint class). Each class has
its own window and ceiling so cheap reads cannot starve the analysis budget
and vice versa.

- realtime_analysis: 30 per 60s, failed responses (status >= 400) refunded
- suggestions: 20 per 5 min
- context: 10 per 60s
- general: 100 per 15 min

Buckets live in a TTLCache so idle clients are evicted. Health checks bypass
admission; requests without a bearer credential are answered 401 by
BearerAuthMiddleware and never counted.
"""

from __future__ import annotations

import ipaddress
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cachetools import TTLCache
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from journalq.api.responses import error_response
from journalq.config import (
    APP_ENV,
    RATE_LIMIT_CONTEXT_MAX,
    RATE_LIMIT_CONTEXT_WINDOW,
    RATE_LIMIT_GENERAL_MAX,
    RATE_LIMIT_GENERAL_WINDOW,
    RATE_LIMIT_MAX_CLIENTS,
    RATE_LIMIT_REALTIME_MAX,
    RATE_LIMIT_REALTIME_WINDOW,
    RATE_LIMIT_SUGGESTIONS_MAX,
    RATE_LIMIT_SUGGESTIONS_WINDOW,
    TRUSTED_PROXY_HEADER,
)
from journalq.errors import RateLimited
from journalq.observability.telemetry import counter, log_event


class EndpointClass(str, Enum):
    REALTIME_ANALYSIS = "realtime_analysis"
    SUGGESTIONS = "suggestions"
    CONTEXT = "context"
    GENERAL = "general"


@dataclass(frozen=True)
class RatePolicy:
    window_seconds: float
    max_requests: int
    skip_failed_requests: bool = False


DEFAULT_POLICIES: dict[EndpointClass, RatePolicy] = {
    EndpointClass.REALTIME_ANALYSIS: RatePolicy(
        RATE_LIMIT_REALTIME_WINDOW, RATE_LIMIT_REALTIME_MAX, skip_failed_requests=True
    ),
    EndpointClass.SUGGESTIONS: RatePolicy(RATE_LIMIT_SUGGESTIONS_WINDOW, RATE_LIMIT_SUGGESTIONS_MAX),
    EndpointClass.CONTEXT: RatePolicy(RATE_LIMIT_CONTEXT_WINDOW, RATE_LIMIT_CONTEXT_MAX),
    EndpointClass.GENERAL: RatePolicy(RATE_LIMIT_GENERAL_WINDOW, RATE_LIMIT_GENERAL_MAX),
}

ENDPOINT_CLASSES: dict[str, EndpointClass] = {
    "/ai/analyze-journal": EndpointClass.REALTIME_ANALYSIS,
    "/ai/journal-prompt": EndpointClass.SUGGESTIONS,
    "/journal/context": EndpointClass.CONTEXT,
}

EXEMPT_PATHS = frozenset({"/health", "/"})


def classify_path(path: str) -> EndpointClass:
    return ENDPOINT_CLASSES.get(path.rstrip("/") or "/", EndpointClass.GENERAL)


@dataclass
class RateLimitBucket:
    window_start: float
    count: int
    window_seconds: float
    max_requests: int


@dataclass(frozen=True)
class Allowed:
    remaining: int
    window_start: float


@dataclass(frozen=True)
class Denied:
    retry_after: float
    window_start: float


class RateLimiter:
    """
    Thread-safe fixed-window counter store.

    admit() never raises: it returns Allowed or Denied. The whole
    read-reset-increment sequence for a key runs under one lock.
    """

    def __init__(
        self,
        policies: dict[EndpointClass, RatePolicy] | None = None,
        max_clients: int = RATE_LIMIT_MAX_CLIENTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policies = dict(policies or DEFAULT_POLICIES)
        self._clock = clock
        self._lock = threading.Lock()
        # An idle bucket is useless after its window; the longest window bounds expiry
        ttl = max(p.window_seconds for p in self.policies.values())
        self._buckets: TTLCache[tuple[str, EndpointClass], RateLimitBucket] = TTLCache(
            maxsize=max_clients * len(self.policies), ttl=ttl, timer=clock
        )

    def policy(self, endpoint_class: EndpointClass) -> RatePolicy:
        return self.policies[endpoint_class]

    def admit(self, client_id: str, endpoint_class: EndpointClass) -> Allowed | Denied:
        policy = self.policies[endpoint_class]
        key = (client_id, endpoint_class)

        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)
            if bucket is None or now >= bucket.window_start + bucket.window_seconds:
                bucket = RateLimitBucket(
                    window_start=now,
                    count=0,
                    window_seconds=policy.window_seconds,
                    max_requests=policy.max_requests,
                )
                self._buckets[key] = bucket

            bucket.count += 1

            if bucket.count > bucket.max_requests:
                retry_after = bucket.window_start + bucket.window_seconds - now
                return Denied(retry_after=max(retry_after, 0.0), window_start=bucket.window_start)

            return Allowed(
                remaining=bucket.max_requests - bucket.count, window_start=bucket.window_start
            )

    def refund(self, client_id: str, endpoint_class: EndpointClass, window_start: float) -> None:
        """Give back one slot, but only within the window it was taken from."""
        with self._lock:
            bucket = self._buckets.get((client_id, endpoint_class))
            if bucket is not None and bucket.window_start == window_start and bucket.count > 0:
                bucket.count -= 1

    def count(self, client_id: str, endpoint_class: EndpointClass) -> int:
        with self._lock:
            bucket = self._buckets.get((client_id, endpoint_class))
            return bucket.count if bucket is not None else 0

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def _is_valid_ip(ip_str: str) -> bool:
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """Extract client IP with spoofing protection.

    X-Forwarded-For is trusted only behind the configured proxy (which sets
    TRUSTED_PROXY_HEADER) or in development. Malformed addresses fall back to
    the socket IP.
    """
    trust_forwarded = TRUSTED_PROXY_HEADER in request.headers or APP_ENV == "development"

    if trust_forwarded:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
            if _is_valid_ip(ip):
                return ip

    if APP_ENV == "development":
        real_ip = request.headers.get("X-Real-IP")
        if real_ip and _is_valid_ip(real_ip):
            return real_ip

    return request.client.host if request.client else "unknown"


def _has_bearer(request: Request) -> bool:
    parts = request.headers.get("Authorization", "").split()
    return len(parts) == 2 and parts[0].lower() == "bearer"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Maps each request to its endpoint class and applies the limiter."""

    def __init__(self, app: Any, limiter: RateLimiter | None = None) -> None:
        super().__init__(app)
        self.limiter = limiter or RateLimiter()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        # No credential: the route's auth dependency answers 401 uncounted
        if not _has_bearer(request):
            return await call_next(request)

        endpoint_class = classify_path(path)
        policy = self.limiter.policy(endpoint_class)
        client_ip = get_client_ip(request)

        outcome = self.limiter.admit(client_ip, endpoint_class)

        if isinstance(outcome, Denied):
            if policy.skip_failed_requests:
                # The 429 is itself a failed response
                self.limiter.refund(client_ip, endpoint_class, outcome.window_start)
            counter(f"api.rate_limit.denied.{endpoint_class.value}")
            log_event(
                "api.rate_limit.exceeded",
                ip=client_ip,
                endpoint_class=endpoint_class.value,
                retry_after=round(outcome.retry_after, 3),
            )
            return error_response(
                RateLimited("Too many requests, please try again later.", outcome.retry_after)
            )

        try:
            response = await call_next(request)
        except Exception:
            if policy.skip_failed_requests:
                self.limiter.refund(client_ip, endpoint_class, outcome.window_start)
            raise

        if policy.skip_failed_requests and response.status_code >= 400:
            self.limiter.refund(client_ip, endpoint_class, outcome.window_start)
            response.headers["X-RateLimit-Remaining"] = str(outcome.remaining + 1)
        else:
            response.headers["X-RateLimit-Remaining"] = str(outcome.remaining)
        response.headers["X-RateLimit-Limit"] = str(policy.max_requests)

        return response
