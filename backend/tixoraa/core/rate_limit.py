"""Rate limiting for the verification endpoints.

Two budgets apply to code redemption: one per client address (the route
dependency) and one per target account (``limit_verification_attempts``),
so rotating addresses does not buy extra guesses against a single inbox.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from threading import Lock
from typing import Deque

from fastapi import Request, Response

from tixoraa.core.config import settings
from tixoraa.core.exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    def __init__(self) -> None:
        self._store: dict[str, Deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str, *, limit: int, window_seconds: int, now: float | None = None) -> tuple[bool, int, int]:
        """Record one hit for ``key``; returns (allowed, remaining, retry_after)."""
        if limit <= 0:
            return True, limit, 0
        now = time.time() if now is None else now
        cutoff = now - window_seconds
        with self._lock:
            queue = self._store.setdefault(key, deque())
            while queue and queue[0] <= cutoff:
                queue.popleft()
            if len(queue) >= limit:
                return False, 0, max(int(queue[0] + window_seconds - now), 1)
            queue.append(now)
            return True, max(limit - len(queue), 0), 0

    def reset(self) -> None:
        with self._lock:
            self._store.clear()


_limiter = SlidingWindowLimiter()


def client_ip(request: Request) -> str:
    """Peer address, or the forwarded client when the peer is a trusted proxy.

    The forwarded chain is walked from the right and the first hop that is
    not itself a trusted proxy wins; client-supplied entries further left
    are ignored.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = settings.trusted_proxies
    if peer not in trusted:
        return peer
    forwarded = request.headers.get("x-forwarded-for", "")
    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return peer


def _scope_limit(scope: str) -> int:
    if scope == "verification":
        return settings.RATE_LIMIT_VERIFICATION_MAX_REQUESTS
    return settings.RATE_LIMIT_MAX_REQUESTS


def _enforce(key: str, limit: int, response: Response | None = None) -> None:
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    ok, remaining, retry_after = _limiter.hit(key, limit=limit, window_seconds=window)
    if response is not None:
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))
        response.headers["X-RateLimit-Window"] = str(window)
    if not ok:
        logger.warning("Rate limit hit: %s", key)
        raise RateLimitExceeded(retry_after=retry_after, limit=limit, window_seconds=window)


def rate_limit(scope: str = "default"):
    def _dependency(request: Request, response: Response) -> None:
        if settings.RATE_LIMIT_ENABLED:
            _enforce(f"{scope}:{client_ip(request)}", _scope_limit(scope), response)

    return _dependency


def limit_verification_attempts(*, email: str | None = None, user_id: int | None = None) -> None:
    """Count one redemption attempt against the targeted account."""
    if not settings.RATE_LIMIT_ENABLED:
        return
    subject = f"email:{email}" if email else f"user:{user_id}"
    _enforce(f"verify-account:{subject}", settings.RATE_LIMIT_VERIFY_ATTEMPTS_PER_ACCOUNT)
