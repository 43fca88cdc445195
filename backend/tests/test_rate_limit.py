from __future__ import annotations

from fastapi import Request

from tixoraa.core.config import settings
from tixoraa.core.rate_limit import SlidingWindowLimiter, client_ip


def test_limiter_blocks_after_limit_and_recovers() -> None:
    limiter = SlidingWindowLimiter()

    assert limiter.hit("verification:1.2.3.4", limit=2, window_seconds=60, now=1000.0) == (True, 1, 0)
    assert limiter.hit("verification:1.2.3.4", limit=2, window_seconds=60, now=1001.0) == (True, 0, 0)
    assert limiter.hit("verification:1.2.3.4", limit=2, window_seconds=60, now=1002.0) == (False, 0, 58)
    assert limiter.hit("verification:1.2.3.4", limit=2, window_seconds=60, now=1061.0)[0] is True


def test_limiter_keys_are_independent() -> None:
    limiter = SlidingWindowLimiter()

    assert limiter.hit("a", limit=1, window_seconds=60, now=0.0)[0] is True
    assert limiter.hit("b", limit=1, window_seconds=60, now=0.0)[0] is True
    assert limiter.hit("a", limit=1, window_seconds=60, now=1.0)[0] is False


def test_zero_limit_disables_limiting() -> None:
    limiter = SlidingWindowLimiter()

    for _ in range(5):
        assert limiter.hit("x", limit=0, window_seconds=60)[0] is True


def _request(peer: str, forwarded: str | None = None) -> Request:
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "client": (peer, 40000), "headers": headers})


def test_client_ip_ignores_forwarded_for_from_untrusted_peer(monkeypatch) -> None:
    monkeypatch.setattr(settings, "RATE_LIMIT_TRUSTED_PROXIES", "")

    assert client_ip(_request("198.51.100.4", "10.0.0.9")) == "198.51.100.4"


def test_client_ip_uses_nearest_untrusted_hop_behind_proxy(monkeypatch) -> None:
    monkeypatch.setattr(settings, "RATE_LIMIT_TRUSTED_PROXIES", "10.0.0.1, 10.0.0.2")

    assert client_ip(_request("10.0.0.1", "6.6.6.6, 203.0.113.7, 10.0.0.2")) == "203.0.113.7"
    assert client_ip(_request("10.0.0.1")) == "10.0.0.1"
