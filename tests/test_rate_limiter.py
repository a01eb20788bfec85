# tests/test_rate_limiter.py
from __future__ import annotations

import pytest

from functions.orchestrator.rate_limiter import FixedWindowRateLimiter


def test_admits_up_to_max_within_window_then_rejects() -> None:
    limiter = FixedWindowRateLimiter(max_requests=20, window_seconds=60)
    t = 1_000.0

    assert all(limiter.admit("1.2.3.4", now=t + i) for i in range(20))
    assert limiter.admit("1.2.3.4", now=t + 30) is False


def test_new_window_after_window_elapses() -> None:
    limiter = FixedWindowRateLimiter(max_requests=20, window_seconds=60)
    t = 1_000.0

    for _ in range(20):
        limiter.admit("client", now=t)
    assert limiter.admit("client", now=t + 59.999) is False

    assert limiter.admit("client", now=t + 60.001) is True


def test_window_resets_exactly_at_window_boundary() -> None:
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

    assert limiter.admit("client", now=0.0) is True
    assert limiter.admit("client", now=59.0) is False
    assert limiter.admit("client", now=60.0) is True


def test_rejections_are_not_counted() -> None:
    limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60)

    assert limiter.admit("c", now=0)
    assert limiter.admit("c", now=1)
    for i in range(10):
        assert limiter.admit("c", now=2 + i) is False

    # Fresh window starts with count=1 regardless of earlier rejections
    assert limiter.admit("c", now=60)
    assert limiter.admit("c", now=61)
    assert limiter.admit("c", now=62) is False


def test_clients_are_isolated() -> None:
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

    assert limiter.admit("a", now=0)
    assert limiter.admit("a", now=1) is False
    assert limiter.admit("b", now=1)
    assert len(limiter) == 2


def test_uses_injected_clock_when_now_omitted() -> None:
    clock = {"t": 100.0}
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=10, clock=lambda: clock["t"])

    assert limiter.admit("c")
    assert limiter.admit("c") is False
    clock["t"] = 110.0
    assert limiter.admit("c")


@pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_seconds": 0}, {"window_seconds": -1}])
def test_rejects_invalid_configuration(kwargs) -> None:
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(**kwargs)
