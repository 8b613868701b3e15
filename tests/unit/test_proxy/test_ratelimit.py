"""Tests for the fixed-window rate limiter."""

from __future__ import annotations

import pytest

from adroast.proxy.ratelimit import FixedWindowRateLimiter


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFixedWindowRateLimiter:

    def test_allows_up_to_budget(self) -> None:
        limiter = FixedWindowRateLimiter(max_calls=3, window=60, clock=_Clock())
        decisions = [limiter.check("1.2.3.4") for _ in range(4)]
        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]
        assert decisions[-1].retry_after == 60

    def test_keys_are_independent(self) -> None:
        limiter = FixedWindowRateLimiter(max_calls=1, window=60, clock=_Clock())
        assert limiter.check("a").allowed
        assert limiter.check("b").allowed
        assert not limiter.check("a").allowed
        assert len(limiter) == 2

    def test_window_resets(self) -> None:
        clock = _Clock()
        limiter = FixedWindowRateLimiter(max_calls=1, window=60, clock=clock)
        limiter.check("a")
        clock.now += 30
        blocked = limiter.check("a")
        assert not blocked.allowed
        assert blocked.retry_after == 30
        clock.now += 31
        assert limiter.check("a").allowed

    def test_purge_drops_expired_windows(self) -> None:
        clock = _Clock()
        limiter = FixedWindowRateLimiter(max_calls=5, window=60, clock=clock)
        limiter.check("old")
        clock.now += 50
        limiter.check("new")
        clock.now += 20
        assert limiter.purge() == 1
        assert len(limiter) == 1

    def test_defaults(self) -> None:
        assert FixedWindowRateLimiter().max_calls == 400

    def test_rejects_bad_config(self) -> None:
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(max_calls=0)
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(window=0)
