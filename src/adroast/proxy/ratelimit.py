"""Per-client fixed-window call budget for the proxy."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class RateLimitDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int = 0  # whole seconds until the window resets


class _Window:
    __slots__ = ("count", "reset_at")

    def __init__(self, reset_at: float) -> None:
        self.count = 0
        self.reset_at = reset_at


class FixedWindowRateLimiter:
    """Allows ``max_calls`` per client key in each ``window`` seconds.

    A client's window opens on its first call and resets once it has
    elapsed; calls over the budget are counted but refused.
    """

    def __init__(
        self,
        max_calls: int = 400,
        window: float = 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_calls < 1 or window <= 0:
            raise ValueError("max_calls and window must be positive")
        self._max_calls = max_calls
        self._window = window
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    @property
    def max_calls(self) -> int:
        return self._max_calls

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, key: str) -> RateLimitDecision:
        """Count one call for ``key`` and say whether it may proceed."""
        now = self._clock()
        entry = self._windows.get(key)
        if entry is None or now > entry.reset_at:
            entry = _Window(reset_at=now + self._window)
            self._windows[key] = entry
        entry.count += 1
        return RateLimitDecision(
            allowed=entry.count <= self._max_calls,
            remaining=max(0, self._max_calls - entry.count),
            reset_at=entry.reset_at,
            retry_after=max(0, math.ceil(entry.reset_at - now)),
        )

    def purge(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        stale = [key for key, entry in self._windows.items() if now > entry.reset_at]
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("Purged %d expired rate-limit windows", len(stale))
        return len(stale)
