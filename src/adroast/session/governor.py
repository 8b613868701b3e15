"""Cap on cumulative analysis time for a run."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class SessionTimeGovernor:
    """Counts nominal tick time against a fixed ceiling.

    Each tick is charged its nominal duration regardless of how long it
    actually took. Once the ceiling is reached the governor stays
    exhausted; there is no reset, a new run needs a new governor.
    """

    def __init__(self, ceiling: float = 20 * 60, tick_duration: float = 4.0) -> None:
        if ceiling <= 0 or tick_duration <= 0:
            raise ValueError("ceiling and tick_duration must be positive")
        self._ceiling = ceiling
        self._tick_duration = tick_duration
        self._ticks = 0
        self._exhausted = False

    @property
    def ceiling(self) -> float:
        return self._ceiling

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def elapsed(self) -> float:
        # N ticks always compare as exactly N * tick_duration
        return self._ticks * self._tick_duration

    @property
    def remaining(self) -> float:
        return max(0.0, self._ceiling - self.elapsed)

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def charge(self) -> bool:
        """Charge one tick. Returns True once the budget is used up."""
        if self._exhausted:
            return True
        self._ticks += 1
        if self.elapsed >= self._ceiling:
            self._exhausted = True
            logger.warning(
                "Session time limit reached (%.0fs of %.0fs)", self.elapsed, self._ceiling
            )
        return self._exhausted
