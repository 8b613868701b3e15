"""The live analysis loop that orchestrates the entire system.

Ties together frame capture, the vision analyzer, segmentation, the
session-time governor and the commentary scheduler.

Coordinates: capture -> analyze -> segment -> schedule, once per tick.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import random
import time
from typing import Callable, Sequence

from adroast.analyzer.base import VisionAnalyzer
from adroast.capture.base import FrameSource
from adroast.domain.models import Degraded, Failed, Parsed, SessionRecord
from adroast.presentation.scheduler import CommentaryScheduler
from adroast.session.governor import SessionTimeGovernor
from adroast.session.segmentation import SegmentationState

logger = logging.getLogger(__name__)


# Immediate feedback queued when analysis starts
WATCHING_MESSAGES = (
    "Alright, let's see what they're selling us...",
    "Eyes on the screen. Let's do this.",
    "Okay, I'm watching. Don't disappoint me.",
    "Let's see what Madison Avenue cooked up.",
    "Tuning in. Prepare for opinions.",
    "Camera's rolling. So are my eyes.",
    "I'm here. I'm watching. I'm judging.",
    "Let the roasting commence.",
)

ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again."
ANALYSIS_TIMEOUT_MESSAGE = "Analysis timed out. Please try again."
LIMIT_REACHED_MESSAGE = "Session limit reached. That's enough ads for one day."


class LoopState(str, enum.Enum):
    """Lifecycle of a live analysis loop."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    LIMIT_REACHED = "limit_reached"  # terminal for this governor


def build_rolling_context(theory: str, commentary: str, max_chars: int = 400) -> str:
    """Compact summary of the latest theory and commentary for the next request."""
    theory = " ".join((theory or "").split())
    commentary = " ".join((commentary or "").split())
    if not theory and not commentary:
        return ""
    context = f"Theory: {theory or 'none yet'}. Recent: {commentary}"
    if len(context) > max_chars:
        context = context[: max(0, max_chars - 3)].rstrip() + "..."
    return context


class LiveAnalysisLoop:
    """Periodically samples the feed and turns model replies into commentary.

    A single timer fires every ``tick_interval`` seconds and runs each
    tick as its own task, so the cadence does not depend on analysis
    latency. At most one analysis is outstanding: a tick that finds the
    previous one still running is skipped. Results that arrive after
    ``stop()`` are discarded.
    """

    def __init__(
        self,
        source: FrameSource,
        analyzer: VisionAnalyzer,
        scheduler: CommentaryScheduler,
        governor: SessionTimeGovernor,
        segmentation: SegmentationState,
        tick_interval: float = 4.0,
        analysis_timeout: float | None = None,
        context_max_chars: int = 400,
        openers: Sequence[str] = WATCHING_MESSAGES,
        on_error: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self._source = source
        self._analyzer = analyzer
        self._scheduler = scheduler
        self._governor = governor
        self._segmentation = segmentation
        self._tick_interval = tick_interval
        self._analysis_timeout = analysis_timeout or tick_interval
        self._context_max_chars = context_max_chars
        self._openers = tuple(openers)
        self._on_error = on_error
        self._clock = clock
        self._rng = rng or random.Random()

        self._state = LoopState.IDLE
        self._epoch = 0
        self._busy = False
        self._backoff_until: float | None = None
        self._rolling_context = ""
        self._last_error: str | None = None
        self._tick_count = 0
        self._timer_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()
        self._stopped = asyncio.Event()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    @property
    def is_busy(self) -> bool:
        """Whether an analysis is currently outstanding."""
        return self._busy

    @property
    def limit_reached(self) -> bool:
        return self._state is LoopState.LIMIT_REACHED

    @property
    def rolling_context(self) -> str:
        return self._rolling_context

    @property
    def last_error(self) -> str | None:
        """The most recent user-facing error, until dismissed."""
        return self._last_error

    @property
    def segmentation(self) -> SegmentationState:
        return self._segmentation

    @property
    def scheduler(self) -> CommentaryScheduler:
        return self._scheduler

    @property
    def governor(self) -> SessionTimeGovernor:
        return self._governor

    def dismiss_error(self) -> None:
        self._last_error = None

    def start(self) -> bool:
        """Begin ticking. Returns False (and does nothing) if it cannot start.

        Must be called from within a running event loop.

        The one-analysis-in-flight guard is per instance: a second
        ``LiveAnalysisLoop`` built on the same ``FrameSource`` is not
        detected and will start. Run at most one loop per source.
        """
        if self._state is LoopState.RUNNING:
            logger.warning("Live loop already running, ignoring start()")
            return False
        if self._governor.exhausted:
            self._state = LoopState.LIMIT_REACHED
            self._report(LIMIT_REACHED_MESSAGE)
            return False
        if not self._source.is_open:
            logger.warning("Frame source is not open, not starting")
            return False

        self._epoch += 1
        self._state = LoopState.RUNNING
        self._busy = False
        self._backoff_until = None
        self._rolling_context = ""
        self._tick_count = 0
        self._stopped.clear()

        self._segmentation.reset()
        self._scheduler.clear()
        if self._openers:
            self._scheduler.enqueue_sentence(self._rng.choice(self._openers))
        self._scheduler.start()
        self._timer_task = asyncio.create_task(self._run_timer())

        logger.info(
            "Live loop started (interval=%.1fs, segmentation=%s, budget left=%.0fs)",
            self._tick_interval,
            self._segmentation.policy.name,
            self._governor.remaining,
        )
        return True

    def stop(self) -> SessionRecord | None:
        """Halt all timers and close the running segment.

        Idempotent: a second call has no effect and returns None. No tick
        has any effect once this returns.
        """
        if self._state is not LoopState.RUNNING:
            return None
        self._state = LoopState.STOPPED
        self._epoch += 1
        self._busy = False

        current = _current_task()
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        for task in list(self._tick_tasks):
            if task is not current:
                task.cancel()
        self._tick_tasks.clear()

        self._scheduler.stop()
        record = self._segmentation.close()
        self._stopped.set()
        logger.info("Live loop stopped after %d ticks", self._tick_count)
        return record

    async def wait_stopped(self) -> None:
        """Wait until the loop is stopped, by the caller or the governor."""
        await self._stopped.wait()

    async def tick(self) -> None:
        """Run one capture -> analyze -> update iteration.

        Never raises; per-tick failures are reported and absorbed.
        """
        if self._state is not LoopState.RUNNING:
            return
        try:
            await self._tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Unexpected error during tick: %s", e)
            self._report(ANALYSIS_FAILED_MESSAGE)

    async def _tick(self) -> None:
        self._tick_count += 1

        # 1. Budget
        if self._governor.charge():
            self._hit_limit()
            return

        # 2. One analysis in flight at a time, and respect rate-limit resets
        if self._busy:
            logger.debug("Tick %d skipped: previous analysis still in flight", self._tick_count)
            return
        if self._backoff_until is not None:
            if self._clock() < self._backoff_until:
                logger.debug("Tick %d skipped: rate limit back-off", self._tick_count)
                return
            self._backoff_until = None

        # 3. Capture and analyze
        epoch = self._epoch
        self._busy = True
        try:
            outcome = await self._capture_and_analyze()
        finally:
            if epoch == self._epoch:
                self._busy = False

        if epoch != self._epoch or self._state is not LoopState.RUNNING:
            logger.debug("Discarding analysis result that arrived after stop")
            return
        if outcome is None:
            return

        # 4. Update
        self._handle(outcome)

    async def _capture_and_analyze(self) -> Parsed | Degraded | Failed | None:
        frame = await self._source.capture()
        if frame is None:
            logger.debug("Tick %d: no frame available", self._tick_count)
            return None
        try:
            return await asyncio.wait_for(
                self._analyzer.analyze(frame, self._rolling_context),
                timeout=self._analysis_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Analysis of frame %d exceeded %.1fs", frame.frame_number, self._analysis_timeout
            )
            return Failed(reason=ANALYSIS_TIMEOUT_MESSAGE)

    def _handle(self, outcome: Parsed | Degraded | Failed) -> None:
        if isinstance(outcome, Failed):
            self._handle_failure(outcome)
            return
        if isinstance(outcome, Degraded):
            logger.info("Tick %d: unparseable reply, using commentary only", self._tick_count)

        observation = outcome.observation
        record = self._segmentation.observe(observation)
        self._scheduler.enqueue(observation.commentary_text)

        segment = self._segmentation.segment
        self._rolling_context = build_rolling_context(
            observation.theory or segment.theory,
            observation.commentary_text,
            self._context_max_chars,
        )
        logger.info(
            "Tick %d | %s | brand=%s | %s",
            self._tick_count,
            observation.confidence.value,
            segment.brand_guess or "?",
            observation.commentary_text[:80],
        )
        if record is not None:
            logger.info("New ad detected; previous: %s", record.brand_guess)

    def _handle_failure(self, outcome: Failed) -> None:
        if not outcome.rate_limited:
            logger.warning("Tick %d: analysis failed: %s", self._tick_count, outcome.reason)
            self._report(ANALYSIS_FAILED_MESSAGE)
            return
        message = outcome.reason
        if outcome.retry_after:
            self._backoff_until = self._clock() + outcome.retry_after
            message = f"{message} (retry in {math.ceil(outcome.retry_after)}s)"
        self._report(message)

    def _hit_limit(self) -> None:
        self.stop()
        self._state = LoopState.LIMIT_REACHED
        self._report(LIMIT_REACHED_MESSAGE)

    def _report(self, message: str) -> None:
        """Replace the single user-visible error message."""
        self._last_error = message
        logger.warning("User notice: %s", message)
        if self._on_error is not None:
            self._on_error(message)

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            task = asyncio.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
