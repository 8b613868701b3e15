"""Staggered release of commentary onto the screen.

Model replies arrive in bursts whose timing depends on network and model
latency. The scheduler splits each reply into sentences, queues them,
and releases at most one per release tick as a ``CommentaryBubble``.
Visible bubbles are evicted by two independent rules: a cap on how many
are shown at once (oldest first) and a maximum age enforced by a
separate sweep.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections import deque
from typing import Callable

from adroast.domain.models import Accent, CommentaryBubble, Lane

logger = logging.getLogger(__name__)

_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

DEFAULT_PALETTE = (Accent.GREEN, Accent.BLACK, Accent.RED)


def split_sentences(text: str) -> list[str]:
    """Split text after sentence-terminal punctuation; trimmed, no empties."""
    if not text:
        return []
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip()]


class CommentaryScheduler:
    """Turns queued sentences into a steady cadence of on-screen bubbles.

    Lane and accent are pure functions of a per-instance release counter:
    lanes alternate left/right and accents cycle through the palette.
    ``release_next`` and ``sweep`` do the work and can be driven by hand;
    ``start`` runs them on two timers on the current event loop.
    """

    def __init__(
        self,
        release_interval: float = 3.0,
        sweep_interval: float = 1.0,
        bubble_ttl: float = 16.0,
        max_visible: int = 5,
        palette: tuple[Accent, ...] = DEFAULT_PALETTE,
        clock: Callable[[], float] = time.monotonic,
        on_release: Callable[[CommentaryBubble], None] | None = None,
    ) -> None:
        if max_visible < 1:
            raise ValueError("max_visible must be at least 1")
        if not palette:
            raise ValueError("palette must not be empty")
        self._release_interval = release_interval
        self._sweep_interval = sweep_interval
        self._bubble_ttl = bubble_ttl
        self._max_visible = max_visible
        self._palette = palette
        self._clock = clock
        self._on_release = on_release
        self._queue: deque[str] = deque()
        self._visible: list[CommentaryBubble] = []
        self._counter = 0
        self._tasks: list[asyncio.Task] = []

    @property
    def pending(self) -> list[str]:
        """Sentences waiting to be released, oldest first."""
        return list(self._queue)

    @property
    def visible(self) -> list[CommentaryBubble]:
        """Bubbles currently on screen, oldest first."""
        return list(self._visible)

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    def enqueue(self, text: str) -> int:
        """Queue the sentences of a commentary text. Returns how many were added."""
        sentences = split_sentences(text)
        self._queue.extend(sentences)
        return len(sentences)

    def enqueue_sentence(self, sentence: str) -> None:
        """Queue a single line as-is, without splitting."""
        sentence = sentence.strip()
        if sentence:
            self._queue.append(sentence)

    def release_next(self, now: float | None = None) -> CommentaryBubble | None:
        """Show the next queued sentence, if any."""
        if not self._queue:
            return None
        now = self._clock() if now is None else now
        sentence = self._queue.popleft()
        index = self._counter
        self._counter += 1
        bubble = CommentaryBubble(
            id=f"bubble-{index}",
            text=sentence,
            lane=Lane.LEFT if index % 2 == 0 else Lane.RIGHT,
            accent=self._palette[index % len(self._palette)],
            created_at=now,
        )
        self._visible.append(bubble)
        if len(self._visible) > self._max_visible:
            del self._visible[: len(self._visible) - self._max_visible]
        logger.debug("Released %s (%s/%s): %s", bubble.id, bubble.lane.value, bubble.accent.value, sentence)
        if self._on_release is not None:
            self._on_release(bubble)
        return bubble

    def sweep(self, now: float | None = None) -> list[CommentaryBubble]:
        """Drop bubbles older than the TTL. Returns the ones removed."""
        now = self._clock() if now is None else now
        expired = [b for b in self._visible if now - b.created_at >= self._bubble_ttl]
        if expired:
            self._visible = [b for b in self._visible if now - b.created_at < self._bubble_ttl]
        return expired

    def clear(self) -> None:
        """Forget all pending sentences and visible bubbles."""
        self._queue.clear()
        self._visible.clear()

    def start(self) -> None:
        """Run the release and sweep timers on the running event loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._every(self._release_interval, self.release_next)),
            asyncio.create_task(self._every(self._sweep_interval, self.sweep)),
        ]
        logger.debug("Commentary scheduler started")

    def stop(self) -> None:
        """Cancel both timers and clear everything on screen and in the queue."""
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        self.clear()
        logger.debug("Commentary scheduler stopped")

    async def _every(self, interval: float, action: Callable[[], object]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                action()
            except Exception as e:
                logger.error("Commentary timer error: %s", e)
