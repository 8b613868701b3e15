"""Shared test fixtures for the adroast test suite.

Provides common fixtures used across unit tests: sample frames,
observations, a scripted analyzer, and a mock frame source.
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import numpy as np
import pytest

from adroast.domain.models import (
    CapturedFrame,
    Confidence,
    Degraded,
    Failed,
    Observation,
    Parsed,
)
from adroast.session.ledger import SessionLedger


# ---------------------------------------------------------------------------
# Frame / Image Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_image() -> np.ndarray:
    """A minimal 100x100 black image for testing."""
    return np.zeros((100, 100, 3), dtype=np.uint8)


@pytest.fixture
def sample_frame(sample_image: np.ndarray) -> CapturedFrame:
    """A CapturedFrame with a sample image."""
    return CapturedFrame(
        image=sample_image,
        timestamp=datetime(2025, 1, 1, 12, 0, 0),
        frame_number=1,
        source_device="test",
    )


# ---------------------------------------------------------------------------
# Observation Fixtures
# ---------------------------------------------------------------------------


def make_observation(
    commentary: str = "Nice truck.",
    theory: str = "",
    brand: str | None = None,
    confidence: Confidence = Confidence.GUESSING,
    tropes: list[str] | None = None,
    is_boundary: bool = False,
    summary: str | None = None,
) -> Observation:
    return Observation(
        commentary_text=commentary,
        theory=theory,
        brand_guess=brand,
        confidence=confidence,
        tropes=tropes or [],
        is_boundary=is_boundary,
        boundary_summary=summary,
    )


@pytest.fixture
def observation_factory():
    """Build observations with sensible defaults."""
    return make_observation


class ManualClock:
    """A settable clock returning datetimes, advanced by hand."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 20, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def ledger() -> SessionLedger:
    return SessionLedger()


# ---------------------------------------------------------------------------
# Mock Fixtures
# ---------------------------------------------------------------------------


class ScriptedAnalyzer:
    """Stands in for a VisionAnalyzer, returning queued outcomes in order.

    Records the rolling context passed with each request. When a gate is
    set, each call waits on it before answering.
    """

    def __init__(self, outcomes: list[Parsed | Degraded | Failed] | None = None) -> None:
        self.outcomes: deque[Parsed | Degraded | Failed] = deque(outcomes or [])
        self.contexts: list[str] = []
        self.gate: asyncio.Event | None = None
        self.model = "scripted"

    def push(self, outcome: Parsed | Degraded | Failed) -> None:
        self.outcomes.append(outcome)

    async def analyze(self, frame: CapturedFrame, context: str = "") -> Any:
        self.contexts.append(context)
        if self.gate is not None:
            await self.gate.wait()
        if not self.outcomes:
            return Parsed(observation=make_observation())
        return self.outcomes.popleft()

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture
def scripted_analyzer() -> ScriptedAnalyzer:
    return ScriptedAnalyzer()


@pytest.fixture
def mock_frame_source(sample_frame: CapturedFrame) -> AsyncMock:
    """An open frame source whose capture() always returns the sample frame."""
    mock = AsyncMock()
    mock.is_open = True
    mock.capture.return_value = sample_frame
    return mock
