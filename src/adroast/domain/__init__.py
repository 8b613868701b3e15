"""Domain models for adroast.

This package contains all core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from adroast.domain.models import (
    Accent,
    AnalysisOutcome,
    CapturedFrame,
    CommentaryBubble,
    Confidence,
    Degraded,
    Failed,
    Lane,
    Observation,
    Parsed,
    RunningSegment,
    SessionRecord,
)

__all__ = [
    "Accent",
    "AnalysisOutcome",
    "CapturedFrame",
    "CommentaryBubble",
    "Confidence",
    "Degraded",
    "Failed",
    "Lane",
    "Observation",
    "Parsed",
    "RunningSegment",
    "SessionRecord",
]
