"""Core domain models for the adroast system.

These models represent the data flowing through one analysis run:
captured frames, the model's per-frame observations, the segment being
watched, finalized session records, and the bubbles shown to the viewer.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Any, Literal, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


UNKNOWN_BRAND = "Unknown Brand"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Confidence(str, enum.Enum):
    """How sure the model is about its current theory."""

    GUESSING = "guessing"
    SUSPICIOUS = "suspicious"
    CERTAIN = "certain"


class Lane(str, enum.Enum):
    """Side of the screen a bubble is placed on."""

    LEFT = "left"
    RIGHT = "right"


class Accent(str, enum.Enum):
    """Bubble accent colour, cycled round-robin."""

    GREEN = "green"
    BLACK = "black"
    RED = "red"


# ---------------------------------------------------------------------------
# Capture Models
# ---------------------------------------------------------------------------


class CapturedFrame(BaseModel):
    """A single snapshot of the live feed.

    Contains the raw image data as a numpy array along with metadata
    about when and where it was captured.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: np.ndarray = Field(description="Raw image data as BGR numpy array (OpenCV format)")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the frame was captured")
    frame_number: int = Field(ge=0, description="Sequential frame counter")
    source_device: str = Field(default="webcam", description="Identifier for the capture device")


# ---------------------------------------------------------------------------
# Analyzer Models
# ---------------------------------------------------------------------------


class Observation(BaseModel):
    """One structured reply from the vision model.

    Field aliases match the JSON the model is asked to produce, so a
    decoded reply can be validated directly.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    commentary_text: str = Field(default="", alias="commentary")
    theory: str = Field(default="")
    brand_guess: str | None = Field(default=None, alias="brandGuess")
    confidence: Confidence = Field(default=Confidence.GUESSING)
    tropes: list[str] = Field(default_factory=list, alias="tropesDetected")
    is_boundary: bool = Field(default=False, alias="isNewAd")
    boundary_summary: str | None = Field(default=None, alias="adSummaryOneLiner")

    @field_validator("commentary_text", "theory", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("brand_guess", "boundary_summary", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value or value.lower() == "null":
                return None
        return value

    @field_validator("is_boundary", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return Confidence(value.strip().lower())
            except ValueError:
                return Confidence.GUESSING
        return Confidence.GUESSING if value is None else value

    @field_validator("tropes", mode="before")
    @classmethod
    def _coerce_tropes(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(t) for t in value if t]


class Parsed(BaseModel):
    """The reply matched the expected schema."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["parsed"] = "parsed"
    observation: Observation
    raw_text: str = ""


class Degraded(BaseModel):
    """The reply could not be parsed; only a best-effort commentary survives."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["degraded"] = "degraded"
    observation: Observation
    raw_text: str = ""


class Failed(BaseModel):
    """The analyzer could not produce a reply at all."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: str
    rate_limited: bool = False
    retry_after: float | None = Field(default=None, ge=0)


AnalysisOutcome = Annotated[
    Union[Parsed, Degraded, Failed],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Session Models
# ---------------------------------------------------------------------------


class RunningSegment(BaseModel):
    """The ad currently being watched.

    Mutated by every observation until a boundary or stop closes it.
    """

    started_at: datetime = Field(default_factory=datetime.now)
    brand_guess: str | None = Field(default=None)
    theory: str = Field(default="")
    tropes_seen: list[str] = Field(
        default_factory=list, description="Tropes in first-seen order, no duplicates"
    )
    commentary_log: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Whether nothing worth recording has accrued yet."""
        return not (self.commentary_log or self.theory or self.brand_guess)

    @property
    def last_commentary(self) -> str | None:
        return self.commentary_log[-1] if self.commentary_log else None


class SessionRecord(BaseModel):
    """A finalized ad session. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    brand_guess: str = Field(default=UNKNOWN_BRAND, min_length=1)
    one_liner: str = Field(min_length=1)
    commentary_log: tuple[str, ...] = Field(default=())
    tropes: tuple[str, ...] = Field(default=())
    started_at: datetime
    ended_at: datetime

    @model_validator(mode="after")
    def _check_order(self) -> SessionRecord:
        if self.ended_at < self.started_at:
            raise ValueError("ended_at must not precede started_at")
        return self

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()


# ---------------------------------------------------------------------------
# Presentation Models
# ---------------------------------------------------------------------------


class CommentaryBubble(BaseModel):
    """One on-screen line of commentary with its own lifetime."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str = Field(min_length=1)
    lane: Lane
    accent: Accent
    created_at: float = Field(description="Scheduler clock reading at release, in seconds")
