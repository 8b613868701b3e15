"""Segmentation of the observation stream into one session per ad.

``SegmentationState`` owns the segment currently being watched and
folds every observation into it. Whether an observation starts a new
ad is decided by a pluggable ``SegmentationPolicy``; the model's own
new-ad signal has proven unreliable, so it is one policy among several
and the default is not to segment at all.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from pydantic import BaseModel, ConfigDict

from adroast.domain.models import Confidence, Observation, RunningSegment, SessionRecord
from adroast.session.ledger import SessionLedger

logger = logging.getLogger(__name__)

CLOSING_FALLBACK = "They tried."


class Boundary(BaseModel):
    """A policy's verdict that the current ad has ended."""

    model_config = ConfigDict(frozen=True)

    one_liner: str | None = None
    # Whether the observation that revealed the boundary belongs to the new ad
    carry_over: bool = False


class SegmentationPolicy(ABC):
    """Decides whether an observation marks the start of a different ad."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def detect(self, segment: RunningSegment, observation: Observation) -> Boundary | None:
        """Return a Boundary if ``observation`` ends ``segment``, else None."""
        ...


class DisabledSegmentation(SegmentationPolicy):
    """Never splits; the segment is closed only when the loop stops."""

    @property
    def name(self) -> str:
        return "off"

    def detect(self, segment: RunningSegment, observation: Observation) -> Boundary | None:
        return None


class BoundarySignalPolicy(SegmentationPolicy):
    """Trusts the model's ``isNewAd`` flag when it comes with a summary.

    The boundary observation is the model's parting shot at the previous
    ad, so it closes out the outgoing segment and the next one starts
    empty.
    """

    @property
    def name(self) -> str:
        return "signal"

    def detect(self, segment: RunningSegment, observation: Observation) -> Boundary | None:
        summary = (observation.boundary_summary or "").strip()
        if observation.is_boundary and summary:
            return Boundary(one_liner=summary)
        return None


class BrandChangePolicy(SegmentationPolicy):
    """Splits when the model is certain about a brand other than the current one."""

    @property
    def name(self) -> str:
        return "brand_change"

    def detect(self, segment: RunningSegment, observation: Observation) -> Boundary | None:
        new_brand = (observation.brand_guess or "").strip()
        old_brand = (segment.brand_guess or "").strip()
        if (
            observation.confidence is Confidence.CERTAIN
            and new_brand
            and old_brand
            and new_brand.casefold() != old_brand.casefold()
        ):
            return Boundary(
                one_liner=observation.boundary_summary or segment.last_commentary,
                carry_over=True,
            )
        return None


def make_policy(name: str) -> SegmentationPolicy:
    """Build a policy from its configuration name."""
    policies: dict[str, type[SegmentationPolicy]] = {
        "off": DisabledSegmentation,
        "signal": BoundarySignalPolicy,
        "brand_change": BrandChangePolicy,
    }
    try:
        return policies[name]()
    except KeyError:
        raise ValueError(f"Unknown segmentation policy: {name!r}") from None


class SegmentationState:
    """Tracks the running segment and finalizes it through the ledger."""

    def __init__(
        self,
        ledger: SessionLedger,
        policy: SegmentationPolicy | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._ledger = ledger
        self._policy = policy or DisabledSegmentation()
        self._clock = clock
        self._segment = RunningSegment(started_at=clock())

    @property
    def segment(self) -> RunningSegment:
        return self._segment

    @property
    def policy(self) -> SegmentationPolicy:
        return self._policy

    @property
    def ledger(self) -> SessionLedger:
        return self._ledger

    def reset(self) -> None:
        """Discard the running segment and start a fresh one now."""
        self._segment = RunningSegment(started_at=self._clock())

    def observe(self, observation: Observation) -> SessionRecord | None:
        """Fold one observation in. Returns the record if an ad just ended."""
        boundary = self._policy.detect(self._segment, observation)
        if boundary is None:
            self._apply(observation)
            return None

        brand = self._segment.brand_guess or observation.brand_guess
        if boundary.carry_over:
            record = self._finalize(boundary.one_liner, brand)
            self._apply(observation)
        else:
            self._apply(observation, update_sticky=False)
            record = self._finalize(boundary.one_liner, brand)
        return record

    def close(self, one_liner: str | None = None) -> SessionRecord | None:
        """Finalize whatever has accrued, e.g. when the loop stops.

        Without an explicit one-liner the latest commentary line is used.
        """
        if self._segment.is_empty:
            self.reset()
            return None
        line = one_liner or self._segment.last_commentary or CLOSING_FALLBACK
        return self._finalize(line, None)

    def _finalize(self, one_liner: str | None, brand_guess: str | None) -> SessionRecord:
        record = self._ledger.finalize(
            self._segment,
            one_liner=one_liner,
            ended_at=self._clock(),
            brand_guess=brand_guess,
        )
        self._segment = RunningSegment(started_at=record.ended_at)
        return record

    def _apply(self, observation: Observation, update_sticky: bool = True) -> None:
        segment = self._segment
        commentary = observation.commentary_text.strip()
        if commentary:
            segment.commentary_log.append(commentary)
        if update_sticky:
            theory = observation.theory.strip()
            if theory:
                segment.theory = theory
            if observation.brand_guess:
                segment.brand_guess = observation.brand_guess
        for trope in observation.tropes:
            trope = trope.strip()
            if trope and trope not in segment.tropes_seen:
                segment.tropes_seen.append(trope)
