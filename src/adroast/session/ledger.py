"""Append-only history of finalized ad sessions."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from adroast.domain.models import UNKNOWN_BRAND, RunningSegment, SessionRecord

logger = logging.getLogger(__name__)

FALLBACK_ONE_LINER = "Another $7M delusion."


def build_record(
    segment: RunningSegment,
    one_liner: str | None,
    ended_at: datetime,
    brand_guess: str | None = None,
    record_id: str | None = None,
) -> SessionRecord:
    """Turn a running segment into an immutable session record.

    Depends only on its arguments. ``brand_guess`` overrides the
    segment's own guess; both fall back to ``UNKNOWN_BRAND``.
    """
    brand = (brand_guess or segment.brand_guess or "").strip() or UNKNOWN_BRAND
    line = (one_liner or "").strip() or FALLBACK_ONE_LINER
    return SessionRecord(
        id=record_id or uuid.uuid4().hex[:12],
        brand_guess=brand,
        one_liner=line,
        commentary_log=tuple(segment.commentary_log),
        tropes=tuple(segment.tropes_seen),
        started_at=segment.started_at,
        ended_at=max(ended_at, segment.started_at),
    )


class SessionLedger:
    """Owns the session history for one application run."""

    def __init__(self) -> None:
        self._history: list[SessionRecord] = []

    @property
    def history(self) -> list[SessionRecord]:
        return list(self._history)

    @property
    def latest(self) -> SessionRecord | None:
        return self._history[-1] if self._history else None

    def __len__(self) -> int:
        return len(self._history)

    def finalize(
        self,
        segment: RunningSegment,
        one_liner: str | None = None,
        ended_at: datetime | None = None,
        brand_guess: str | None = None,
    ) -> SessionRecord:
        """Record a segment as a finished session. The only write path."""
        record = build_record(
            segment,
            one_liner=one_liner,
            ended_at=ended_at or datetime.now(),
            brand_guess=brand_guess,
        )
        self._history.append(record)
        logger.info(
            "Session %s closed: %s -- %s (%d lines)",
            record.id, record.brand_guess, record.one_liner, len(record.commentary_log),
        )
        return record
