"""Tests for session records and the ledger."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from adroast.domain.models import UNKNOWN_BRAND, RunningSegment, SessionRecord
from adroast.session.ledger import FALLBACK_ONE_LINER, SessionLedger, build_record

_START = datetime(2025, 2, 9, 18, 30, 0)


def _segment(**kwargs) -> RunningSegment:
    return RunningSegment(started_at=_START, **kwargs)


class TestBuildRecord:

    def test_copies_segment(self) -> None:
        segment = _segment(
            brand_guess="Doritos",
            commentary_log=["Crunch.", "More crunch."],
            tropes_seen=["celebrity cameo"],
        )
        record = build_record(segment, "Chips, but louder.", _START + timedelta(seconds=30))
        assert record.brand_guess == "Doritos"
        assert record.one_liner == "Chips, but louder."
        assert record.commentary_log == ("Crunch.", "More crunch.")
        assert record.tropes == ("celebrity cameo",)
        assert record.duration_seconds == 30
        assert len(record.id) == 12

    def test_fallbacks(self) -> None:
        record = build_record(_segment(), "  ", _START)
        assert record.brand_guess == UNKNOWN_BRAND
        assert record.one_liner == FALLBACK_ONE_LINER

    def test_brand_override_wins(self) -> None:
        record = build_record(_segment(brand_guess="Pepsi"), "x", _START, brand_guess="Coke")
        assert record.brand_guess == "Coke"

    def test_end_before_start_is_clamped(self) -> None:
        record = build_record(_segment(), "x", _START - timedelta(seconds=5))
        assert record.ended_at == _START

    def test_explicit_id(self) -> None:
        assert build_record(_segment(), "x", _START, record_id="abc").id == "abc"

    def test_later_segment_changes_do_not_leak(self) -> None:
        segment = _segment(commentary_log=["one"])
        record = build_record(segment, "x", _START)
        segment.commentary_log.append("two")
        assert record.commentary_log == ("one",)


class TestSessionRecord:

    def test_is_immutable(self) -> None:
        record = build_record(_segment(), "x", _START)
        with pytest.raises(ValidationError):
            record.one_liner = "changed"  # type: ignore[misc]

    def test_rejects_end_before_start(self) -> None:
        with pytest.raises(ValidationError):
            SessionRecord(
                id="a", one_liner="x", started_at=_START, ended_at=_START - timedelta(seconds=1)
            )

    def test_rejects_empty_one_liner(self) -> None:
        with pytest.raises(ValidationError):
            SessionRecord(id="a", one_liner="", started_at=_START, ended_at=_START)


class TestSessionLedger:

    def test_starts_empty(self, ledger: SessionLedger) -> None:
        assert len(ledger) == 0
        assert ledger.history == []
        assert ledger.latest is None

    def test_finalize_appends_in_order(self, ledger: SessionLedger) -> None:
        first = ledger.finalize(_segment(brand_guess="A"), "first", ended_at=_START)
        second = ledger.finalize(_segment(brand_guess="B"), "second", ended_at=_START)
        assert [r.id for r in ledger.history] == [first.id, second.id]
        assert ledger.latest is second

    def test_history_is_a_copy(self, ledger: SessionLedger) -> None:
        ledger.finalize(_segment(), "x", ended_at=_START)
        ledger.history.clear()
        assert len(ledger) == 1
