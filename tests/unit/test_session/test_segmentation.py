"""Tests for segmentation policies and the running segment."""

from __future__ import annotations

import pytest

from adroast.domain.models import UNKNOWN_BRAND, Confidence
from adroast.session.ledger import SessionLedger
from adroast.session.segmentation import (
    CLOSING_FALLBACK,
    BoundarySignalPolicy,
    BrandChangePolicy,
    DisabledSegmentation,
    SegmentationState,
    make_policy,
)


@pytest.fixture
def signal_state(ledger: SessionLedger, manual_clock) -> SegmentationState:
    return SegmentationState(ledger, BoundarySignalPolicy(), clock=manual_clock)


class TestMakePolicy:

    @pytest.mark.parametrize(
        "name,cls",
        [("off", DisabledSegmentation), ("signal", BoundarySignalPolicy), ("brand_change", BrandChangePolicy)],
    )
    def test_known(self, name: str, cls: type) -> None:
        policy = make_policy(name)
        assert isinstance(policy, cls)
        assert policy.name == name

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            make_policy("vibes")


class TestRunningSegment:

    def test_sticky_fields(self, ledger: SessionLedger, observation_factory) -> None:
        state = SegmentationState(ledger)
        state.observe(observation_factory("One.", theory="Cars", brand="Ford", tropes=["dog"]))
        state.observe(observation_factory("Two.", theory="", brand=None, tropes=["dog", "sunset"]))
        segment = state.segment
        assert segment.theory == "Cars"
        assert segment.brand_guess == "Ford"
        assert segment.commentary_log == ["One.", "Two."]
        assert segment.tropes_seen == ["dog", "sunset"]

    def test_blank_commentary_not_logged(self, ledger: SessionLedger, observation_factory) -> None:
        state = SegmentationState(ledger)
        state.observe(observation_factory("   ", theory="Soda"))
        assert state.segment.commentary_log == []
        assert state.segment.theory == "Soda"

    def test_disabled_policy_never_splits(self, ledger: SessionLedger, observation_factory) -> None:
        state = SegmentationState(ledger)
        record = state.observe(observation_factory("New!", is_boundary=True, summary="Bye."))
        assert record is None
        assert len(ledger) == 0
        assert state.segment.commentary_log == ["New!"]


class TestBoundarySignalPolicy:

    def test_boundary_finalizes_previous_ad(
        self, signal_state: SegmentationState, ledger: SessionLedger, observation_factory, manual_clock
    ) -> None:
        signal_state.observe(observation_factory("Look, a truck.", theory="Trucks", brand="Acme"))
        manual_clock.advance(8)
        record = signal_state.observe(
            observation_factory(
                "And now: soda.", brand="Fizz", is_boundary=True, summary="Acme sells nothing you need"
            )
        )
        assert record is not None
        assert ledger.history == [record]
        assert record.brand_guess == "Acme"
        assert record.one_liner == "Acme sells nothing you need"
        assert record.commentary_log == ("Look, a truck.", "And now: soda.")
        assert record.duration_seconds == 8
        assert signal_state.segment.is_empty
        assert signal_state.segment.started_at == record.ended_at

    def test_boundary_without_summary_is_ignored(
        self, signal_state: SegmentationState, ledger: SessionLedger, observation_factory
    ) -> None:
        assert signal_state.observe(observation_factory("Hmm.", is_boundary=True, summary="")) is None
        assert len(ledger) == 0

    def test_boundary_on_empty_segment_uses_unknown_brand(
        self, signal_state: SegmentationState, observation_factory
    ) -> None:
        record = signal_state.observe(observation_factory("", is_boundary=True, summary="Forgettable."))
        assert record.brand_guess == UNKNOWN_BRAND
        assert record.one_liner == "Forgettable."


class TestBrandChangePolicy:

    def test_certain_new_brand_splits_and_carries_over(
        self, ledger: SessionLedger, observation_factory
    ) -> None:
        state = SegmentationState(ledger, BrandChangePolicy())
        state.observe(observation_factory("Burgers again.", brand="BurgerCo", confidence=Confidence.CERTAIN))
        record = state.observe(
            observation_factory("Now insurance?", brand="SafeCo", confidence=Confidence.CERTAIN, tropes=["gecko"])
        )
        assert record is not None
        assert record.brand_guess == "BurgerCo"
        assert record.one_liner == "Burgers again."
        assert record.commentary_log == ("Burgers again.",)
        assert state.segment.brand_guess == "SafeCo"
        assert state.segment.commentary_log == ["Now insurance?"]
        assert state.segment.tropes_seen == ["gecko"]

    def test_uncertain_or_same_brand_does_not_split(
        self, ledger: SessionLedger, observation_factory
    ) -> None:
        state = SegmentationState(ledger, BrandChangePolicy())
        state.observe(observation_factory("a", brand="Acme", confidence=Confidence.CERTAIN))
        assert state.observe(observation_factory("b", brand="ACME", confidence=Confidence.CERTAIN)) is None
        assert state.observe(observation_factory("c", brand="Other", confidence=Confidence.SUSPICIOUS)) is None
        assert len(ledger) == 0


class TestClose:

    def test_close_empty_segment_records_nothing(self, ledger: SessionLedger) -> None:
        state = SegmentationState(ledger)
        assert state.close() is None
        assert len(ledger) == 0

    def test_close_uses_last_commentary(self, ledger: SessionLedger, observation_factory) -> None:
        state = SegmentationState(ledger)
        state.observe(observation_factory("First."))
        state.observe(observation_factory("Last word."))
        record = state.close()
        assert record.one_liner == "Last word."
        assert record.brand_guess == UNKNOWN_BRAND
        assert state.segment.is_empty

    def test_close_with_explicit_one_liner(self, ledger: SessionLedger, observation_factory) -> None:
        state = SegmentationState(ledger)
        state.observe(observation_factory("Meh.", brand="Acme"))
        record = state.close("Acme: all sizzle.")
        assert record.one_liner == "Acme: all sizzle."
        assert record.brand_guess == "Acme"

    def test_close_theory_only(self, ledger: SessionLedger, observation_factory) -> None:
        state = SegmentationState(ledger)
        state.observe(observation_factory("", theory="Phones"))
        assert state.close().one_liner == CLOSING_FALLBACK
