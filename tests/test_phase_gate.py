"""Tests for the deadline phase gate — proves boundaries are inclusive and fail-closed."""

import pytest
from datetime import datetime, timedelta, timezone

from secretmarket.engine.phase_gate import Operation, Phase, PhaseGate
from secretmarket.errors import DeadlinePassed, MarketConfigError, TooEarly
from secretmarket.models.market import Deadlines


COMMIT = datetime(2026, 11, 1, 0, 0, 0, tzinfo=timezone.utc)
EVENT = COMMIT + timedelta(days=1)
REVEAL = COMMIT + timedelta(days=2)
PAYOUT = COMMIT + timedelta(days=3)
SECOND = timedelta(seconds=1)


def _gate() -> PhaseGate:
    return PhaseGate(Deadlines(commit=COMMIT, event=EVENT, reveal=REVEAL, payout=PAYOUT))


class TestPhaseAt:
    @pytest.mark.parametrize(
        "now,expected",
        [
            (COMMIT - timedelta(days=30), Phase.COMMIT),
            (COMMIT, Phase.COMMIT),
            (COMMIT + SECOND, Phase.AWAITING_RESOLUTION),
            (EVENT, Phase.AWAITING_RESOLUTION),
            (EVENT + SECOND, Phase.REVEAL),
            (REVEAL, Phase.REVEAL),
            (REVEAL + SECOND, Phase.AWAITING_PAYOUT),
            (PAYOUT, Phase.AWAITING_PAYOUT),
            (PAYOUT + SECOND, Phase.CLOSED),
        ],
    )
    def test_boundaries(self, now: datetime, expected: Phase) -> None:
        assert _gate().phase_at(now) == expected

    def test_defaults_to_current_time(self) -> None:
        far_future = datetime.now(timezone.utc) + timedelta(days=3650)
        gate = PhaseGate(Deadlines(
            commit=far_future,
            event=far_future + SECOND,
            reveal=far_future + 2 * SECOND,
            payout=far_future + 3 * SECOND,
        ))
        assert gate.phase_at() == Phase.COMMIT


class TestPermitted:
    def test_one_operation_per_open_phase(self) -> None:
        gate = _gate()
        assert gate.permitted(COMMIT) == frozenset({Operation.COMMIT})
        assert gate.permitted(EVENT) == frozenset({Operation.RESOLVE})
        assert gate.permitted(REVEAL) == frozenset({Operation.REVEAL})
        assert gate.permitted(PAYOUT) == frozenset({Operation.CLAIM})

    def test_nothing_after_close(self) -> None:
        assert _gate().permitted(PAYOUT + SECOND) == frozenset()


class TestRequire:
    def test_commit_at_deadline(self) -> None:
        assert _gate().require(Operation.COMMIT, COMMIT) == Phase.COMMIT

    def test_commit_after_deadline(self) -> None:
        with pytest.raises(DeadlinePassed, match="Commit deadline has passed"):
            _gate().require(Operation.COMMIT, COMMIT + SECOND)

    def test_reveal_too_early(self) -> None:
        with pytest.raises(TooEarly):
            _gate().require(Operation.REVEAL, EVENT)

    def test_reveal_after_deadline(self) -> None:
        with pytest.raises(DeadlinePassed, match="Reveal deadline has passed"):
            _gate().require(Operation.REVEAL, REVEAL + SECOND)

    def test_claim_too_early(self) -> None:
        with pytest.raises(TooEarly):
            _gate().require(Operation.CLAIM, REVEAL)

    def test_claim_after_close(self) -> None:
        with pytest.raises(DeadlinePassed):
            _gate().require(Operation.CLAIM, PAYOUT + SECOND)

    def test_resolve_window(self) -> None:
        gate = _gate()
        with pytest.raises(TooEarly):
            gate.require(Operation.RESOLVE, COMMIT)
        assert gate.require(Operation.RESOLVE, COMMIT + SECOND) == Phase.AWAITING_RESOLUTION
        assert gate.require(Operation.RESOLVE, EVENT) == Phase.AWAITING_RESOLUTION
        with pytest.raises(DeadlinePassed):
            gate.require(Operation.RESOLVE, EVENT + SECOND)

    def test_deadline_for(self) -> None:
        gate = _gate()
        assert gate.deadline_for(Operation.COMMIT) == COMMIT
        assert gate.deadline_for(Operation.RESOLVE) == EVENT
        assert gate.deadline_for(Operation.REVEAL) == REVEAL
        assert gate.deadline_for(Operation.CLAIM) == PAYOUT


class TestDeadlineOrdering:
    def test_event_equal_to_reveal_rejected(self) -> None:
        """An empty reveal window is not a valid market."""
        with pytest.raises(MarketConfigError):
            Deadlines(commit=COMMIT, event=REVEAL, reveal=REVEAL, payout=PAYOUT)

    def test_reveal_before_event_rejected(self) -> None:
        with pytest.raises(MarketConfigError):
            Deadlines(commit=COMMIT, event=REVEAL, reveal=EVENT, payout=PAYOUT)

    def test_commit_after_event_rejected(self) -> None:
        with pytest.raises(MarketConfigError):
            Deadlines(commit=EVENT + SECOND, event=EVENT, reveal=REVEAL, payout=PAYOUT)

    def test_naive_deadline_rejected(self) -> None:
        with pytest.raises(MarketConfigError, match="timezone-aware"):
            Deadlines(
                commit=COMMIT.replace(tzinfo=None),
                event=EVENT,
                reveal=REVEAL,
                payout=PAYOUT,
            )

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Deadlines(commit=PAYOUT, event=EVENT, reveal=REVEAL, payout=COMMIT)
