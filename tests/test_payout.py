"""Tests for the payout engine — proves the losing pot is split equally and floored."""

import pytest

from secretmarket.compensation.payout import PayoutEngine
from secretmarket.errors import InvalidClaimError
from secretmarket.market.ledger import PredictionLedger
from secretmarket.models.market import Choice


WAGER = 10**18


def _ledger(wager: int = WAGER, **reveals: Choice) -> PredictionLedger:
    """Build a ledger; a value of Choice.UNSET means committed but unrevealed."""
    ledger = PredictionLedger()
    for participant, choice in reveals.items():
        ledger.add(participant, b"\x11" * 32, wager)
        if choice != Choice.UNSET:
            ledger.record_reveal(participant, choice)
    return ledger


class TestSummary:
    def test_two_winners_one_loser(self) -> None:
        ledger = _ledger(a=Choice.YES, b=Choice.YES, c=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert summary.winning_side == Choice.YES
        assert summary.num_winning_reveals == 2
        assert summary.losing_pot == WAGER
        assert summary.share_per_winner == WAGER // 2
        assert summary.remainder == 0
        assert summary.max_total_payout == 3 * WAGER

    def test_outcome_false_means_no_wins(self) -> None:
        ledger = _ledger(a=Choice.YES, b=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=False)
        assert summary.winning_side == Choice.NO
        assert summary.winning_pot == WAGER
        assert summary.losing_pot == WAGER

    def test_unrevealed_stake_in_neither_pot(self) -> None:
        ledger = _ledger(a=Choice.YES, b=Choice.NO, c=Choice.UNSET)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert summary.winning_pot == WAGER
        assert summary.losing_pot == WAGER
        assert summary.unrevealed_stake == WAGER
        assert summary.total_escrowed == 3 * WAGER

    def test_odd_split_leaves_remainder(self) -> None:
        ledger = _ledger(7, a=Choice.YES, b=Choice.YES, c=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert summary.share_per_winner == 3
        assert summary.remainder == 1

    def test_no_winners(self) -> None:
        ledger = _ledger(a=Choice.NO, b=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert summary.num_winning_reveals == 0
        assert summary.share_per_winner == 0
        assert summary.remainder == 2 * WAGER
        assert summary.max_total_payout == 0


class TestPayoutFor:
    def test_wager_plus_share(self) -> None:
        ledger = _ledger(a=Choice.YES, b=Choice.YES, c=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert PayoutEngine.payout_for(ledger.get("a"), summary) == WAGER + WAGER // 2

    def test_floored(self) -> None:
        ledger = _ledger(7, a=Choice.YES, b=Choice.YES, c=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert PayoutEngine.payout_for(ledger.get("a"), summary) == 10

    def test_sole_winner_takes_losing_pot(self) -> None:
        ledger = _ledger(a=Choice.YES, b=Choice.NO, c=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        assert PayoutEngine.payout_for(ledger.get("a"), summary) == 3 * WAGER

    def test_loser_fails_closed(self) -> None:
        ledger = _ledger(a=Choice.YES, b=Choice.NO)
        summary = PayoutEngine.summarize(ledger, outcome=True)
        with pytest.raises(InvalidClaimError):
            PayoutEngine.payout_for(ledger.get("b"), summary)


class TestEligibility:
    def test_no_record(self) -> None:
        with pytest.raises(InvalidClaimError, match="no prediction"):
            PayoutEngine.check_eligible(None, True)

    def test_unresolved(self) -> None:
        ledger = _ledger(a=Choice.YES)
        with pytest.raises(InvalidClaimError, match="not been resolved"):
            PayoutEngine.check_eligible(ledger.get("a"), None)

    def test_never_revealed(self) -> None:
        ledger = _ledger(a=Choice.UNSET)
        with pytest.raises(InvalidClaimError, match="never revealed"):
            PayoutEngine.check_eligible(ledger.get("a"), True)

    def test_losing_side(self) -> None:
        ledger = _ledger(a=Choice.NO)
        with pytest.raises(InvalidClaimError, match="losing side"):
            PayoutEngine.check_eligible(ledger.get("a"), True)

    def test_winner_eligible(self) -> None:
        ledger = _ledger(a=Choice.NO)
        assert PayoutEngine.check_eligible(ledger.get("a"), False) is ledger.get("a")
