"""Payout engine — splits the revealed losing pot among revealed winners.

    winning_side = YES if the event occurred else NO
    payout       = wager + losing_pot // num_winning_reveals

The losing pot is split equally among winners. All wagers are equal by
construction, so equal is also proportional. Floor division on the
smallest currency unit leaves any remainder in custody.

Only revealed records count. A participant who never revealed is in
neither pot and their stake is forfeit.

Division by zero cannot happen: a claimant is only eligible if they
revealed the winning side, and then they are themselves counted in
num_winning_reveals. payout_for() re-checks this and fails closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from secretmarket.errors import InvalidClaimError
from secretmarket.market.ledger import PredictionLedger
from secretmarket.models.market import Choice, PredictionCommit


@dataclass(frozen=True)
class PotSummary:
    """Aggregate settlement figures for a resolved market."""
    winning_side: Choice
    num_winning_reveals: int
    num_losing_reveals: int
    winning_pot: int
    losing_pot: int
    unrevealed_stake: int
    total_escrowed: int

    @property
    def share_per_winner(self) -> int:
        """Each winner's cut of the losing pot (0 if there are no winners)."""
        if self.num_winning_reveals == 0:
            return 0
        return self.losing_pot // self.num_winning_reveals

    @property
    def remainder(self) -> int:
        """Floor-division dust that stays in custody."""
        if self.num_winning_reveals == 0:
            return self.losing_pot
        return self.losing_pot % self.num_winning_reveals

    @property
    def max_total_payout(self) -> int:
        """Total outflow if every winner claims."""
        return self.winning_pot + self.share_per_winner * self.num_winning_reveals


class PayoutEngine:
    """Computes settlement figures and individual payouts."""

    @staticmethod
    def winning_side(outcome: bool) -> Choice:
        return Choice.YES if outcome else Choice.NO

    @staticmethod
    def summarize(ledger: PredictionLedger, outcome: bool) -> PotSummary:
        winner = PayoutEngine.winning_side(outcome)
        winning = ledger.tally(winner)
        losing = ledger.tally(winner.opposite())
        return PotSummary(
            winning_side=winner,
            num_winning_reveals=winning.count,
            num_losing_reveals=losing.count,
            winning_pot=winning.pot,
            losing_pot=losing.pot,
            unrevealed_stake=ledger.unrevealed_stake,
            total_escrowed=ledger.total_committed,
        )

    @staticmethod
    def check_eligible(
        record: Optional[PredictionCommit],
        outcome: Optional[bool],
    ) -> PredictionCommit:
        """Return the record if it may claim, else raise InvalidClaimError."""
        if record is None:
            raise InvalidClaimError("Invalid claim: no prediction committed")
        if outcome is None:
            raise InvalidClaimError("Invalid claim: event has not been resolved")
        if not record.revealed:
            raise InvalidClaimError(
                f"Invalid claim: {record.participant} never revealed"
            )
        if record.choice != PayoutEngine.winning_side(outcome):
            raise InvalidClaimError(
                f"Invalid claim: {record.participant} revealed the losing side"
            )
        return record

    @staticmethod
    def payout_for(record: PredictionCommit, summary: PotSummary) -> int:
        """wager + equal share of the losing pot, floored."""
        if record.choice != summary.winning_side:
            raise InvalidClaimError(
                f"Invalid claim: {record.participant} revealed the losing side"
            )
        if summary.num_winning_reveals < 1:
            raise InvalidClaimError("Invalid claim: no winning reveals")
        return record.wager + summary.losing_pot // summary.num_winning_reveals
