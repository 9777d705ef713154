"""Stake custody — holds every wager until it is paid out or forfeited.

Every commit deposits exactly one stake into market custody. A stake is
released at most once, to its participant, as part of a winning claim.
Stakes of losers, non-revealers, and winners who never claim stay in
custody for good: nothing in the market ever returns them.

The custody is a pure state machine with no side effects. Event logging is
handled by the market.

State machine:
    LOCKED → RELEASED   (winning claim paid out)

Accounting invariant:
    balance == total_deposited - total_paid_out >= 0
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional


class StakeState(str, enum.Enum):
    """Lifecycle state of a custodied stake."""
    LOCKED = "locked"
    RELEASED = "released"


STAKE_TRANSITIONS: Dict[StakeState, frozenset] = {
    StakeState.LOCKED: frozenset({StakeState.RELEASED}),
    StakeState.RELEASED: frozenset(),
}


@dataclass
class StakeRecord:
    """A participant's stake held in custody."""
    participant: str
    amount: int
    funded_by: str
    state: StakeState
    deposited_utc: datetime
    released_utc: Optional[datetime] = None
    payout: int = 0

    def transition_to(self, target: StakeState) -> None:
        if target not in STAKE_TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid stake transition: {self.state.value} → {target.value} "
                f"for {self.participant}"
            )
        self.state = target


@dataclass(frozen=True)
class Transfer:
    """A payout leaving custody."""
    recipient: str
    amount: int
    timestamp_utc: datetime


class Custody:
    """Market custody of all wagers.

    Usage:
        custody = Custody()
        custody.deposit("0xabc...", 10**18, funded_by="0xabc...")
        custody.release("0xabc...", payout=15 * 10**17)
        custody.balance
    """

    def __init__(self) -> None:
        self._stakes: Dict[str, StakeRecord] = {}
        self._transfers: List[Transfer] = []
        self._total_deposited = 0
        self._total_paid_out = 0

    def deposit(
        self,
        participant: str,
        amount: int,
        funded_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> StakeRecord:
        """Take a participant's wager into custody."""
        if amount <= 0:
            raise ValueError("Stake amount must be positive")
        if participant in self._stakes:
            raise ValueError(f"Stake already deposited for {participant}")
        if now is None:
            now = datetime.now(timezone.utc)

        record = StakeRecord(
            participant=participant,
            amount=amount,
            funded_by=funded_by or participant,
            state=StakeState.LOCKED,
            deposited_utc=now,
        )
        self._stakes[participant] = record
        self._total_deposited += amount
        return record

    def can_release(self, participant: str, payout: int) -> None:
        """Raise ValueError if release(participant, payout) would fail."""
        record = self._get(participant)
        if record.state != StakeState.LOCKED:
            raise ValueError(
                f"Invalid stake transition: {record.state.value} → released "
                f"for {participant}"
            )
        if payout <= 0:
            raise ValueError("Payout must be positive")
        if payout > self.balance:
            raise ValueError(
                f"Payout ({payout}) exceeds custody balance ({self.balance})"
            )

    def release(
        self,
        participant: str,
        payout: int,
        now: Optional[datetime] = None,
    ) -> Transfer:
        """Pay a participant out of custody. Exactly once per stake.

        Transitions: LOCKED → RELEASED
        """
        self.can_release(participant, payout)
        record = self._get(participant)
        if now is None:
            now = datetime.now(timezone.utc)

        record.transition_to(StakeState.RELEASED)
        record.released_utc = now
        record.payout = payout
        self._total_paid_out += payout

        transfer = Transfer(recipient=participant, amount=payout, timestamp_utc=now)
        self._transfers.append(transfer)
        return transfer

    def get_stake(self, participant: str) -> StakeRecord:
        return self._get(participant)

    @property
    def balance(self) -> int:
        return self._total_deposited - self._total_paid_out

    @property
    def total_deposited(self) -> int:
        return self._total_deposited

    @property
    def total_paid_out(self) -> int:
        return self._total_paid_out

    @property
    def transfers(self) -> List[Transfer]:
        return list(self._transfers)

    def paid_to(self, participant: str) -> int:
        """Total transferred to a participant (0 if nothing yet)."""
        return sum(t.amount for t in self._transfers if t.recipient == participant)

    def _get(self, participant: str) -> StakeRecord:
        record = self._stakes.get(participant)
        if record is None:
            raise ValueError(f"No stake in custody for {participant}")
        return record
