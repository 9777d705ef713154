"""Prediction ledger — one record per participant address.

The ledger is an explicit mapping: an address either has a record or it
does not, and "no record" is never confused with "record with UNSET
choice". Running tallies per revealed side are kept so the payout engine
never has to rescan the whole ledger.

Pure storage: validation of phase, wager, and signatures happens in the
market before anything here is called.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from secretmarket.errors import DuplicateCommitError
from secretmarket.models.market import Choice, PredictionCommit


@dataclass(frozen=True)
class SideTally:
    """Revealed count and stake for one side."""
    count: int = 0
    pot: int = 0


class PredictionLedger:
    """Sparse per-address ledger of prediction commits.

    Usage:
        ledger = PredictionLedger()
        ledger.add(address, commitment, wager)
        ledger.record_reveal(address, Choice.YES)
        ledger.tally(Choice.YES)  # SideTally(count=1, pot=wager)
    """

    def __init__(self) -> None:
        self._records: Dict[str, PredictionCommit] = {}
        self._tallies: Dict[Choice, SideTally] = {
            Choice.YES: SideTally(),
            Choice.NO: SideTally(),
        }
        self._total_committed = 0

    def exists(self, participant: str) -> bool:
        return participant in self._records

    def get(self, participant: str) -> Optional[PredictionCommit]:
        return self._records.get(participant)

    def add(self, participant: str, commitment: bytes, wager: int) -> PredictionCommit:
        """Create the participant's record. Raises DuplicateCommitError if present."""
        if participant in self._records:
            raise DuplicateCommitError(
                f"Player has already committed their choice: {participant}"
            )
        record = PredictionCommit(
            participant=participant,
            commitment=commitment,
            wager=wager,
        )
        self._records[participant] = record
        self._total_committed += wager
        return record

    def record_reveal(self, participant: str, choice: Choice) -> PredictionCommit:
        """Set the revealed choice and update that side's tally."""
        record = self._records[participant]
        record.reveal(choice)
        tally = self._tallies[choice]
        self._tallies[choice] = SideTally(
            count=tally.count + 1,
            pot=tally.pot + record.wager,
        )
        return record

    def record_claim(self, participant: str) -> PredictionCommit:
        record = self._records[participant]
        record.mark_claimed()
        return record

    def tally(self, choice: Choice) -> SideTally:
        return self._tallies[choice]

    @property
    def total_committed(self) -> int:
        return self._total_committed

    @property
    def unrevealed_stake(self) -> int:
        """Stake of participants who committed but never revealed."""
        revealed = self._tallies[Choice.YES].pot + self._tallies[Choice.NO].pot
        return self._total_committed - revealed

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PredictionCommit]:
        return iter(self._records.values())
