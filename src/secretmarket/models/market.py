"""Market data model — parameters, prediction records, and callers.

Amounts are integers in the smallest currency unit (wei). Prices and the
benchmark are Decimal. No floats anywhere near money or prices.

Invariants carried by these models:
- Every accepted wager equals MarketParams.fixed_wager
- PredictionCommit.choice moves UNSET → {YES, NO} exactly once
- PredictionCommit.claimed moves False → True at most once
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Union

from secretmarket.errors import (
    AlreadyClaimedError,
    AlreadyRevealedError,
    InvalidChoiceError,
    MarketConfigError,
)


class Choice(enum.IntEnum):
    """A participant's prediction. Numeric values are part of the hash encoding."""
    UNSET = 0
    YES = 1
    NO = 2

    @classmethod
    def parse(cls, value: Union[int, str, "Choice"]) -> "Choice":
        """Parse a revealable choice from an int or a 'yes'/'no' string.

        Raises InvalidChoiceError for anything other than YES or NO.
        """
        if isinstance(value, bool):
            raise InvalidChoiceError(f"Choice is not 'Yes' or 'No': {value!r}")
        if isinstance(value, str):
            key = value.strip().upper()
            if key in ("YES", "NO"):
                return cls[key]
            if key.isdigit():
                value = int(key)
            else:
                raise InvalidChoiceError(f"Choice is not 'Yes' or 'No': {value!r}")
        try:
            choice = cls(value)
        except ValueError as exc:
            raise InvalidChoiceError(f"Choice is not 'Yes' or 'No': {value!r}") from exc
        if choice == cls.UNSET:
            raise InvalidChoiceError("Choice is not 'Yes' or 'No': UNSET")
        return choice

    def opposite(self) -> "Choice":
        if self == Choice.YES:
            return Choice.NO
        if self == Choice.NO:
            return Choice.YES
        raise InvalidChoiceError("UNSET has no opposite side")


@dataclass(frozen=True)
class Deadlines:
    """The four market deadlines, all timezone-aware.

    Fixed ordering: commit < event < reveal < payout.
    """
    commit: datetime
    event: datetime
    reveal: datetime
    payout: datetime

    def __post_init__(self) -> None:
        for name in ("commit", "event", "reveal", "payout"):
            value = getattr(self, name)
            if value.tzinfo is None:
                raise MarketConfigError(f"{name} deadline must be timezone-aware")
        if not self.commit < self.event < self.reveal < self.payout:
            raise MarketConfigError(
                "Deadlines must satisfy commit < event < reveal < payout, got "
                f"commit={self.commit.isoformat()} event={self.event.isoformat()} "
                f"reveal={self.reveal.isoformat()} payout={self.payout.isoformat()}"
            )


@dataclass(frozen=True)
class MarketParams:
    """Immutable construction parameters of a single market."""
    benchmark_value: Decimal
    fixed_wager: int
    deadlines: Deadlines
    oracle_address: str = ""

    def __post_init__(self) -> None:
        if self.fixed_wager <= 0:
            raise MarketConfigError("Fixed wager must be positive")

    def describe(self) -> dict[str, Any]:
        """Wire form recorded when the market is created. Deadlines in UTC."""
        d = self.deadlines
        return {
            "benchmark_value": str(self.benchmark_value),
            "fixed_wager": self.fixed_wager,
            "deadlines": {
                name: getattr(d, name).astimezone(timezone.utc).isoformat()
                for name in ("commit", "event", "reveal", "payout")
            },
            "oracle_address": self.oracle_address,
        }

    def mismatches(self, recorded: dict[str, Any]) -> list[str]:
        """Names of the fields that differ from a describe() record."""
        d = self.deadlines
        found = []
        if Decimal(recorded["benchmark_value"]) != self.benchmark_value:
            found.append("benchmark_value")
        if int(recorded["fixed_wager"]) != self.fixed_wager:
            found.append("fixed_wager")
        for name in ("commit", "event", "reveal", "payout"):
            if datetime.fromisoformat(recorded["deadlines"][name]) != getattr(d, name):
                found.append(f"deadlines.{name}")
        if recorded["oracle_address"].lower() != self.oracle_address.lower():
            found.append("oracle_address")
        return found


@dataclass
class PredictionCommit:
    """One participant's prediction record.

    Created on commit, mutated once on reveal and once on claim,
    never deleted.
    """
    participant: str
    commitment: bytes
    wager: int
    choice: Choice = Choice.UNSET
    claimed: bool = False

    @property
    def revealed(self) -> bool:
        return self.choice != Choice.UNSET

    def reveal(self, choice: Choice) -> None:
        if self.revealed:
            raise AlreadyRevealedError(
                f"Prediction has already been revealed for {self.participant}"
            )
        if choice == Choice.UNSET:
            raise InvalidChoiceError("Cannot reveal UNSET")
        self.choice = choice

    def mark_claimed(self) -> None:
        if self.claimed:
            raise AlreadyClaimedError(f"Winnings already claimed by {self.participant}")
        self.claimed = True


# ---------------------------------------------------------------------------
# Callers: who is acting, and how they prove it
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Direct:
    """The participant submits the call themselves."""
    address: str


@dataclass(frozen=True)
class Relayed:
    """A relayer submits on the participant's behalf, authorised by signature."""
    relayer: str
    participant: str
    signature: Union[bytes, str]


Caller = Union[Direct, Relayed]


def submitter_of(caller: Caller) -> str:
    """Address that physically submitted the call (and funds the wager)."""
    if isinstance(caller, Relayed):
        return caller.relayer
    return caller.address
