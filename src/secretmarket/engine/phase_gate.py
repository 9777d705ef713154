"""Deadline phase gate — which operation is allowed right now.

Market lifecycle (derived purely from the clock and the four deadlines):
    COMMIT → AWAITING_RESOLUTION → REVEAL → AWAITING_PAYOUT → CLOSED

Boundaries are inclusive of the deadline instant: a phase ending at
deadline D still holds at now == D and is over at any now > D.

Fail-closed: every state-mutating operation calls require() before it
touches anything. There are no implicit transitions and no way to move
the clock backwards.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from secretmarket.errors import DeadlinePassed, TooEarly
from secretmarket.models.market import Deadlines


class Phase(str, enum.Enum):
    """Phase of the market at a given instant."""
    COMMIT = "commit"
    AWAITING_RESOLUTION = "awaiting_resolution"
    REVEAL = "reveal"
    AWAITING_PAYOUT = "awaiting_payout"
    CLOSED = "closed"


class Operation(str, enum.Enum):
    """State-mutating market operations."""
    COMMIT = "commit"
    RESOLVE = "resolve"
    REVEAL = "reveal"
    CLAIM = "claim"


_PHASE_ORDER: tuple[Phase, ...] = (
    Phase.COMMIT,
    Phase.AWAITING_RESOLUTION,
    Phase.REVEAL,
    Phase.AWAITING_PAYOUT,
    Phase.CLOSED,
)

# Each operation is valid in exactly one phase.
_OPERATION_PHASE: dict[Operation, Phase] = {
    Operation.COMMIT: Phase.COMMIT,
    Operation.RESOLVE: Phase.AWAITING_RESOLUTION,
    Operation.REVEAL: Phase.REVEAL,
    Operation.CLAIM: Phase.AWAITING_PAYOUT,
}

_LABELS: dict[Operation, str] = {
    Operation.COMMIT: "Commit",
    Operation.RESOLVE: "Event",
    Operation.REVEAL: "Reveal",
    Operation.CLAIM: "Payout",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PhaseGate:
    """Stateless mapping from wall-clock time to permitted operations.

    Usage:
        gate = PhaseGate(deadlines)
        gate.phase_at(now)                   # Phase.REVEAL
        gate.require(Operation.REVEAL, now)  # raises if not permitted
    """

    def __init__(self, deadlines: Deadlines) -> None:
        self._deadlines = deadlines

    @property
    def deadlines(self) -> Deadlines:
        return self._deadlines

    def phase_at(self, now: Optional[datetime] = None) -> Phase:
        """Return the phase in force at now (defaults to UTC now)."""
        if now is None:
            now = utc_now()
        d = self._deadlines
        if now <= d.commit:
            return Phase.COMMIT
        if now <= d.event:
            return Phase.AWAITING_RESOLUTION
        if now <= d.reveal:
            return Phase.REVEAL
        if now <= d.payout:
            return Phase.AWAITING_PAYOUT
        return Phase.CLOSED

    def permitted(self, now: Optional[datetime] = None) -> frozenset[Operation]:
        """Operations allowed at now."""
        phase = self.phase_at(now)
        return frozenset(op for op, p in _OPERATION_PHASE.items() if p == phase)

    def require(self, operation: Operation, now: Optional[datetime] = None) -> Phase:
        """Raise unless operation is permitted at now. Returns the current phase.

        Raises:
            TooEarly: the operation's phase has not started.
            DeadlinePassed: the operation's phase is over.
        """
        phase = self.phase_at(now)
        target = _OPERATION_PHASE[operation]
        current_idx = _PHASE_ORDER.index(phase)
        target_idx = _PHASE_ORDER.index(target)
        label = _LABELS[operation]
        if current_idx < target_idx:
            raise TooEarly(
                f"{label} window has not opened (phase: {phase.value})"
            )
        if current_idx > target_idx:
            raise DeadlinePassed(
                f"{label} deadline has passed (phase: {phase.value})"
            )
        return phase

    def deadline_for(self, operation: Operation) -> datetime:
        """The deadline that closes an operation's window."""
        d = self._deadlines
        return {
            Operation.COMMIT: d.commit,
            Operation.RESOLVE: d.event,
            Operation.REVEAL: d.reveal,
            Operation.CLAIM: d.payout,
        }[operation]
