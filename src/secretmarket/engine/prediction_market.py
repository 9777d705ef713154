"""Prediction market — the commit/resolve/reveal/claim state machine.

One instance resolves exactly one binary event:

    commit_choice  → (commit deadline) → resolve_event → (event deadline)
    → reveal_choice → (reveal deadline) → claim_winnings → (payout deadline)

Every operation follows the same shape:
1. Validate everything (phase gate, inputs, caller, ledger state).
   Nothing is mutated until all checks pass.
2. Build the event records describing the transition.
3. Append them to the event log, then apply them to in-memory state.
   Applying a validated record cannot fail.
4. Deliver them to subscribers.

Because state is only ever changed by applying event records, building a
market over an existing log replays it and reconstructs the exact state
(ledger, custody, latched outcome) without re-querying the oracle.

The first record of every log is MARKET_CREATED, carrying the parameters
the market was opened with. It is written together with the first accepted
operation. Replaying a log under different parameters raises
MarketConfigError before any state is rebuilt.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Tuple, Union

from secretmarket.compensation.escrow import Custody
from secretmarket.compensation.payout import PayoutEngine, PotSummary
from secretmarket.crypto.commitment import (
    ZERO_HASH,
    BytesLike,
    commit_payload_hash,
    compute_commitment,
    normalize_address,
    reveal_payload_hash,
    to_bytes32,
)
from secretmarket.crypto.signature import resolve_actor
from secretmarket.engine.phase_gate import Operation, Phase, PhaseGate, utc_now
from secretmarket.errors import (
    AlreadyClaimedError,
    AlreadyRevealedError,
    CommitmentMismatchError,
    DuplicateCommitError,
    InvalidCommitmentError,
    MarketConfigError,
    TooEarly,
    WagerMismatchError,
)
from secretmarket.market.ledger import PredictionLedger
from secretmarket.models.market import (
    Caller,
    Choice,
    MarketParams,
    PredictionCommit,
    submitter_of,
)
from secretmarket.oracle.price_feed import PriceFeed
from secretmarket.oracle.resolver import OutcomeResolver, Resolution
from secretmarket.persistence.event_log import EventKind, EventLog, EventRecord


# (kind, actor, payload) of an event not yet written
_Pending = Tuple[EventKind, str, dict[str, Any]]


class PredictionMarket:
    """A single secret prediction market.

    Usage:
        market = PredictionMarket(params, StaticPriceFeed(6000))
        market.commit_choice(Direct(alice), commitment, params.fixed_wager, now=t0)
        market.resolve_event(now=t1)
        market.reveal_choice(Direct(alice), Choice.YES, blinding, now=t2)
        payout = market.claim_winnings(alice, now=t3)
    """

    def __init__(
        self,
        params: MarketParams,
        price_feed: PriceFeed,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._params = params
        self._gate = PhaseGate(params.deadlines)
        self._ledger = PredictionLedger()
        self._custody = Custody()
        self._resolver = OutcomeResolver(params.benchmark_value, price_feed)
        self._event_log = event_log if event_log is not None else EventLog()

        events = self._event_log.events()
        if events and events[0].event_kind != EventKind.MARKET_CREATED:
            raise MarketConfigError(
                f"Event log does not start with {EventKind.MARKET_CREATED.value}: "
                f"found {events[0].event_kind.value}"
            )
        for event in events:
            self._apply(event)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def params(self) -> MarketParams:
        return self._params

    @property
    def gate(self) -> PhaseGate:
        return self._gate

    @property
    def ledger(self) -> PredictionLedger:
        return self._ledger

    @property
    def custody(self) -> Custody:
        return self._custody

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def outcome_has_occurred(self) -> Optional[bool]:
        """None until resolved, then fixed forever."""
        return self._resolver.outcome

    @property
    def resolution(self) -> Optional[Resolution]:
        return self._resolver.resolution

    def phase(self, now: Optional[datetime] = None) -> Phase:
        return self._gate.phase_at(_check_now(now))

    def prediction(self, participant: str) -> Optional[PredictionCommit]:
        return self._ledger.get(normalize_address(participant))

    def summary(self) -> Optional[PotSummary]:
        """Settlement figures, or None before resolution."""
        outcome = self._resolver.outcome
        if outcome is None:
            return None
        return PayoutEngine.summarize(self._ledger, outcome)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def commit_choice(
        self,
        caller: Caller,
        commitment: BytesLike,
        wager: int,
        now: Optional[datetime] = None,
    ) -> PredictionCommit:
        """Commit a hidden prediction backed by the fixed wager.

        Raises:
            DeadlinePassed: after the commit deadline.
            InvalidCommitmentError: commitment is not a non-zero 32-byte hash.
            WagerMismatchError: wager differs from the fixed wager.
            AuthorizationError: relayed without the participant's signature.
            DuplicateCommitError: the participant already committed.
        """
        now = _check_now(now)
        self._gate.require(Operation.COMMIT, now)
        digest = _check_commitment(commitment)
        if wager != self._params.fixed_wager:
            raise WagerMismatchError(
                f"Player's wager does not match fixed wager: "
                f"got {wager}, expected {self._params.fixed_wager}"
            )
        participant = resolve_actor(caller, commit_payload_hash(digest))
        if self._ledger.exists(participant):
            raise DuplicateCommitError(
                f"Player has already committed their choice: {participant}"
            )

        self._commit(now, (
            EventKind.COMMIT,
            participant,
            {
                "participant": participant,
                "wager": wager,
                "commitment": "0x" + digest.hex(),
                "funded_by": normalize_address(submitter_of(caller)),
            },
        ))
        return self._ledger.get(participant)

    def resolve_event(self, now: Optional[datetime] = None) -> Resolution:
        """Query the price feed once and latch the outcome.

        Anyone may call this any number of times; only the first call
        inside the resolution window has an effect. Later calls return
        the latched resolution without touching the feed.

        Raises:
            TooEarly: commit window still open.
            DeadlinePassed: event deadline passed with nothing latched.
        """
        now = _check_now(now)
        if self._gate.phase_at(now) == Phase.COMMIT:
            raise TooEarly("Event window has not opened (phase: commit)")
        latched = self._resolver.resolution
        if latched is not None:
            return latched
        self._gate.require(Operation.RESOLVE, now)

        observed = self._resolver.observe(now)
        self._commit(now, (
            EventKind.EVENT_HAS_OCCURRED,
            "market",
            {
                "occurred": observed.occurred,
                "price": str(observed.price),
                "benchmark": str(observed.benchmark),
                "context": {"resolved_utc": now.isoformat()},
            },
        ))
        return self._resolver.resolution

    def reveal_choice(
        self,
        caller: Caller,
        choice: Union[Choice, int, str],
        blinding_factor: BytesLike,
        now: Optional[datetime] = None,
    ) -> PredictionCommit:
        """Disclose a committed prediction.

        Raises:
            InvalidChoiceError: choice is not YES or NO.
            TooEarly / DeadlinePassed: outside the reveal window.
            AuthorizationError: relayed without the participant's signature.
            AlreadyRevealedError: the prediction was already revealed.
            CommitmentMismatchError: preimage does not hash to the commitment.
        """
        parsed = Choice.parse(choice)
        blinding = to_bytes32(blinding_factor, "blinding factor")
        now = _check_now(now)
        self._gate.require(Operation.REVEAL, now)
        participant = resolve_actor(caller, reveal_payload_hash(parsed, blinding))

        existing = self._ledger.get(participant)
        if existing is None:
            raise CommitmentMismatchError(
                f"Hash does not match commitment: nothing committed by {participant}"
            )
        if existing.revealed:
            raise AlreadyRevealedError(
                f"Prediction has already been revealed for {participant}"
            )
        if compute_commitment(parsed, blinding, participant) != existing.commitment:
            raise CommitmentMismatchError(
                f"Hash does not match commitment for {participant}"
            )

        self._commit(now, (
            EventKind.REVEAL,
            participant,
            {"participant": participant, "choice": int(parsed)},
        ))
        return existing

    def claim_winnings(self, participant: str, now: Optional[datetime] = None) -> int:
        """Pay a winner their wager plus an equal share of the losing pot.

        Anyone may trigger the claim; the payout always goes to the
        participant who owns the record. Eligibility is checked before
        the phase gate, so a loser or non-revealer is told so in every
        phase.

        Returns:
            The amount transferred.

        Raises:
            InvalidClaimError: not a revealed winner, or event unresolved.
            AlreadyClaimedError: already paid.
            TooEarly / DeadlinePassed: outside the payout window.
        """
        now = _check_now(now)
        participant = normalize_address(participant)
        outcome = self._resolver.outcome
        record = PayoutEngine.check_eligible(self._ledger.get(participant), outcome)
        if record.claimed:
            raise AlreadyClaimedError(f"Winnings already claimed by {participant}")
        self._gate.require(Operation.CLAIM, now)

        summary = PayoutEngine.summarize(self._ledger, outcome)
        payout = PayoutEngine.payout_for(record, summary)
        self._custody.can_release(participant, payout)

        self._commit(
            now,
            (
                EventKind.PAYOUT,
                participant,
                {"participant": participant, "amount": payout},
            ),
            (
                EventKind.WINNINGS_CLAIMED,
                participant,
                {"participant": participant, "choice": int(record.choice), "amount": payout},
            ),
        )
        return payout

    # ------------------------------------------------------------------
    # Event sourcing
    # ------------------------------------------------------------------

    def _commit(self, now: datetime, *pending: _Pending) -> None:
        """Log each pending event, apply it, then notify subscribers."""
        if self._event_log.count == 0:
            pending = (
                (EventKind.MARKET_CREATED, "market", self._params.describe()),
            ) + pending
        written = []
        for kind, actor_id, payload in pending:
            record = self._event_log.record(kind, actor_id, payload, timestamp_utc=now)
            self._apply(record)
            written.append(record)
        for record in written:
            self._event_log.notify(record)

    def _apply(self, event: EventRecord) -> None:
        """Apply one validated event to in-memory state."""
        payload = event.payload
        kind = event.event_kind
        if kind == EventKind.MARKET_CREATED:
            changed = self._params.mismatches(payload)
            if changed:
                raise MarketConfigError(
                    "Market parameters differ from those the event log was "
                    f"created with: {', '.join(changed)}"
                )
        elif kind == EventKind.COMMIT:
            participant = payload["participant"]
            commitment = to_bytes32(payload["commitment"], "commitment")
            self._ledger.add(participant, commitment, int(payload["wager"]))
            self._custody.deposit(
                participant,
                int(payload["wager"]),
                funded_by=payload.get("funded_by"),
                now=event.timestamp,
            )
        elif kind == EventKind.REVEAL:
            self._ledger.record_reveal(payload["participant"], Choice(payload["choice"]))
        elif kind == EventKind.EVENT_HAS_OCCURRED:
            self._resolver.latch(
                Resolution(
                    occurred=bool(payload["occurred"]),
                    price=Decimal(payload["price"]),
                    benchmark=Decimal(payload["benchmark"]),
                    resolved_utc=event.timestamp,
                )
            )
        elif kind == EventKind.PAYOUT:
            participant = payload["participant"]
            self._ledger.record_claim(participant)
            self._custody.release(participant, int(payload["amount"]), now=event.timestamp)
        elif kind == EventKind.WINNINGS_CLAIMED:
            pass  # notification only; funds moved by PAYOUT


def _check_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now


def _check_commitment(commitment: BytesLike) -> bytes:
    try:
        digest = to_bytes32(commitment, "commitment")
    except ValueError as exc:
        raise InvalidCommitmentError(str(exc)) from exc
    if digest == ZERO_HASH:
        raise InvalidCommitmentError("Commitment must not be empty")
    return digest
