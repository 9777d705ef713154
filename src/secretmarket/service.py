"""Market service — facade over a persisted prediction market.

This is the primary interface for programmatic and CLI access. It:
- builds the market from the parameter file and environment
- keeps the event log on disk so every call sees the state left by the
  previous one (the market replays the log on construction)
- turns caller-supplied addresses and signatures into Caller variants
- reports every operation as a typed ServiceResult

Rejected operations are reported, never dropped: a MarketError (or a
malformed input) becomes a failed result carrying the error message, and
the market state is left exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from secretmarket.config import (
    DEFAULT_CONFIG,
    DEFAULT_DATA,
    build_price_feed,
    load_json,
    parse_market_params,
)
from secretmarket.engine.prediction_market import PredictionMarket
from secretmarket.errors import AuthorizationError, MarketError
from secretmarket.models.market import Caller, Choice, Direct, Relayed
from secretmarket.persistence.event_log import EventLog


logger = logging.getLogger(__name__)

EVENTS_FILE = "events.jsonl"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class MarketService:
    """Facade over a single market.

    Usage:
        service = MarketService.from_config(config_path, data_dir)
        service.commit(sender, commitment_hex, wager)
        service.resolve()
        service.reveal(sender, "yes", blinding_hex)
        service.claim(sender)
    """

    def __init__(self, market: PredictionMarket) -> None:
        self._market = market

    @classmethod
    def from_config(
        cls,
        config_path: Path = DEFAULT_CONFIG,
        data_dir: Path = DEFAULT_DATA,
        environ: Optional[Mapping[str, str]] = None,
        w3: Any = None,
    ) -> MarketService:
        data = load_json(config_path)
        params = parse_market_params(data)
        feed = build_price_feed(data.get("oracle", {}), environ=environ, w3=w3)
        event_log = EventLog(storage_path=data_dir / EVENTS_FILE)
        market = PredictionMarket(params, feed, event_log=event_log)
        logger.debug(
            "Loaded market from %s with %d events", config_path, event_log.count
        )
        return cls(market)

    @property
    def market(self) -> PredictionMarket:
        return self._market

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, now: Optional[datetime] = None) -> dict[str, Any]:
        market = self._market
        params = market.params
        d = params.deadlines
        status: dict[str, Any] = {
            "phase": market.phase(now).value,
            "benchmark_value": str(params.benchmark_value),
            "fixed_wager": params.fixed_wager,
            "oracle_address": params.oracle_address,
            "deadlines": {
                "commit": d.commit.isoformat(),
                "event": d.event.isoformat(),
                "reveal": d.reveal.isoformat(),
                "payout": d.payout.isoformat(),
            },
            "participants": len(market.ledger),
            "revealed": {
                "yes": market.ledger.tally(Choice.YES).count,
                "no": market.ledger.tally(Choice.NO).count,
            },
            "outcome_has_occurred": market.outcome_has_occurred,
            "custody_balance": market.custody.balance,
            "total_paid_out": market.custody.total_paid_out,
            "events": market.event_log.count,
            "log_head": market.event_log.head_hash,
        }
        summary = market.summary()
        if summary is not None:
            status["settlement"] = {
                "winning_side": summary.winning_side.name.lower(),
                "num_winning_reveals": summary.num_winning_reveals,
                "losing_pot": summary.losing_pot,
                "share_per_winner": summary.share_per_winner,
                "unrevealed_stake": summary.unrevealed_stake,
            }
        return status

    def prediction(self, participant: str) -> ServiceResult:
        def _run() -> dict[str, Any]:
            record = self._market.prediction(participant)
            if record is None:
                return {"participant": participant, "committed": False}
            return {
                "participant": record.participant,
                "committed": True,
                "commitment": "0x" + record.commitment.hex(),
                "wager": record.wager,
                "choice": record.choice.name.lower(),
                "claimed": record.claimed,
            }
        return self._run("prediction", _run)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def commit(
        self,
        sender: str,
        commitment: str,
        wager: int,
        on_behalf_of: Optional[str] = None,
        signature: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        def _run() -> dict[str, Any]:
            caller = _make_caller(sender, on_behalf_of, signature)
            record = self._market.commit_choice(caller, commitment, wager, now=now)
            return {"participant": record.participant, "wager": record.wager}
        return self._run("commit", _run)

    def reveal(
        self,
        sender: str,
        choice: Union[Choice, int, str],
        blinding_factor: str,
        on_behalf_of: Optional[str] = None,
        signature: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        def _run() -> dict[str, Any]:
            caller = _make_caller(sender, on_behalf_of, signature)
            record = self._market.reveal_choice(caller, choice, blinding_factor, now=now)
            return {"participant": record.participant, "choice": record.choice.name.lower()}
        return self._run("reveal", _run)

    def resolve(self, now: Optional[datetime] = None) -> ServiceResult:
        def _run() -> dict[str, Any]:
            resolution = self._market.resolve_event(now=now)
            return {
                "occurred": resolution.occurred,
                "price": str(resolution.price),
                "benchmark": str(resolution.benchmark),
                "resolved_utc": resolution.resolved_utc.isoformat(),
            }
        return self._run("resolve", _run)

    def claim(self, participant: str, now: Optional[datetime] = None) -> ServiceResult:
        def _run() -> dict[str, Any]:
            payout = self._market.claim_winnings(participant, now=now)
            return {"participant": participant, "payout": payout}
        return self._run("claim", _run)

    def _run(self, operation: str, fn: Callable[[], dict[str, Any]]) -> ServiceResult:
        try:
            data = fn()
        except (MarketError, ValueError) as exc:
            logger.warning("%s rejected: %s: %s", operation, type(exc).__name__, exc)
            return ServiceResult(success=False, errors=[f"{type(exc).__name__}: {exc}"])
        logger.info("%s succeeded: %s", operation, data)
        return ServiceResult(success=True, data=data)


def _make_caller(
    sender: str,
    on_behalf_of: Optional[str],
    signature: Optional[str],
) -> Caller:
    if on_behalf_of is None:
        return Direct(sender)
    if not signature:
        raise AuthorizationError(
            f"Relayed call for {on_behalf_of} requires the participant's signature"
        )
    return Relayed(relayer=sender, participant=on_behalf_of, signature=signature)
