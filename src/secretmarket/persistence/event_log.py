"""Hash-chained event log — the market's notifications and audit trail.

Every successful operation writes one or more records here before any
in-memory state changes. Records are never edited or removed. Each one
carries its position in the log and the hash of the record before it, so
a third party holding the JSONL file can detect edited, dropped, or
reordered lines, not just edited ones.

    record[n].prev_hash == record[n-1].event_hash
    record[0].prev_hash == GENESIS_HASH

The log is also the market's source of truth: replaying it into a fresh
market rebuilds the ledger, custody, and latched outcome.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional
from uuid import uuid4


logger = logging.getLogger(__name__)

GENESIS_HASH = "sha256:" + "0" * 64


class EventKind(str, enum.Enum):
    """Notifications a market emits."""
    MARKET_CREATED = "market_created"
    COMMIT = "commit"
    REVEAL = "reveal"
    EVENT_HAS_OCCURRED = "event_has_occurred"
    PAYOUT = "payout"
    WINNINGS_CLAIMED = "winnings_claimed"


def _digest(body: dict[str, Any]) -> str:
    canonical = json.dumps(body, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """One immutable log entry. event_hash covers every other field."""
    event_id: str
    sequence: int
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    prev_hash: str
    event_hash: str

    @staticmethod
    def create(
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
        sequence: int = 0,
        prev_hash: str = GENESIS_HASH,
        event_id: Optional[str] = None,
    ) -> EventRecord:
        ts = timestamp_utc or datetime.now(timezone.utc)
        body = {
            "event_id": event_id or f"evt_{uuid4().hex}",
            "sequence": sequence,
            "event_kind": event_kind.value,
            "timestamp_utc": ts.astimezone(timezone.utc).isoformat(),
            "actor_id": actor_id,
            "payload": payload,
            "prev_hash": prev_hash,
        }
        return EventRecord.from_dict({**body, "event_hash": _digest(body)})

    @staticmethod
    def from_dict(data: dict[str, Any]) -> EventRecord:
        return EventRecord(
            event_id=data["event_id"],
            sequence=int(data["sequence"]),
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            actor_id=data["actor_id"],
            payload=data["payload"],
            prev_hash=data["prev_hash"],
            event_hash=data["event_hash"],
        )

    def body(self) -> dict[str, Any]:
        """Every hashed field, in wire form."""
        return {
            "event_id": self.event_id,
            "sequence": self.sequence,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "prev_hash": self.prev_hash,
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.body(), "event_hash": self.event_hash}

    def hash_is_valid(self) -> bool:
        return _digest(self.body()) == self.event_hash

    @property
    def timestamp(self) -> datetime:
        return datetime.fromisoformat(self.timestamp_utc)


Listener = Callable[[EventRecord], None]


class EventLog:
    """Append-only, hash-chained event log with optional JSONL persistence.

    Usage:
        log = EventLog(storage_path=Path("data/events.jsonl"))
        record = log.record(EventKind.COMMIT, address, {...}, now)
        log.subscribe(print)
        log.notify(record)
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: list[EventRecord] = []
        self._ids: set[str] = set()
        self._listeners: list[Listener] = []
        self._storage_path = storage_path

        if storage_path is not None and storage_path.exists():
            for line_num, record in self._read(storage_path):
                self._check_next(record, where=f"line {line_num}")
                self._records.append(record)
                self._ids.add(record.event_id)

    @property
    def head_hash(self) -> str:
        """Hash the next record must chain to."""
        return self._records[-1].event_hash if self._records else GENESIS_HASH

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._records[-1] if self._records else None

    def record(
        self,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Build the next record in the chain and append it."""
        event = EventRecord.create(
            event_kind,
            actor_id,
            payload,
            timestamp_utc=timestamp_utc,
            sequence=self.count,
            prev_hash=self.head_hash,
        )
        self.append(event)
        return event

    def append(self, event: EventRecord) -> None:
        """Append an already-chained record (file first, then memory).

        Raises ValueError on a duplicate id, a bad hash, or a record that
        does not extend the current head.
        """
        self._check_next(event, where="append")
        if self._storage_path is not None:
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")
        self._records.append(event)
        self._ids.add(event.event_id)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def notify(self, event: EventRecord) -> None:
        """Deliver a logged record to every subscriber.

        The record is already durable when this runs, so a failing listener
        is logged and skipped and the remaining listeners still see it.
        """
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Listener %r failed on event %s (%s)",
                    listener, event.event_id, event.event_kind.value,
                )

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        if kind is None:
            return list(self._records)
        return [e for e in self._records if e.event_kind == kind]

    def _check_next(self, event: EventRecord, where: str) -> None:
        if event.event_id in self._ids:
            raise ValueError(f"Duplicate event ID ({where}): {event.event_id}")
        if not event.hash_is_valid():
            raise ValueError(
                f"Integrity check failed ({where}): event {event.event_id} "
                f"does not match its hash {event.event_hash}"
            )
        if event.sequence != self.count or event.prev_hash != self.head_hash:
            raise ValueError(
                f"Chain break ({where}): event {event.event_id} has sequence "
                f"{event.sequence} and prev_hash {event.prev_hash}, expected "
                f"{self.count} and {self.head_hash}"
            )

    @staticmethod
    def _read(path: Path) -> Iterator[tuple[int, EventRecord]]:
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if line:
                    yield line_num, EventRecord.from_dict(json.loads(line))
