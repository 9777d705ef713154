"""Outcome resolver — write-once latch over a single price reading.

occurred = price > benchmark (strict: a price equal to the benchmark
means the event did not occur).

Once latched the outcome never changes, and the feed is never queried
again, whatever it reports later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from secretmarket.oracle.price_feed import PriceFeed


@dataclass(frozen=True)
class Resolution:
    """The latched outcome and the reading it was derived from."""
    occurred: bool
    price: Decimal
    benchmark: Decimal
    resolved_utc: datetime


class OutcomeResolver:
    """Latches a boolean outcome from one price reading."""

    def __init__(self, benchmark_value: Decimal, price_feed: PriceFeed) -> None:
        self._benchmark = Decimal(benchmark_value)
        self._feed = price_feed
        self._resolution: Optional[Resolution] = None

    @property
    def benchmark(self) -> Decimal:
        return self._benchmark

    @property
    def resolution(self) -> Optional[Resolution]:
        return self._resolution

    @property
    def outcome(self) -> Optional[bool]:
        """None until resolved, then fixed forever."""
        if self._resolution is None:
            return None
        return self._resolution.occurred

    def observe(self, now: datetime) -> Resolution:
        """Query the feed and compute a resolution without latching it.

        Returns the latched resolution if there is one.
        """
        if self._resolution is not None:
            return self._resolution
        price = Decimal(self._feed.current_price())
        return Resolution(
            occurred=price > self._benchmark,
            price=price,
            benchmark=self._benchmark,
            resolved_utc=now,
        )

    def latch(self, resolution: Resolution) -> Resolution:
        """Latch a resolution. A second latch keeps the first value."""
        if self._resolution is None:
            self._resolution = resolution
        return self._resolution
