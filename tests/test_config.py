"""Tests for market configuration loading."""

import json
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

from secretmarket.config import (
    DEFAULT_CONFIG,
    RPC_URL_ENV,
    build_price_feed,
    load_market_params,
    parse_market_params,
    parse_timestamp,
    parse_wager,
)
from secretmarket.errors import MarketConfigError
from secretmarket.oracle.price_feed import ChainlinkPriceFeed, StaticPriceFeed


FEED_ADDRESS = "0x5f4ec3df9cbd43714fe2740f5e3616155c5b8419"


def _document(**overrides) -> dict:
    doc = {
        "benchmark_value": "5000",
        "fixed_wager": {"amount": "1.0", "unit": "ether"},
        "deadlines": {
            "commit": "2026-11-01T00:00:00Z",
            "event": "2026-11-02T00:00:00Z",
            "reveal": "2026-11-03T00:00:00Z",
            "payout": "2026-11-04T00:00:00Z",
        },
        "oracle": {"kind": "static", "price": "6000"},
    }
    doc.update(overrides)
    return doc


class TestTimestamps:
    def test_z_suffix_is_utc(self) -> None:
        assert parse_timestamp("2026-11-01T00:00:00Z") == datetime(
            2026, 11, 1, tzinfo=timezone.utc
        )

    def test_offset_kept(self) -> None:
        parsed = parse_timestamp("2026-11-01T02:00:00+02:00")
        assert parsed == datetime(2026, 11, 1, tzinfo=timezone.utc)

    def test_naive_rejected(self) -> None:
        with pytest.raises(MarketConfigError, match="timezone"):
            parse_timestamp("2026-11-01T00:00:00")

    def test_garbage_rejected(self) -> None:
        with pytest.raises(MarketConfigError, match="Invalid timestamp"):
            parse_timestamp("next tuesday")


class TestWager:
    def test_ether_units(self) -> None:
        assert parse_wager({"amount": "1.0", "unit": "ether"}) == 10**18

    def test_gwei_units(self) -> None:
        assert parse_wager({"amount": "2", "unit": "gwei"}) == 2 * 10**9

    def test_plain_wei(self) -> None:
        assert parse_wager(12345) == 12345

    @pytest.mark.parametrize("spec", ["1 ether", True, {"unit": "ether"}, {"amount": "x"}])
    def test_invalid(self, spec) -> None:
        with pytest.raises(MarketConfigError):
            parse_wager(spec)


class TestMarketParams:
    def test_parses_document(self) -> None:
        params = parse_market_params(_document())
        assert params.benchmark_value == Decimal("5000")
        assert params.fixed_wager == 10**18
        assert params.deadlines.commit == datetime(2026, 11, 1, tzinfo=timezone.utc)
        assert params.deadlines.payout == datetime(2026, 11, 4, tzinfo=timezone.utc)

    def test_missing_key(self) -> None:
        doc = _document()
        del doc["benchmark_value"]
        with pytest.raises(MarketConfigError, match="Missing market parameter"):
            parse_market_params(doc)

    def test_bad_benchmark(self) -> None:
        with pytest.raises(MarketConfigError, match="benchmark_value"):
            parse_market_params(_document(benchmark_value="lots"))

    def test_misordered_deadlines(self) -> None:
        doc = _document()
        doc["deadlines"]["reveal"] = doc["deadlines"]["event"]
        with pytest.raises(MarketConfigError):
            parse_market_params(doc)

    def test_zero_wager_rejected(self) -> None:
        with pytest.raises(MarketConfigError, match="positive"):
            parse_market_params(_document(fixed_wager=0))

    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "params.json"
        path.write_text(json.dumps(_document()), encoding="utf-8")
        assert load_market_params(path).fixed_wager == 10**18

    def test_shipped_parameters_load(self) -> None:
        assert load_market_params(DEFAULT_CONFIG).fixed_wager > 0


class TestPriceFeed:
    def test_static(self) -> None:
        feed = build_price_feed({"kind": "static", "price": "6000"}, environ={})
        assert isinstance(feed, StaticPriceFeed)
        assert feed.current_price() == Decimal("6000")

    def test_unknown_kind(self) -> None:
        with pytest.raises(MarketConfigError, match="Unknown oracle kind"):
            build_price_feed({"kind": "carrier-pigeon"}, environ={})

    def test_chainlink_needs_address(self) -> None:
        with pytest.raises(MarketConfigError, match="address"):
            build_price_feed({"kind": "chainlink"}, environ={RPC_URL_ENV: "http://localhost:8545"})

    def test_chainlink_needs_endpoint(self) -> None:
        with pytest.raises(MarketConfigError, match=RPC_URL_ENV):
            build_price_feed({"kind": "chainlink", "address": FEED_ADDRESS}, environ={})

    def test_chainlink_with_shared_provider(self) -> None:
        w3 = SimpleNamespace(
            eth=SimpleNamespace(contract=lambda address, abi: SimpleNamespace(functions=None))
        )
        feed = build_price_feed(
            {"kind": "chainlink", "address": FEED_ADDRESS}, environ={}, w3=w3
        )
        assert isinstance(feed, ChainlinkPriceFeed)

    def test_chainlink_from_environment(self) -> None:
        feed = build_price_feed(
            {"kind": "chainlink", "address": FEED_ADDRESS},
            environ={RPC_URL_ENV: "http://localhost:8545"},
        )
        assert isinstance(feed, ChainlinkPriceFeed)
