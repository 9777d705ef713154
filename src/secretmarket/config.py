"""Market configuration — parameter file plus environment.

Parameters that define the market live in a JSON file (default
config/market_params.json):

    {
      "benchmark_value": "5000",
      "fixed_wager": {"amount": "1.0", "unit": "ether"},
      "deadlines": {
        "commit": "2026-11-01T00:00:00Z",
        "event":  "2026-11-02T00:00:00Z",
        "reveal": "2026-11-03T00:00:00Z",
        "payout": "2026-11-04T00:00:00Z"
      },
      "oracle": {"kind": "static", "price": "6000"}
    }

Secrets and endpoints never go in that file. They come from the
environment, optionally populated from a .env file at the project root.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from web3 import Web3

from secretmarket.errors import MarketConfigError
from secretmarket.models.market import Deadlines, MarketParams
from secretmarket.oracle.price_feed import ChainlinkPriceFeed, PriceFeed, StaticPriceFeed


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config" / "market_params.json"
DEFAULT_DATA = ROOT / "data"

RPC_URL_ENV = "SECRETMARKET_RPC_URL"
PRIVATE_KEY_ENV = "SECRETMARKET_PRIVATE_KEY"


def load_environment(root: Path = ROOT) -> None:
    """Populate os.environ from <root>/.env without overriding real env vars."""
    load_dotenv(root / ".env", override=False)


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. A trailing 'Z' means UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise MarketConfigError(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        raise MarketConfigError(f"Timestamp must carry a timezone: {value!r}")
    return parsed


def parse_wager(spec: Any) -> int:
    """Wager in wei from an int (wei) or {"amount": "...", "unit": "ether"}."""
    if isinstance(spec, int) and not isinstance(spec, bool):
        return spec
    if isinstance(spec, Mapping):
        try:
            amount = Decimal(str(spec["amount"]))
        except (KeyError, InvalidOperation) as exc:
            raise MarketConfigError(f"Invalid fixed_wager: {spec!r}") from exc
        unit = spec.get("unit", "wei")
        try:
            return int(Web3.to_wei(amount, unit))
        except ValueError as exc:
            raise MarketConfigError(f"Invalid fixed_wager: {spec!r}") from exc
    raise MarketConfigError(f"Invalid fixed_wager: {spec!r}")


def parse_market_params(data: Mapping[str, Any]) -> MarketParams:
    """Build MarketParams from a parsed parameter document."""
    try:
        benchmark = Decimal(str(data["benchmark_value"]))
        deadlines_cfg = data["deadlines"]
        deadlines = Deadlines(
            commit=parse_timestamp(deadlines_cfg["commit"]),
            event=parse_timestamp(deadlines_cfg["event"]),
            reveal=parse_timestamp(deadlines_cfg["reveal"]),
            payout=parse_timestamp(deadlines_cfg["payout"]),
        )
        wager = parse_wager(data["fixed_wager"])
    except KeyError as exc:
        raise MarketConfigError(f"Missing market parameter: {exc.args[0]}") from exc
    except InvalidOperation as exc:
        raise MarketConfigError(
            f"Invalid benchmark_value: {data.get('benchmark_value')!r}"
        ) from exc

    oracle = data.get("oracle", {})
    return MarketParams(
        benchmark_value=benchmark,
        fixed_wager=wager,
        deadlines=deadlines,
        oracle_address=oracle.get("address", ""),
    )


def load_market_params(path: Path = DEFAULT_CONFIG) -> MarketParams:
    return parse_market_params(load_json(path))


def build_price_feed(
    oracle: Mapping[str, Any],
    environ: Optional[Mapping[str, str]] = None,
    w3: Any = None,
) -> PriceFeed:
    """Construct the price feed described by the "oracle" section."""
    if environ is None:
        environ = os.environ
    kind = oracle.get("kind", "static")
    if kind == "static":
        return StaticPriceFeed(Decimal(str(oracle.get("price", "0"))))
    if kind == "chainlink":
        address = oracle.get("address")
        if not address:
            raise MarketConfigError("chainlink oracle requires an address")
        rpc_url = environ.get(oracle.get("rpc_url_env", RPC_URL_ENV))
        if w3 is None and not rpc_url:
            raise MarketConfigError(
                f"Missing {oracle.get('rpc_url_env', RPC_URL_ENV)} for chainlink oracle"
            )
        return ChainlinkPriceFeed(address, rpc_url=rpc_url, w3=w3)
    raise MarketConfigError(f"Unknown oracle kind: {kind!r}")
