#!/usr/bin/env python3
"""Market invariant checks against the parameter file."""

import json
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PARAMS_PATH = ROOT / "config" / "market_params.json"

DEADLINE_ORDER = ("commit", "event", "reveal", "payout")
ORACLE_KINDS = ("static", "chainlink")


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def parse_deadline(value: str):
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError("missing timezone")
    return parsed


def check_deadlines(deadlines: dict, errors: list[str]) -> None:
    """Deadlines must all parse and satisfy commit < event < reveal < payout."""
    parsed = {}
    for name in DEADLINE_ORDER:
        raw = deadlines.get(name)
        if raw is None:
            errors.append(f"deadlines.{name} is missing")
            continue
        try:
            parsed[name] = parse_deadline(raw)
        except (ValueError, AttributeError) as exc:
            errors.append(f"deadlines.{name} is not a timezone-aware ISO-8601 instant: {exc}")
    if len(parsed) != len(DEADLINE_ORDER):
        return
    for earlier, later in zip(DEADLINE_ORDER, DEADLINE_ORDER[1:]):
        if not parsed[earlier] < parsed[later]:
            errors.append(f"deadlines.{earlier} must be strictly before deadlines.{later}")


def check_wager(wager, errors: list[str]) -> None:
    if isinstance(wager, dict):
        try:
            amount = Decimal(str(wager["amount"]))
        except (KeyError, InvalidOperation):
            errors.append("fixed_wager.amount must be a number")
            return
    elif isinstance(wager, int) and not isinstance(wager, bool):
        amount = Decimal(wager)
    else:
        errors.append("fixed_wager must be an integer (wei) or {amount, unit}")
        return
    if amount <= 0:
        errors.append(f"fixed_wager must be positive, got {amount}")


def check(params_path: Path = PARAMS_PATH) -> int:
    params = load_json(params_path)
    errors: list[str] = []

    # --- Benchmark ---
    try:
        Decimal(str(params["benchmark_value"]))
    except KeyError:
        errors.append("benchmark_value is missing")
    except InvalidOperation:
        errors.append("benchmark_value must be a number")

    # --- Wager ---
    if "fixed_wager" not in params:
        errors.append("fixed_wager is missing")
    else:
        check_wager(params["fixed_wager"], errors)

    # --- Deadlines ---
    check_deadlines(params.get("deadlines", {}), errors)

    # --- Oracle ---
    oracle = params.get("oracle", {})
    kind = oracle.get("kind", "static")
    if kind not in ORACLE_KINDS:
        errors.append(f"oracle.kind must be one of {list(ORACLE_KINDS)}, got {kind!r}")
    if kind == "chainlink" and not oracle.get("address"):
        errors.append("chainlink oracle requires oracle.address")
    if "rpc_url" in oracle or "private_key" in oracle:
        errors.append("endpoints and keys belong in the environment, not the parameter file")

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else PARAMS_PATH
    raise SystemExit(check(path))
