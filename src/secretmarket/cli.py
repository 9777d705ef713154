"""Secret market CLI — command-line client for a single prediction market.

Usage:
    python -m secretmarket.cli status
    python -m secretmarket.cli make-commitment --choice yes --address 0xabc...
    python -m secretmarket.cli sign-commit --commitment 0x...
    python -m secretmarket.cli commit --sender 0xabc... --commitment 0x... --wager 1000000000000000000
    python -m secretmarket.cli resolve
    python -m secretmarket.cli reveal --sender 0xabc... --choice yes --blinding-factor 0x...
    python -m secretmarket.cli claim --participant 0xabc...
    python -m secretmarket.cli check-invariants

Every command that touches the market accepts --at to evaluate it at an
explicit ISO-8601 instant instead of the current time.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from secretmarket.config import (
    DEFAULT_CONFIG,
    DEFAULT_DATA,
    PRIVATE_KEY_ENV,
    ROOT,
    load_environment,
    parse_timestamp,
)
from secretmarket.crypto.commitment import (
    commit_payload_hash,
    compute_commitment,
    new_blinding_factor,
    normalize_address,
    reveal_payload_hash,
    to_bytes32,
)
from secretmarket.crypto.signature import sign_payload
from secretmarket.models.market import Choice
from secretmarket.service import MarketService, ServiceResult


def _make_service(args: argparse.Namespace) -> MarketService:
    """Create a MarketService over the durable event log."""
    load_environment()
    args.data.mkdir(parents=True, exist_ok=True)
    return MarketService.from_config(args.config, args.data)


def _at(args: argparse.Namespace) -> Optional[datetime]:
    return parse_timestamp(args.at) if getattr(args, "at", None) else None


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def _private_key(args: argparse.Namespace) -> Optional[str]:
    load_environment()
    key = os.getenv(args.key_env)
    if not key:
        print(f"ERROR: Missing {args.key_env} in environment or .env", file=sys.stderr)
    return key


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(_at(args)), indent=2, default=str))
    return 0


def cmd_phase(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(service.market.phase(_at(args)).value)
    return 0


def cmd_make_commitment(args: argparse.Namespace) -> int:
    """Compute a commitment off-system. Keep the blinding factor secret."""
    choice = Choice.parse(args.choice)
    address = normalize_address(args.address)
    if args.blinding_factor:
        blinding = to_bytes32(args.blinding_factor, "blinding factor")
    else:
        blinding = new_blinding_factor()
    commitment = compute_commitment(choice, blinding, address)
    print(json.dumps(
        {
            "address": address,
            "choice": choice.name.lower(),
            "blinding_factor": "0x" + blinding.hex(),
            "commitment": "0x" + commitment.hex(),
            "commit_payload_hash": "0x" + commit_payload_hash(commitment).hex(),
        },
        indent=2,
    ))
    return 0


def cmd_sign_commit(args: argparse.Namespace) -> int:
    """Sign a commitment so a relayer can submit it."""
    key = _private_key(args)
    if not key:
        return 1
    signature = sign_payload(commit_payload_hash(args.commitment), key)
    print("0x" + signature.hex())
    return 0


def cmd_sign_reveal(args: argparse.Namespace) -> int:
    """Sign a reveal so a relayer can submit it."""
    key = _private_key(args)
    if not key:
        return 1
    signature = sign_payload(reveal_payload_hash(args.choice, args.blinding_factor), key)
    print("0x" + signature.hex())
    return 0


def cmd_commit(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.commit(
        sender=args.sender,
        commitment=args.commitment,
        wager=args.wager,
        on_behalf_of=args.on_behalf_of,
        signature=args.signature,
        now=_at(args),
    ))


def cmd_reveal(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.reveal(
        sender=args.sender,
        choice=args.choice,
        blinding_factor=args.blinding_factor,
        on_behalf_of=args.on_behalf_of,
        signature=args.signature,
        now=_at(args),
    ))


def cmd_resolve(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.resolve(now=_at(args)))


def cmd_claim(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.claim(args.participant, now=_at(args)))


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Validate the market parameter file."""
    tools_dir = ROOT / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(args.config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secretmarket",
        description="Secret commit-reveal prediction market",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to market parameter file (default: config/market_params.json)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=DEFAULT_DATA,
        help="Directory holding the event log (default: data/)",
    )
    sub = parser.add_subparsers(dest="command")

    p_status = sub.add_parser("status", help="Show market status")
    p_status.add_argument("--at", help="Evaluate at this ISO-8601 instant")

    p_phase = sub.add_parser("phase", help="Show the current phase")
    p_phase.add_argument("--at", help="Evaluate at this ISO-8601 instant")

    p_make = sub.add_parser("make-commitment", help="Compute a commitment hash")
    p_make.add_argument("--choice", required=True, choices=["yes", "no"])
    p_make.add_argument("--address", required=True, help="Committer address")
    p_make.add_argument("--blinding-factor", help="32-byte hex (default: random)")

    p_sc = sub.add_parser("sign-commit", help="Sign a commitment for a relayer")
    p_sc.add_argument("--commitment", required=True, help="32-byte hex commitment")
    p_sc.add_argument("--key-env", default=PRIVATE_KEY_ENV, help="Env var holding the private key")

    p_sr = sub.add_parser("sign-reveal", help="Sign a reveal for a relayer")
    p_sr.add_argument("--choice", required=True, choices=["yes", "no"])
    p_sr.add_argument("--blinding-factor", required=True, help="32-byte hex")
    p_sr.add_argument("--key-env", default=PRIVATE_KEY_ENV, help="Env var holding the private key")

    p_commit = sub.add_parser("commit", help="Commit a hidden prediction")
    p_commit.add_argument("--sender", required=True, help="Submitting address")
    p_commit.add_argument("--commitment", required=True, help="32-byte hex commitment")
    p_commit.add_argument("--wager", required=True, type=int, help="Wager in wei")
    p_commit.add_argument("--on-behalf-of", help="Participant address (relayed call)")
    p_commit.add_argument("--signature", help="Participant's signature (relayed call)")
    p_commit.add_argument("--at", help="Evaluate at this ISO-8601 instant")

    p_reveal = sub.add_parser("reveal", help="Reveal a committed prediction")
    p_reveal.add_argument("--sender", required=True, help="Submitting address")
    p_reveal.add_argument("--choice", required=True, help="yes or no")
    p_reveal.add_argument("--blinding-factor", required=True, help="32-byte hex")
    p_reveal.add_argument("--on-behalf-of", help="Participant address (relayed call)")
    p_reveal.add_argument("--signature", help="Participant's signature (relayed call)")
    p_reveal.add_argument("--at", help="Evaluate at this ISO-8601 instant")

    p_resolve = sub.add_parser("resolve", help="Resolve the event against the oracle")
    p_resolve.add_argument("--at", help="Evaluate at this ISO-8601 instant")

    p_claim = sub.add_parser("claim", help="Claim winnings for a participant")
    p_claim.add_argument("--participant", required=True, help="Participant address")
    p_claim.add_argument("--at", help="Evaluate at this ISO-8601 instant")

    sub.add_parser("check-invariants", help="Validate the market parameter file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "phase": cmd_phase,
        "make-commitment": cmd_make_commitment,
        "sign-commit": cmd_sign_commit,
        "sign-reveal": cmd_sign_reveal,
        "commit": cmd_commit,
        "reveal": cmd_reveal,
        "resolve": cmd_resolve,
        "claim": cmd_claim,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
