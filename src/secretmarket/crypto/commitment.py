"""Commitment codec — hides a choice until the reveal window.

A commitment is keccak-256 over the tightly packed encoding

    address committer (20 bytes) || uint256 choice (32 bytes) || bytes32 blinding

which is byte-for-byte what Solidity's abi.encodePacked(address, uint256,
bytes32) produces and what ethers' solidityKeccak computes client side.
The committer address is always bound in, so a revealed preimage cannot
be replayed under a different address.

The same encoder runs at commit time (off-system, via the CLI) and at
reveal time (inside the market). Any drift between the two is a bug.
"""

from __future__ import annotations

import secrets
from typing import Union

from web3 import Web3

from secretmarket.models.market import Choice


HASH_SIZE = 32
ZERO_HASH = b"\x00" * HASH_SIZE

BytesLike = Union[bytes, bytearray, str]


def to_bytes32(value: BytesLike, name: str = "value") -> bytes:
    """Normalise a 32-byte value given as bytes or hex (with or without 0x)."""
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError(f"{name} is not valid hex: {value!r}") from exc
    else:
        raw = bytes(value)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"{name} must be {HASH_SIZE} bytes, got {len(raw)}")
    return raw


def normalize_address(address: str) -> str:
    """Return the EIP-55 checksum form of an address."""
    if not Web3.is_address(address):
        raise ValueError(f"Not a valid address: {address!r}")
    return Web3.to_checksum_address(address)


def new_blinding_factor() -> bytes:
    """Fresh 32-byte secret for a commitment."""
    return secrets.token_bytes(HASH_SIZE)


def encode_commitment_preimage(
    choice: Union[Choice, int, str],
    blinding_factor: BytesLike,
    committer: str,
) -> bytes:
    """Packed preimage of a commitment.

    Raises InvalidChoiceError if choice is not YES or NO.
    """
    parsed = Choice.parse(choice)
    return (
        bytes.fromhex(normalize_address(committer)[2:])
        + int(parsed).to_bytes(32, "big")
        + to_bytes32(blinding_factor, "blinding factor")
    )


def compute_commitment(
    choice: Union[Choice, int, str],
    blinding_factor: BytesLike,
    committer: str,
) -> bytes:
    """keccak-256 commitment over (committer, choice, blinding factor)."""
    preimage = encode_commitment_preimage(choice, blinding_factor, committer)
    return bytes(Web3.keccak(primitive=preimage))


def commit_payload_hash(commitment: BytesLike) -> bytes:
    """Hash a participant signs to let a relayer commit for them.

    keccak(abi.encode(bytes32 commitment)); for a single static bytes32
    the standard ABI encoding equals the packed one.
    """
    return bytes(Web3.keccak(primitive=to_bytes32(commitment, "commitment")))


def reveal_payload_hash(
    choice: Union[Choice, int, str],
    blinding_factor: BytesLike,
) -> bytes:
    """Hash a participant signs to let a relayer reveal for them.

    keccak(abi.encode(uint256 choice, bytes32 blinding_factor)).
    """
    parsed = Choice.parse(choice)
    encoded = int(parsed).to_bytes(32, "big") + to_bytes32(blinding_factor, "blinding factor")
    return bytes(Web3.keccak(primitive=encoded))
