"""Signature authenticator — lets a relayer act for a participant.

A participant signs a 32-byte payload hash off-system with the standard
Ethereum personal-message scheme (EIP-191, the same thing ethers'
signMessage(arrayify(hash)) does). The market recovers the signer and
only accepts the relayed call if it matches the participant the relayer
claims to act for.

Fail-closed: a signature that cannot be decoded or recovered raises
AuthorizationError. It is never treated as a plain mismatch.
"""

from __future__ import annotations

from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from secretmarket.crypto.commitment import BytesLike, normalize_address, to_bytes32
from secretmarket.errors import AuthorizationError
from secretmarket.models.market import Caller, Direct, Relayed


SIGNATURE_SIZE = 65
_VALID_RECOVERY_IDS = frozenset({0, 1, 27, 28})


def _signature_bytes(signature: Union[bytes, str]) -> bytes:
    if isinstance(signature, str):
        try:
            raw = bytes(Web3.to_bytes(hexstr=signature))
        except (ValueError, TypeError) as exc:
            raise AuthorizationError(f"Signature is not decodable: {exc}") from exc
    else:
        raw = bytes(signature)
    if len(raw) != SIGNATURE_SIZE:
        raise AuthorizationError(
            f"Signature must be {SIGNATURE_SIZE} bytes, got {len(raw)}"
        )
    if raw[-1] not in _VALID_RECOVERY_IDS:
        raise AuthorizationError(f"Invalid recovery id: {raw[-1]}")
    return raw


def recover_signer(payload_hash: BytesLike, signature: Union[bytes, str]) -> str:
    """Recover the checksum address that signed payload_hash."""
    message = encode_defunct(primitive=to_bytes32(payload_hash, "payload hash"))
    raw = _signature_bytes(signature)
    try:
        return Account.recover_message(message, signature=raw)
    except Exception as exc:
        raise AuthorizationError(f"Signature recovery failed: {exc}") from exc


def verify_authorization(
    payload_hash: BytesLike,
    signature: Union[bytes, str],
    claimed_signer: str,
) -> bool:
    """True iff signature over payload_hash was produced by claimed_signer."""
    recovered = recover_signer(payload_hash, signature)
    return recovered == normalize_address(claimed_signer)


def sign_payload(payload_hash: BytesLike, private_key: Union[bytes, str]) -> bytes:
    """Client-side signing of a relay payload hash."""
    message = encode_defunct(primitive=to_bytes32(payload_hash, "payload hash"))
    signed = Account.sign_message(message, private_key=private_key)
    return bytes(signed.signature)


def resolve_actor(caller: Caller, payload_hash: BytesLike) -> str:
    """Resolve a caller into the verified address the operation acts for.

    Direct callers act for themselves. Relayed callers act for the
    participant, provided the participant signed payload_hash.
    """
    if isinstance(caller, Direct):
        return normalize_address(caller.address)
    if isinstance(caller, Relayed):
        participant = normalize_address(caller.participant)
        if not verify_authorization(payload_hash, caller.signature, participant):
            raise AuthorizationError(
                f"Signature was not produced by {participant} "
                f"(relayed by {caller.relayer})"
            )
        return participant
    raise TypeError(f"Unsupported caller: {caller!r}")
