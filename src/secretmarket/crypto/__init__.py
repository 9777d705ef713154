"""Cryptographic primitives — commitment codec and relay signature checks."""

from secretmarket.crypto.commitment import (
    compute_commitment,
    commit_payload_hash,
    encode_commitment_preimage,
    new_blinding_factor,
    reveal_payload_hash,
)
from secretmarket.crypto.signature import (
    recover_signer,
    resolve_actor,
    sign_payload,
    verify_authorization,
)

__all__ = [
    "compute_commitment",
    "commit_payload_hash",
    "encode_commitment_preimage",
    "new_blinding_factor",
    "reveal_payload_hash",
    "recover_signer",
    "resolve_actor",
    "sign_payload",
    "verify_authorization",
]
