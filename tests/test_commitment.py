"""Tests for the commitment codec — proves commit-time and reveal-time encodings agree."""

import pytest
from eth_account import Account
from web3 import Web3

from secretmarket.crypto.commitment import (
    commit_payload_hash,
    compute_commitment,
    encode_commitment_preimage,
    new_blinding_factor,
    normalize_address,
    reveal_payload_hash,
    to_bytes32,
)
from secretmarket.errors import InvalidChoiceError
from secretmarket.models.market import Choice


ALICE = Account.from_key("0x" + "a1" * 32).address
BOB = Account.from_key("0x" + "b2" * 32).address

# ethers.utils.formatBytes32String("0x12")
BLINDING = b"0x12".ljust(32, b"\x00")


class TestEncoding:
    def test_matches_solidity_keccak(self) -> None:
        """Same bytes as solidityKeccak(["address", "uint256", "bytes32"], ...)."""
        expected = Web3.solidity_keccak(
            ["address", "uint256", "bytes32"], [ALICE, 1, BLINDING]
        )
        assert compute_commitment(Choice.YES, BLINDING, ALICE) == bytes(expected)

    def test_no_choice_matches_solidity_keccak(self) -> None:
        expected = Web3.solidity_keccak(
            ["address", "uint256", "bytes32"], [ALICE, 2, BLINDING]
        )
        assert compute_commitment(Choice.NO, BLINDING, ALICE) == bytes(expected)

    def test_commit_and_reveal_encodings_identical(self) -> None:
        """Client-side inputs (hex, lowercase, str choice) encode like market-side ones."""
        at_commit = encode_commitment_preimage("yes", "0x" + BLINDING.hex(), ALICE.lower())
        at_reveal = encode_commitment_preimage(Choice.YES, BLINDING, normalize_address(ALICE))
        assert at_commit == at_reveal

    def test_preimage_layout(self) -> None:
        preimage = encode_commitment_preimage(Choice.NO, BLINDING, ALICE)
        assert len(preimage) == 20 + 32 + 32
        assert preimage[:20] == bytes.fromhex(ALICE[2:])
        assert preimage[20:52] == (2).to_bytes(32, "big")
        assert preimage[52:] == BLINDING

    def test_choice_left_padded_to_32_bytes(self) -> None:
        preimage = encode_commitment_preimage(Choice.YES, BLINDING, ALICE)
        assert preimage[20:51] == b"\x00" * 31
        assert preimage[51] == 1

    def test_deterministic(self) -> None:
        assert compute_commitment(Choice.YES, BLINDING, ALICE) == compute_commitment(
            Choice.YES, BLINDING, ALICE
        )


class TestBinding:
    def test_committer_bound(self) -> None:
        assert compute_commitment(Choice.YES, BLINDING, ALICE) != compute_commitment(
            Choice.YES, BLINDING, BOB
        )

    def test_choice_bound(self) -> None:
        assert compute_commitment(Choice.YES, BLINDING, ALICE) != compute_commitment(
            Choice.NO, BLINDING, ALICE
        )

    @pytest.mark.parametrize("bit", [0, 7, 100, 255])
    def test_single_bit_flip_changes_commitment(self, bit: int) -> None:
        flipped = bytearray(BLINDING)
        flipped[bit // 8] ^= 1 << (bit % 8)
        assert compute_commitment(Choice.YES, bytes(flipped), ALICE) != compute_commitment(
            Choice.YES, BLINDING, ALICE
        )


class TestValidation:
    def test_unset_rejected(self) -> None:
        with pytest.raises(InvalidChoiceError):
            compute_commitment(Choice.UNSET, BLINDING, ALICE)

    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(InvalidChoiceError):
            compute_commitment(3, BLINDING, ALICE)

    @pytest.mark.parametrize("flag", [True, False])
    def test_bool_rejected(self, flag: bool) -> None:
        with pytest.raises(InvalidChoiceError):
            Choice.parse(flag)
        with pytest.raises(InvalidChoiceError):
            compute_commitment(flag, BLINDING, ALICE)

    def test_short_blinding_factor_rejected(self) -> None:
        with pytest.raises(ValueError, match="32 bytes"):
            compute_commitment(Choice.YES, b"\x01" * 31, ALICE)

    def test_non_hex_blinding_factor_rejected(self) -> None:
        with pytest.raises(ValueError, match="hex"):
            to_bytes32("0xnothex", "blinding factor")

    def test_bad_address_rejected(self) -> None:
        with pytest.raises(ValueError, match="address"):
            compute_commitment(Choice.YES, BLINDING, "0x1234")


class TestRelayPayloads:
    def test_commit_payload_is_keccak_of_commitment(self) -> None:
        commitment = compute_commitment(Choice.YES, BLINDING, ALICE)
        expected = Web3.solidity_keccak(["bytes32"], [commitment])
        assert commit_payload_hash(commitment) == bytes(expected)

    def test_commit_payload_accepts_hex(self) -> None:
        commitment = compute_commitment(Choice.YES, BLINDING, ALICE)
        assert commit_payload_hash("0x" + commitment.hex()) == commit_payload_hash(commitment)

    def test_reveal_payload_is_keccak_of_choice_and_blinding(self) -> None:
        expected = Web3.solidity_keccak(["uint256", "bytes32"], [1, BLINDING])
        assert reveal_payload_hash(Choice.YES, BLINDING) == bytes(expected)

    def test_commit_and_reveal_payloads_differ(self) -> None:
        commitment = compute_commitment(Choice.YES, BLINDING, ALICE)
        assert commit_payload_hash(commitment) != reveal_payload_hash(Choice.YES, BLINDING)


class TestBlindingFactor:
    def test_length(self) -> None:
        assert len(new_blinding_factor()) == 32

    def test_fresh_each_time(self) -> None:
        assert new_blinding_factor() != new_blinding_factor()
