"""Commitment verification."""

import hashlib

import pytest

from pdc.commitment import DIGEST_SIZE, CommitmentVerifier, commitment_digest
from pdc.errors import CommitmentMismatch

PAYLOAD = b'{"doctype":"MOBILE_PRIVATE","name":"m1","owner":"alice","price":100}'


def test_digest_is_sha256_of_exact_bytes():
    assert commitment_digest(PAYLOAD) == hashlib.sha256(PAYLOAD).digest()
    assert len(commitment_digest(PAYLOAD)) == DIGEST_SIZE == 32


class TestCommitmentVerifier:

    def test_match(self):
        assert CommitmentVerifier().verify(commitment_digest(PAYLOAD), PAYLOAD) is True

    def test_single_byte_flip_fails(self):
        prior = commitment_digest(PAYLOAD)
        flipped = bytearray(PAYLOAD)
        flipped[-2] ^= 0x01
        with pytest.raises(CommitmentMismatch) as exc_info:
            CommitmentVerifier().verify(prior, bytes(flipped))
        assert exc_info.value.expected_hash == prior.hex()
        assert exc_info.value.computed_hash == hashlib.sha256(bytes(flipped)).hexdigest()

    def test_reencoding_is_not_equivalent(self):
        """Whitespace changes the bytes, so it changes the outcome."""
        prior = commitment_digest(PAYLOAD)
        spaced = PAYLOAD.replace(b",", b", ")
        with pytest.raises(CommitmentMismatch):
            CommitmentVerifier().verify(prior, spaced)

    @pytest.mark.parametrize("prior", [None, b""])
    def test_absent_commitment_is_a_mismatch(self, prior):
        with pytest.raises(CommitmentMismatch) as exc_info:
            CommitmentVerifier().verify(prior, PAYLOAD)
        assert exc_info.value.expected_hash == ""
        assert "<absent>" in str(exc_info.value)

    def test_error_never_contains_payload(self):
        with pytest.raises(CommitmentMismatch) as exc_info:
            CommitmentVerifier().verify(b"\x00" * 32, PAYLOAD, name="m1")
        message = str(exc_info.value)
        assert "alice" not in message
        assert "m1" in message
        assert "alice" not in str(exc_info.value.to_dict())
