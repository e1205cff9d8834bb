"""Commitment verification for private asset data.

The ledger keeps, for every private partition entry, the SHA-256 digest of
the stored bytes. A caller proves knowledge of the private record by
presenting the exact bytes off-ledger (transient input); the digest of those
bytes must equal the on-ledger digest. The payload itself never reaches a
log line or an error message.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from pdc.errors import CommitmentMismatch
from pdc.observability import Layer, get_logger

logger = get_logger("verifier", Layer.COMMITMENT)

DIGEST_SIZE = hashlib.sha256().digest_size


def commitment_digest(payload: bytes) -> bytes:
    """SHA-256 over the exact payload bytes (no re-encoding)."""
    return hashlib.sha256(payload).digest()


class CommitmentVerifier:
    """Compares caller-supplied private payloads with on-ledger commitments."""

    def verify(self, prior_hash: Optional[bytes], payload: bytes, name: str = "") -> bool:
        """
        Return True when ``payload`` hashes to ``prior_hash``.

        An absent or empty prior commitment is a mismatch, never a pass.

        Raises:
            CommitmentMismatch: carrying both digests in hex.
        """
        computed = commitment_digest(payload)
        if prior_hash and hmac.compare_digest(bytes(prior_hash), computed):
            logger.debug("commitment verified", name=name, digest=computed.hex())
            return True

        expected_hex = bytes(prior_hash).hex() if prior_hash else ""
        logger.warning(
            "commitment mismatch",
            name=name,
            expected_hash=expected_hex or "<absent>",
            computed_hash=computed.hex(),
        )
        raise CommitmentMismatch(expected_hex, computed.hex(), name=name)
