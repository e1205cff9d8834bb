"""
PDC Error Types

Every failure surfaced by the asset state-access layer is an AssetError with a
stable machine-readable ``code``. Errors are raised immediately and never
retried internally; retry is the external caller's responsibility.

    AssetError
    ├── DecodeError              malformed input JSON / key material
    │   └── KeyDerivationError   composite key attribute rejected
    ├── MissingTransientField    required off-ledger field absent
    ├── AlreadyExists            public record present on create
    ├── NotFound                 public or private record absent
    ├── NameMismatch             existing/new private names differ
    ├── CommitmentMismatch       hash verification failure
    ├── StorageError             underlying ledger call failed
    │   └── IdentityError        caller organization unresolvable
    └── UnknownTransaction       dispatcher has no such entry point

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AssetError(Exception):
    """Base exception for asset state-access failures."""

    code = "ASSET_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class DecodeError(AssetError):
    """Input could not be decoded into the expected record."""

    code = "DECODE_ERROR"

    def __init__(self, message: str, field: str = ""):
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class KeyDerivationError(DecodeError):
    """Composite key could not be built from the given attributes."""

    code = "KEY_DERIVATION_ERROR"


class MissingTransientField(AssetError):
    """A required transient field was not supplied with the transaction."""

    code = "MISSING_TRANSIENT_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} key not found in the transient map")


class AlreadyExists(AssetError):
    """A public record already exists for the asset name."""

    code = "ALREADY_EXISTS"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"record already exists for asset: {name}")


class NotFound(AssetError):
    """A public or private record is absent."""

    code = "NOT_FOUND"

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} record does not exist for asset: {name}")


class NameMismatch(AssetError):
    """Two records that must describe the same asset carry different names."""

    code = "NAME_MISMATCH"

    def __init__(self, existing: str, new: str):
        self.existing = existing
        self.new = new
        super().__init__(f"mismatched asset name: {existing!r} != {new!r}")


class CommitmentMismatch(AssetError):
    """
    Caller-supplied private data does not match the on-ledger commitment.

    Carries both digests (hex) for diagnostics. The payload itself is never
    part of the error.
    """

    code = "COMMITMENT_MISMATCH"

    def __init__(self, expected_hash: str, computed_hash: str, name: str = ""):
        self.expected_hash = expected_hash
        self.computed_hash = computed_hash
        self.name = name
        expected = expected_hash or "<absent>"
        subject = f" for asset {name}" if name else ""
        super().__init__(
            f"hash {computed_hash} of supplied private properties{subject} "
            f"does not match on-ledger hash {expected}"
        )

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["expected_hash"] = self.expected_hash
        d["computed_hash"] = self.computed_hash
        return d


class StorageError(AssetError):
    """A ledger, partition, transient or identity collaborator call failed."""

    code = "STORAGE_ERROR"

    def __init__(self, operation: str, key: str = "", cause: Optional[BaseException] = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        target = f" ({key!r})" if key else ""
        super().__init__(f"failed to {operation}{target}{detail}")


class IdentityError(StorageError):
    """The calling entity's organization could not be resolved."""

    code = "IDENTITY_ERROR"

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__("get client's org id", cause=cause)


class UnknownTransaction(AssetError):
    """No entry point is registered under the requested name."""

    code = "UNKNOWN_TRANSACTION"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown transaction function: {name}")
