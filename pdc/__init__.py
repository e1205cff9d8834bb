"""
PDC: Public/Private Asset State Access

An asset (a mobile device) is described by two records:

    PublicAsset    world state, readable by every organization
    PrivateAsset   implicit private partition of the creating organization

Module Index
────────────

    keys.py          Composite keys, record types, partition names
    model.py         Records and their JSON wire encoding
    schema.py        JSON Schema validation of inputs
    commitment.py    SHA-256 commitment verification
    ledger.py        Ledger collaborator interfaces and reference ledgers
    records.py       Record accessor over a ledger stub
    contract.py      Lifecycle operations and transaction dispatch
    config.py        YAML / environment configuration
    observability.py Structured logging and audit trail
    cli.py           Command-line interface

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import of the public API on first access."""

    if name in ("RecordType", "COMPOSITE_KEY_INDEX", "derive_key", "split_key",
                "asset_key", "partition_name"):
        from pdc import keys
        return getattr(keys, name)

    if name in ("PublicAsset", "PrivateAsset", "PrivateAssetPatch", "PublicUpdate"):
        from pdc import model
        return getattr(model, name)

    if name in ("CommitmentVerifier", "commitment_digest"):
        from pdc import commitment
        return getattr(commitment, name)

    if name in ("MemoryLedger", "FileLedger", "TransactionContext", "StaticIdentity"):
        from pdc import ledger
        return getattr(ledger, name)

    if name == "RecordAccessor":
        from pdc import records
        return records.RecordAccessor

    if name in ("AssetContract", "ReconcileReport", "ReconcileStatus"):
        from pdc import contract
        return getattr(contract, name)

    if name in ("AssetError", "DecodeError", "MissingTransientField", "AlreadyExists",
                "NotFound", "NameMismatch", "CommitmentMismatch", "StorageError"):
        from pdc import errors
        return getattr(errors, name)

    raise AttributeError(f"module 'pdc' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Keys
    "RecordType",
    "COMPOSITE_KEY_INDEX",
    "derive_key",
    "split_key",
    "asset_key",
    "partition_name",
    # Model
    "PublicAsset",
    "PrivateAsset",
    "PrivateAssetPatch",
    "PublicUpdate",
    # Commitment
    "CommitmentVerifier",
    "commitment_digest",
    # Ledger
    "MemoryLedger",
    "FileLedger",
    "TransactionContext",
    "StaticIdentity",
    # Records / contract
    "RecordAccessor",
    "AssetContract",
    "ReconcileReport",
    "ReconcileStatus",
    # Errors
    "AssetError",
    "DecodeError",
    "MissingTransientField",
    "AlreadyExists",
    "NotFound",
    "NameMismatch",
    "CommitmentMismatch",
    "StorageError",
]
