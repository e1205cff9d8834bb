"""
PDC Ledger Collaborators

Interfaces of the external ledger runtime consumed by the state-access layer,
plus reference implementations used by the CLI and the test suite.

    TransactionContext
    ├── stub: LedgerStub
    │   ├── StateStore         world state get/put/del by composite key
    │   ├── PrivateStore       same, scoped by partition, plus digest query
    │   └── TransientChannel   off-ledger input of the current transaction
    ├── client_identity: IdentityResolver
    └── tx_id

MemoryLedger executes each transaction against a write set that is applied
as one atomic unit on commit (the ledger's own multi-key atomicity). With
``atomic=False`` writes go straight through, reproducing a runtime without
multi-key transactions.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import base64
import hashlib
import json
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from pdc.observability import Layer, generate_tx_id, get_logger

logger = get_logger("ledger", Layer.LEDGER)


# =============================================================================
# COLLABORATOR INTERFACES
# =============================================================================

class StateStore(Protocol):
    """Public world state keyed by opaque composite keys."""

    def get_state(self, key: str) -> Optional[bytes]:
        """Return stored bytes, or None when the key is absent."""
        ...

    def put_state(self, key: str, value: bytes) -> None:
        ...

    def del_state(self, key: str) -> None:
        ...


class PrivateStore(Protocol):
    """Private partitions (collections) keyed by partition name and key."""

    def get_private_data(self, partition: str, key: str) -> Optional[bytes]:
        ...

    def put_private_data(self, partition: str, key: str, value: bytes) -> None:
        ...

    def del_private_data(self, partition: str, key: str) -> None:
        ...

    def get_private_data_hash(self, partition: str, key: str) -> Optional[bytes]:
        """Return the SHA-256 of the stored value without revealing it."""
        ...


class TransientChannel(Protocol):
    """Caller-supplied data valid only for the current transaction."""

    def get_transient(self) -> Mapping[str, bytes]:
        ...


class LedgerStub(StateStore, PrivateStore, TransientChannel, Protocol):
    """Everything a transaction can reach on the ledger."""


class IdentityResolver(Protocol):
    """Maps the calling entity to its organization identifier."""

    def get_msp_id(self) -> str:
        ...


@runtime_checkable
class Committable(Protocol):
    """Stub whose staged writes are applied or dropped when the transaction ends."""

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


@dataclass
class TransactionContext:
    """The per-invocation view handed to every entry point."""
    stub: LedgerStub
    client_identity: IdentityResolver
    tx_id: str = field(default_factory=generate_tx_id)


@dataclass(frozen=True)
class StaticIdentity:
    """Identity resolver bound to a fixed organization."""
    msp_id: str

    def get_msp_id(self) -> str:
        if not self.msp_id:
            raise ValueError("client identity has no MSP id")
        return self.msp_id


# =============================================================================
# REFERENCE LEDGER
# =============================================================================

@dataclass(frozen=True)
class VersionedValue:
    value: bytes
    version: int
    updated_at: str


# (partition or None for world state, key, value or None for delete)
WriteOp = Tuple[Optional[str], str, Optional[bytes]]


def _require_key(key: str) -> None:
    if not key:
        raise ValueError("key must not be empty")


class MemoryLedger:
    """
    Thread-safe in-memory ledger with world state and private partitions.

    Private partitions only ever expose their digests to ``get_private_data_hash``;
    the digest is computed over the exact stored bytes.
    """

    def __init__(self, atomic: bool = True):
        self.atomic = atomic
        self._state: Dict[str, VersionedValue] = {}
        self._private: Dict[str, Dict[str, VersionedValue]] = {}
        self._version = 0
        self._lock = threading.RLock()

    # -- committed reads ------------------------------------------------------

    def get_state(self, key: str) -> Optional[bytes]:
        with self._lock:
            v = self._state.get(key)
            return v.value if v else None

    def get_private_data(self, partition: str, key: str) -> Optional[bytes]:
        with self._lock:
            v = self._private.get(partition, {}).get(key)
            return v.value if v else None

    def get_private_data_hash(self, partition: str, key: str) -> Optional[bytes]:
        value = self.get_private_data(partition, key)
        if value is None:
            return None
        return hashlib.sha256(value).digest()

    def version_of(self, key: str, partition: Optional[str] = None) -> Optional[int]:
        with self._lock:
            table = self._state if partition is None else self._private.get(partition, {})
            v = table.get(key)
            return v.version if v else None

    def state_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._state)

    def partitions(self) -> List[str]:
        with self._lock:
            return sorted(p for p, entries in self._private.items() if entries)

    def private_keys(self, partition: str) -> List[str]:
        with self._lock:
            return sorted(self._private.get(partition, {}))

    # -- direct writes ----------------------------------------------------------

    def put_state(self, key: str, value: bytes) -> None:
        self.apply([(None, key, bytes(value))])

    def del_state(self, key: str) -> None:
        self.apply([(None, key, None)])

    def put_private_data(self, partition: str, key: str, value: bytes) -> None:
        self.apply([(partition, key, bytes(value))])

    def del_private_data(self, partition: str, key: str) -> None:
        self.apply([(partition, key, None)])

    def apply(self, writes: List[WriteOp]) -> None:
        """Apply a write set as one unit."""
        for partition, key, _ in writes:
            _require_key(key)
            if partition is not None and not partition:
                raise ValueError("partition name must not be empty")
        with self._lock:
            now = datetime.now(timezone.utc).isoformat()
            undo: List[Tuple[Dict[str, VersionedValue], str, Optional[VersionedValue]]] = []
            for partition, key, value in writes:
                table = self._state if partition is None else self._private.setdefault(partition, {})
                undo.append((table, key, table.get(key)))
                if value is None:
                    table.pop(key, None)
                else:
                    self._version += 1
                    table[key] = VersionedValue(value=value, version=self._version, updated_at=now)
            try:
                self._persist()
            except Exception:
                # Memory must not run ahead of durable state
                for table, key, previous in reversed(undo):
                    if previous is None:
                        table.pop(key, None)
                    else:
                        table[key] = previous
                raise

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held after every write."""

    # -- transactions -------------------------------------------------------------

    def begin(
        self,
        msp_id: str,
        transient: Optional[Mapping[str, Union[bytes, str]]] = None,
        tx_id: Optional[str] = None,
        atomic: Optional[bool] = None,
    ) -> TransactionContext:
        """Open a transaction context for a caller of organization ``msp_id``."""
        stub = TransactionStub(
            self,
            transient=transient,
            atomic=self.atomic if atomic is None else atomic,
        )
        ctx = TransactionContext(stub=stub, client_identity=StaticIdentity(msp_id))
        if tx_id:
            ctx.tx_id = tx_id
        return ctx


class TransactionStub:
    """
    Stub for a single transaction.

    Reads always observe committed state. In atomic mode writes are staged
    and only reach the ledger on ``commit()``.
    """

    def __init__(
        self,
        ledger: MemoryLedger,
        transient: Optional[Mapping[str, Union[bytes, str]]] = None,
        atomic: bool = True,
    ):
        self._ledger = ledger
        self._transient: Dict[str, bytes] = {
            k: v.encode("utf-8") if isinstance(v, str) else bytes(v)
            for k, v in (transient or {}).items()
        }
        self.atomic = atomic
        self._writes: List[WriteOp] = []
        self._closed = False

    def get_transient(self) -> Mapping[str, bytes]:
        return dict(self._transient)

    def get_state(self, key: str) -> Optional[bytes]:
        return self._ledger.get_state(key)

    def get_private_data(self, partition: str, key: str) -> Optional[bytes]:
        return self._ledger.get_private_data(partition, key)

    def get_private_data_hash(self, partition: str, key: str) -> Optional[bytes]:
        return self._ledger.get_private_data_hash(partition, key)

    def _write(self, partition: Optional[str], key: str, value: Optional[bytes]) -> None:
        if self._closed:
            raise RuntimeError("transaction already finished")
        _require_key(key)
        if self.atomic:
            self._writes.append((partition, key, value))
        else:
            self._ledger.apply([(partition, key, value)])

    def put_state(self, key: str, value: bytes) -> None:
        self._write(None, key, bytes(value))

    def del_state(self, key: str) -> None:
        self._write(None, key, None)

    def put_private_data(self, partition: str, key: str, value: bytes) -> None:
        self._write(partition, key, bytes(value))

    def del_private_data(self, partition: str, key: str) -> None:
        self._write(partition, key, None)

    @property
    def pending_writes(self) -> List[WriteOp]:
        return list(self._writes)

    def commit(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writes:
            self._ledger.apply(self._writes)
            logger.debug("write set committed", writes=len(self._writes))
        self._writes = []

    def rollback(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writes:
            logger.debug("write set discarded", writes=len(self._writes))
        self._writes = []


class FileLedger(MemoryLedger):
    """MemoryLedger persisted to a JSON snapshot after every applied write set."""

    SNAPSHOT_VERSION = 1

    def __init__(self, path: Union[str, Path], atomic: bool = True):
        super().__init__(atomic=atomic)
        self.path = Path(path)
        self._loading = False
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if data.get("version") != self.SNAPSHOT_VERSION:
            raise ValueError(f"unsupported ledger snapshot version: {data.get('version')!r}")
        writes: List[WriteOp] = []
        for key, b64 in data.get("state", {}).items():
            writes.append((None, key, base64.b64decode(b64)))
        for partition, entries in data.get("private", {}).items():
            for key, b64 in entries.items():
                writes.append((partition, key, base64.b64decode(b64)))
        with self._lock:
            self._loading = True
            try:
                self.apply(writes)
            finally:
                self._loading = False

    def _snapshot(self) -> Dict[str, object]:
        return {
            "version": self.SNAPSHOT_VERSION,
            "state": {
                k: base64.b64encode(v.value).decode("ascii")
                for k, v in sorted(self._state.items())
            },
            "private": {
                p: {k: base64.b64encode(v.value).decode("ascii") for k, v in sorted(entries.items())}
                for p, entries in sorted(self._private.items())
                if entries
            },
        }

    def _persist(self) -> None:
        if self._loading:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(self._snapshot(), indent=2) + "\n", encoding="utf-8")
            os.replace(tmp_path, self.path)
        except Exception:
            if tmp_path.exists():
                tmp_path.unlink()
            raise
