"""Record Accessor: every read, write and delete of public and private records.

Reads distinguish three outcomes:

- bytes returned: decoded into the record;
- absence (``None`` or empty): mapped to ``NotFound``;
- collaborator exception: wrapped into ``StorageError``.

Existence checks before writes are the caller's responsibility.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from pdc.errors import NotFound, StorageError
from pdc.keys import DEFAULT_PARTITION_PREFIX, RecordType, asset_key, partition_name, printable_key
from pdc.ledger import LedgerStub
from pdc.model import PrivateAsset, PublicAsset
from pdc.observability import Layer, get_logger

logger = get_logger("accessor", Layer.RECORDS)

T = TypeVar("T")


def _call(operation: str, key: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except Exception as e:
        logger.error(
            f"ledger call failed: {operation}",
            error_code=StorageError.code,
            key=printable_key(key),
            cause=type(e).__name__,
        )
        raise StorageError(operation, printable_key(key), cause=e) from e


class RecordAccessor:
    """Reads and writes an asset's two records through a ledger stub."""

    def __init__(self, stub: LedgerStub, partition_prefix: str = DEFAULT_PARTITION_PREFIX):
        self.stub = stub
        self.partition_prefix = partition_prefix

    def partition_for(self, org_id: str) -> str:
        return partition_name(org_id, self.partition_prefix)

    # -- public -----------------------------------------------------------------

    def read_public_bytes(self, name: str) -> Optional[bytes]:
        key = asset_key(name, RecordType.PUBLIC)
        value = _call("read public data", key, lambda: self.stub.get_state(key))
        return value or None

    def public_exists(self, name: str) -> bool:
        return self.read_public_bytes(name) is not None

    def read_public(self, name: str) -> PublicAsset:
        value = self.read_public_bytes(name)
        if value is None:
            raise NotFound("public", name)
        return PublicAsset.from_json_bytes(value, what="stored public asset")

    def write_public(self, asset: PublicAsset) -> None:
        key = asset_key(asset.name, RecordType.PUBLIC)
        payload = asset.to_json_bytes()
        _call("write public data", key, lambda: self.stub.put_state(key, payload))
        logger.debug("public record written", name=asset.name, key=printable_key(key))

    def delete_public(self, name: str) -> None:
        key = asset_key(name, RecordType.PUBLIC)
        _call("delete public data", key, lambda: self.stub.del_state(key))
        logger.debug("public record deleted", name=name)

    # -- private ----------------------------------------------------------------

    def read_private_bytes(self, name: str, org_id: str) -> Optional[bytes]:
        key = asset_key(name, RecordType.PRIVATE)
        partition = self.partition_for(org_id)
        value = _call(
            "read private data",
            key,
            lambda: self.stub.get_private_data(partition, key),
        )
        return value or None

    def private_exists(self, name: str, org_id: str) -> bool:
        return self.read_private_bytes(name, org_id) is not None

    def read_private(self, name: str, org_id: str) -> PrivateAsset:
        value = self.read_private_bytes(name, org_id)
        if value is None:
            raise NotFound("private", name)
        return PrivateAsset.from_json_bytes(value, what="stored private asset")

    def read_private_hash(self, name: str, org_id: str) -> Optional[bytes]:
        key = asset_key(name, RecordType.PRIVATE)
        partition = self.partition_for(org_id)
        digest = _call(
            "read private data hash",
            key,
            lambda: self.stub.get_private_data_hash(partition, key),
        )
        return digest or None

    def write_private(self, asset: PrivateAsset, org_id: str) -> None:
        self.write_private_raw(asset.name, asset.to_json_bytes(), org_id)

    def write_private_raw(self, name: str, payload: bytes, org_id: str) -> None:
        """Store ``payload`` verbatim so its digest is the commitment."""
        key = asset_key(name, RecordType.PRIVATE)
        partition = self.partition_for(org_id)
        _call(
            "write private data",
            key,
            lambda: self.stub.put_private_data(partition, key, payload),
        )
        logger.debug("private record written", name=name, partition=partition)

    def delete_private(self, name: str, org_id: str) -> None:
        key = asset_key(name, RecordType.PRIVATE)
        partition = self.partition_for(org_id)
        _call(
            "delete private data",
            key,
            lambda: self.stub.del_private_data(partition, key),
        )
        logger.debug("private record deleted", name=name, partition=partition)
