"""
PDC Asset Contract

Lifecycle operations over an asset's public and private records, exposed as
transaction entry points under their wire names.

State machine per asset name:

    NonExistent ──create──▶ Active ──delete──▶ NonExistent
                              │  ▲
                              └──┘ update_public / update_private

Ordering inside each operation is fixed:

    create:  decode ─▶ transient ─▶ public exists? ─▶ write public ─▶ write private
    delete:  public exists? ─▶ delete private ─▶ delete public

On a runtime without multi-key atomic transactions a failure between the two
writes leaves the first one in place. A retried create is then rejected by the
public existence check although the private record is missing, and a failed
public delete leaves a public record without its private half. ``reconcile``
detects and optionally removes such orphans.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from pdc.commitment import CommitmentVerifier
from pdc.errors import (
    AlreadyExists,
    AssetError,
    DecodeError,
    IdentityError,
    MissingTransientField,
    NameMismatch,
    NotFound,
    StorageError,
    UnknownTransaction,
)
from pdc.keys import DEFAULT_PARTITION_PREFIX
from pdc.ledger import Committable, TransactionContext
from pdc.model import PrivateAsset, PrivateAssetPatch, PublicAsset, PublicUpdate
from pdc.observability import AuditLogger, Layer, get_logger, timed_operation, transaction_scope
from pdc.records import RecordAccessor

logger = get_logger("contract", Layer.CONTRACT)

TRANSIENT_PROPERTIES = "mobile_properties"
TRANSIENT_NEW_PROPERTIES = "new_mobile_properties"

T = TypeVar("T")


def entry_point(operation_name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for transaction entry points.

    Times the operation and settles the context's write set: a committable
    stub is committed when the entry point returns and rolled back when it
    raises. A failing commit is a StorageError.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        timed = timed_operation(logger, operation_name)(func)

        @wraps(func)
        def wrapper(self: Any, ctx: TransactionContext, *args: Any, **kwargs: Any) -> T:
            stub = ctx.stub
            try:
                result = timed(self, ctx, *args, **kwargs)
            except Exception:
                if isinstance(stub, Committable):
                    stub.rollback()
                raise
            if isinstance(stub, Committable):
                try:
                    stub.commit()
                except Exception as e:
                    raise StorageError("commit transaction", cause=e) from e
            return result
        return wrapper
    return decorator


class ReconcileStatus(Enum):
    """Consistency of an asset's two records as seen from one partition."""
    CONSISTENT = "consistent"
    ABSENT = "absent"
    ORPHANED_PUBLIC = "orphaned_public"
    ORPHANED_PRIVATE = "orphaned_private"

    @property
    def is_orphan(self) -> bool:
        return self in (ReconcileStatus.ORPHANED_PUBLIC, ReconcileStatus.ORPHANED_PRIVATE)


@dataclass(frozen=True)
class ReconcileReport:
    name: str
    partition: str
    status: ReconcileStatus
    repaired: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "partition": self.partition,
            "status": self.status.value,
            "repaired": self.repaired,
        }


def _as_bool(value: Union[bool, str]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def to_wire(result: Any) -> Any:
    """JSON-compatible form of an entry point's return value."""
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


class AssetContract:
    """
    Asset lifecycle operations.

    The caller's organization is resolved from the transaction context on every
    call and never taken from caller-supplied input, except for the explicit
    ``org_id`` argument of ``verify_private_commitment``.

    Every entry point settles the write set of the context it is given, so a
    context serves exactly one operation.
    """

    # Wire name -> method name
    TRANSACTIONS: Dict[str, str] = {
        "CreateMobile": "create",
        "GetMobilePublicData": "read_public",
        "GetMobilePrivateDetails": "read_private_details",
        "IsMobilePrivateDataExist": "verify_private_commitment",
        "UpdateMobilePublicData": "update_public",
        "UpdateMobilePrivateData": "update_private",
        "DeleteMobile": "delete",
        "ReconcileMobile": "reconcile",
    }

    # Entry points whose first argument is the asset name
    _NAME_ARG_TRANSACTIONS = frozenset({
        "GetMobilePublicData",
        "GetMobilePrivateDetails",
        "DeleteMobile",
        "ReconcileMobile",
    })

    def __init__(
        self,
        partition_prefix: str = DEFAULT_PARTITION_PREFIX,
        sentinel_compat: bool = True,
        verifier: Optional[CommitmentVerifier] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.partition_prefix = partition_prefix
        self.sentinel_compat = sentinel_compat
        self.verifier = verifier or CommitmentVerifier()
        self.audit = audit or AuditLogger()

    @classmethod
    def from_config(cls, config: Any = None) -> "AssetContract":
        """Build a contract from a PdcConfig (defaults to the global one)."""
        if config is None:
            from pdc.config import get_config
            config = get_config().config
        return cls(
            partition_prefix=config.contract.partition_prefix.get(),
            sentinel_compat=config.contract.sentinel_compat.get(),
        )

    # -- helpers --------------------------------------------------------------

    def _accessor(self, ctx: TransactionContext) -> RecordAccessor:
        return RecordAccessor(ctx.stub, partition_prefix=self.partition_prefix)

    def _org_id(self, ctx: TransactionContext) -> str:
        try:
            org_id = ctx.client_identity.get_msp_id()
        except Exception as e:
            raise IdentityError(cause=e) from e
        if not org_id:
            raise IdentityError(cause=ValueError("empty MSP id"))
        return org_id

    def _transient(self, ctx: TransactionContext, field: str) -> bytes:
        try:
            transient = ctx.stub.get_transient()
        except Exception as e:
            raise StorageError("get transient", cause=e) from e
        value = transient.get(field)
        if value is None:
            raise MissingTransientField(field)
        return bytes(value)

    # -- entry points -----------------------------------------------------------

    @entry_point("create")
    def create(self, ctx: TransactionContext, public_input: Union[str, bytes]) -> None:
        """
        Create an asset's public record and its private record in the
        caller's partition.

        The private record is stored as the exact transient bytes, so its
        on-ledger digest is the commitment to what the creator supplied.
        """
        public = PublicAsset.from_json_bytes(public_input, what="public description input")
        payload = self._transient(ctx, TRANSIENT_PROPERTIES)
        private = PrivateAsset.from_json_bytes(payload, what=TRANSIENT_PROPERTIES)
        if private.name != public.name:
            raise NameMismatch(public.name, private.name)

        accessor = self._accessor(ctx)
        if accessor.public_exists(public.name):
            raise AlreadyExists(public.name)

        accessor.write_public(public)

        org_id = self._org_id(ctx)
        accessor.write_private_raw(private.name, payload, org_id)
        logger.info(
            "asset created",
            name=public.name,
            partition=accessor.partition_for(org_id),
        )

    @entry_point("read_public")
    def read_public(self, ctx: TransactionContext, name: str) -> PublicAsset:
        return self._accessor(ctx).read_public(name)

    @entry_point("read_private_details")
    def read_private_details(self, ctx: TransactionContext, name: str) -> PrivateAsset:
        org_id = self._org_id(ctx)
        return self._accessor(ctx).read_private(name, org_id)

    def _verify(
        self,
        accessor: RecordAccessor,
        org_id: str,
        payload: bytes,
        name: str,
    ) -> bool:
        prior = accessor.read_private_hash(name, org_id)
        return self.verifier.verify(prior, payload, name=name)

    @entry_point("verify_private_commitment")
    def verify_private_commitment(self, ctx: TransactionContext, org_id: str) -> bool:
        """
        Check the transient private properties against the commitment stored
        in ``org_id``'s partition.

        Returns True, or raises CommitmentMismatch.
        """
        if not org_id:
            raise DecodeError("organization id must not be empty", field="orgID")
        payload = self._transient(ctx, TRANSIENT_PROPERTIES)
        claimed = PrivateAsset.from_json_bytes(payload, what=TRANSIENT_PROPERTIES)
        return self._verify(self._accessor(ctx), org_id, payload, claimed.name)

    @entry_point("update_public")
    def update_public(self, ctx: TransactionContext, input_data: Union[str, bytes]) -> None:
        update = PublicUpdate.from_json_bytes(input_data)
        accessor = self._accessor(ctx)
        current = accessor.read_public(update.mobile_id)
        accessor.write_public(PublicAsset(
            name=current.name,
            color=update.new_color,
            size=current.size,
        ))
        logger.info("public record updated", name=current.name)

    @entry_point("update_private")
    def update_private(self, ctx: TransactionContext) -> None:
        """
        Apply a partial update to the caller's private record.

        The caller must present the current private bytes, which are verified
        against the commitment in the caller's own partition before any
        change is written.
        """
        existing_payload = self._transient(ctx, TRANSIENT_PROPERTIES)
        existing = PrivateAsset.from_json_bytes(existing_payload, what=TRANSIENT_PROPERTIES)
        new_payload = self._transient(ctx, TRANSIENT_NEW_PROPERTIES)
        patch = PrivateAssetPatch.from_json_bytes(
            new_payload,
            what=TRANSIENT_NEW_PROPERTIES,
            sentinel_compat=self.sentinel_compat,
        )
        if existing.name != patch.name:
            raise NameMismatch(existing.name, patch.name)

        org_id = self._org_id(ctx)
        accessor = self._accessor(ctx)
        self._verify(accessor, org_id, existing_payload, existing.name)

        merged = patch.apply(existing)
        accessor.write_private(merged, org_id)
        logger.info(
            "private record updated",
            name=merged.name,
            partition=accessor.partition_for(org_id),
            fields=",".join(f for f in ("owner", "price") if getattr(patch, f) is not None) or "-",
        )

    @entry_point("delete")
    def delete(self, ctx: TransactionContext, name: str) -> None:
        accessor = self._accessor(ctx)
        if not accessor.public_exists(name):
            raise NotFound("public", name)

        org_id = self._org_id(ctx)
        accessor.delete_private(name, org_id)
        accessor.delete_public(name)
        logger.info("asset deleted", name=name, partition=accessor.partition_for(org_id))

    @entry_point("reconcile")
    def reconcile(
        self,
        ctx: TransactionContext,
        name: str,
        repair: Union[bool, str] = False,
    ) -> ReconcileReport:
        """
        Classify ``name`` as seen from the caller's partition and optionally
        delete the orphaned half.

        Only the caller's partition is examined, so a public record whose
        private half lives in another organization's partition is reported as
        orphaned from this caller's point of view.
        """
        accessor = self._accessor(ctx)
        org_id = self._org_id(ctx)
        partition = accessor.partition_for(org_id)

        has_public = accessor.public_exists(name)
        has_private = accessor.private_exists(name, org_id)
        if has_public and has_private:
            status = ReconcileStatus.CONSISTENT
        elif has_public:
            status = ReconcileStatus.ORPHANED_PUBLIC
        elif has_private:
            status = ReconcileStatus.ORPHANED_PRIVATE
        else:
            status = ReconcileStatus.ABSENT

        repaired = False
        if status.is_orphan:
            logger.warning("orphaned record detected", name=name, partition=partition, status=status.value)
            if _as_bool(repair):
                if status is ReconcileStatus.ORPHANED_PUBLIC:
                    accessor.delete_public(name)
                else:
                    accessor.delete_private(name, org_id)
                repaired = True

        return ReconcileReport(name=name, partition=partition, status=status, repaired=repaired)

    # -- dispatch ---------------------------------------------------------------

    def resolve(self, function: str) -> Callable[..., Any]:
        method_name = self.TRANSACTIONS.get(function)
        if method_name is None:
            raise UnknownTransaction(function)
        return getattr(self, method_name)

    def _audit_org(self, ctx: TransactionContext) -> str:
        try:
            return self._org_id(ctx)
        except IdentityError:
            return ""

    def invoke(self, ctx: TransactionContext, function: str, *args: Any) -> Any:
        """
        Run a transaction entry point by wire name and record the outcome in
        the audit trail.

        The entry point settles its own write set; a call rejected before it
        runs leaves the stub rolled back.
        """
        handler = self.resolve(function)
        resource = str(args[0]) if args and function in self._NAME_ARG_TRANSACTIONS else ""

        with transaction_scope(ctx.tx_id):
            stub = ctx.stub
            try:
                try:
                    inspect.signature(handler).bind(ctx, *args)
                except TypeError as e:
                    if isinstance(stub, Committable):
                        stub.rollback()
                    raise DecodeError(f"incorrect number of arguments for {function}: {e}") from e
                result = handler(ctx, *args)
            except Exception as e:
                error_code = e.code if isinstance(e, AssetError) else type(e).__name__
                self.audit.log(function, resource, self._audit_org(ctx), "failure", error_code=error_code)
                raise

            self.audit.log(function, resource, self._audit_org(ctx), "success")
            return result
