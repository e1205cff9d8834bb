"""Asset records and their JSON wire encoding.

All structured payloads are UTF-8 JSON objects. Decoding validates against the
bundled JSON Schemas; encoding is compact with a fixed field order so that the
same record always produces the same bytes (and therefore the same
commitment digest).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Union

from pdc.errors import DecodeError
from pdc.keys import RecordType
from pdc.schema import (
    PRIVATE_ASSET_PATCH_SCHEMA,
    PRIVATE_ASSET_SCHEMA,
    PUBLIC_ASSET_SCHEMA,
    PUBLIC_UPDATE_SCHEMA,
    validate_with_schema,
)

Payload = Union[bytes, str]


def decode_json_object(data: Payload, what: str, schema_name: str) -> Dict[str, Any]:
    """Parse ``data`` as a JSON object and validate it against a schema."""
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"failed to unmarshal JSON: {e}", field=what) from e
    if not isinstance(obj, dict):
        raise DecodeError(f"expected a JSON object, got {type(obj).__name__}", field=what)
    errors = validate_with_schema(obj, schema_name)
    if errors:
        raise DecodeError(errors[0], field=what)
    return obj


def encode_json(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class PublicAsset:
    """World-state record readable by every organization."""
    name: str
    color: str
    size: int
    record_type: RecordType = RecordType.PUBLIC

    def to_dict(self) -> Dict[str, Any]:
        return {
            "doctype": self.record_type.value,
            "name": self.name,
            "color": self.color,
            "size": self.size,
        }

    def to_json_bytes(self) -> bytes:
        return encode_json(self.to_dict())

    @classmethod
    def from_json_bytes(cls, data: Payload, what: str = "public asset") -> "PublicAsset":
        obj = decode_json_object(data, what, PUBLIC_ASSET_SCHEMA)
        return cls(name=obj["name"], color=obj["color"], size=int(obj["size"]))


@dataclass(frozen=True)
class PrivateAsset:
    """Record held in an organization's private partition."""
    name: str
    owner: str
    price: int
    record_type: RecordType = RecordType.PRIVATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "doctype": self.record_type.value,
            "name": self.name,
            "owner": self.owner,
            "price": self.price,
        }

    def to_json_bytes(self) -> bytes:
        return encode_json(self.to_dict())

    @classmethod
    def from_json_bytes(cls, data: Payload, what: str = "private asset") -> "PrivateAsset":
        obj = decode_json_object(data, what, PRIVATE_ASSET_SCHEMA)
        return cls(name=obj["name"], owner=obj["owner"], price=int(obj["price"]))


@dataclass(frozen=True)
class PrivateAssetPatch:
    """
    Partial update of a private record.

    ``None`` means "leave unchanged"; any other value, including ``""`` and
    ``0``, replaces the stored field.
    """
    name: str
    owner: Optional[str] = None
    price: Optional[int] = None

    def apply(self, existing: PrivateAsset) -> PrivateAsset:
        changes: Dict[str, Any] = {}
        if self.owner is not None:
            changes["owner"] = self.owner
        if self.price is not None:
            changes["price"] = self.price
        return replace(existing, **changes)

    @property
    def is_empty(self) -> bool:
        return self.owner is None and self.price is None

    @classmethod
    def from_json_bytes(
        cls,
        data: Payload,
        what: str = "private asset patch",
        sentinel_compat: bool = True,
    ) -> "PrivateAssetPatch":
        """
        Decode a patch from the wire.

        With ``sentinel_compat`` the legacy convention applies on top of
        explicit absence: an empty owner or a zero price also means unchanged.
        """
        obj = decode_json_object(data, what, PRIVATE_ASSET_PATCH_SCHEMA)
        owner = obj.get("owner")
        price = obj.get("price")
        if price is not None:
            price = int(price)
        if sentinel_compat:
            if owner == "":
                owner = None
            if price == 0:
                price = None
        return cls(name=obj["name"], owner=owner, price=price)


@dataclass(frozen=True)
class PublicUpdate:
    """Input of the public color update."""
    mobile_id: str
    new_color: str

    @classmethod
    def from_json_bytes(cls, data: Payload) -> "PublicUpdate":
        obj = decode_json_object(data, "public update", PUBLIC_UPDATE_SCHEMA)
        return cls(mobile_id=obj["mobileId"], new_color=obj["newColor"])
