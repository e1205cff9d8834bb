"""Composite key derivation and private partition naming.

Composite keys follow the ledger's namespace layout:

    U+0000 <index> U+0000 <attr1> U+0000 <attr2> U+0000 ...

so two different ``(name, record type)`` pairs never collide as long as no
attribute contains the U+0000 separator. Attributes containing the separator
or U+10FFFF (reserved for range-query upper bounds) are rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence, Tuple

from pdc.errors import KeyDerivationError

COMPOSITE_KEY_NAMESPACE = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"

COMPOSITE_KEY_INDEX = "name~doctype"
DEFAULT_PARTITION_PREFIX = "_implicit_org_"


class RecordType(Enum):
    """Closed set of record schemas stored for an asset."""
    PUBLIC = "MOBILE"
    PRIVATE = "MOBILE_PRIVATE"

    @classmethod
    def from_tag(cls, tag: str) -> "RecordType":
        for member in cls:
            if member.value == tag:
                return member
        raise KeyDerivationError(f"unknown record type tag {tag!r}", field="doctype")


def _validate_attribute(value: str, field: str) -> None:
    if not isinstance(value, str):
        raise KeyDerivationError(f"expected string, got {type(value).__name__}", field=field)
    if COMPOSITE_KEY_NAMESPACE in value:
        raise KeyDerivationError("must not contain U+0000", field=field)
    if MAX_UNICODE_RUNE in value:
        raise KeyDerivationError("must not contain U+10FFFF", field=field)
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise KeyDerivationError(f"not valid UTF-8: {e}", field=field) from e


def derive_key(index_name: str, attributes: Sequence[str]) -> str:
    """Build a composite key from an index name and ordered attributes."""
    if not index_name:
        raise KeyDerivationError("index name must not be empty", field="index")
    _validate_attribute(index_name, "index")

    parts = [COMPOSITE_KEY_NAMESPACE, index_name, COMPOSITE_KEY_NAMESPACE]
    for i, attr in enumerate(attributes):
        _validate_attribute(attr, f"attributes[{i}]")
        parts.append(attr)
        parts.append(COMPOSITE_KEY_NAMESPACE)
    return "".join(parts)


def split_key(key: str) -> Tuple[str, List[str]]:
    """Inverse of derive_key: return ``(index_name, attributes)``."""
    if not key.startswith(COMPOSITE_KEY_NAMESPACE) or not key.endswith(COMPOSITE_KEY_NAMESPACE):
        raise KeyDerivationError("not a composite key", field="key")
    components = key[1:-1].split(COMPOSITE_KEY_NAMESPACE)
    if not components or not components[0]:
        raise KeyDerivationError("composite key has no index name", field="key")
    return components[0], components[1:]


def asset_key(name: str, record_type: RecordType) -> str:
    """Composite key for one of an asset's records."""
    return derive_key(COMPOSITE_KEY_INDEX, [name, record_type.value])


def partition_name(org_id: str, prefix: str = DEFAULT_PARTITION_PREFIX) -> str:
    """Name of the implicit private partition owned by ``org_id``."""
    return f"{prefix}{org_id}"


def printable_key(key: str) -> str:
    """Render a composite key with visible separators, for logs and CLI output."""
    return key.replace(COMPOSITE_KEY_NAMESPACE, "\\x00")
