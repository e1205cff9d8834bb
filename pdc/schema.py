"""JSON Schema validation for structured and transient transaction inputs.

Schemas live in ``pdc/schemas`` and cross-reference each other through a
shared ``referencing`` registry, so a schema can ``$ref`` the common
definitions by relative URI.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"

PUBLIC_ASSET_SCHEMA = "public-asset.schema.json"
PRIVATE_ASSET_SCHEMA = "private-asset.schema.json"
PRIVATE_ASSET_PATCH_SCHEMA = "private-asset-patch.schema.json"
PUBLIC_UPDATE_SCHEMA = "public-update.schema.json"


def _load_schema(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def _schema_registry() -> Registry:
    """Registry of every bundled schema, keyed by its ``$id``."""
    resources = []
    for schema_path in sorted(SCHEMAS_DIR.glob("*.schema.json")):
        schema = _load_schema(schema_path)
        schema_id = schema.get("$id") or schema_path.name
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(schema_name: str) -> Draft202012Validator:
    """Cached validator for a bundled schema file name."""
    schema = _load_schema(SCHEMAS_DIR / schema_name)
    return Draft202012Validator(schema, registry=_schema_registry())


def validate_with_schema(obj: Any, schema_name: str) -> List[str]:
    """Validate ``obj``; return error messages (empty when valid)."""
    validator = schema_validator(schema_name)
    errors = sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    return [f"{e.json_path}: {e.message}" for e in errors]
