"""Bundled JSON schemas."""

import json

import pytest
from jsonschema import Draft202012Validator

from pdc.schema import (
    PRIVATE_ASSET_PATCH_SCHEMA,
    PRIVATE_ASSET_SCHEMA,
    PUBLIC_ASSET_SCHEMA,
    PUBLIC_UPDATE_SCHEMA,
    SCHEMAS_DIR,
    validate_with_schema,
)


@pytest.mark.parametrize("path", sorted(SCHEMAS_DIR.glob("*.schema.json")), ids=lambda p: p.name)
def test_schemas_are_valid_2020_12(path):
    schema = json.loads(path.read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(schema)
    assert schema["$id"].endswith("/" + path.name)


def test_valid_public_asset():
    assert validate_with_schema({"name": "m1", "color": "red", "size": 5}, PUBLIC_ASSET_SCHEMA) == []


def test_boolean_is_not_an_integer():
    errors = validate_with_schema({"name": "m1", "color": "red", "size": True}, PUBLIC_ASSET_SCHEMA)
    assert errors and errors[0].startswith("$.size")


def test_errors_are_ordered_by_path():
    errors = validate_with_schema({"name": "", "owner": 1, "price": -1}, PRIVATE_ASSET_SCHEMA)
    assert [e.split(":")[0] for e in errors] == ["$.name", "$.owner", "$.price"]


def test_patch_allows_nulls():
    assert validate_with_schema({"name": "m1", "owner": None, "price": None}, PRIVATE_ASSET_PATCH_SCHEMA) == []


def test_patch_rejects_negative_price():
    assert validate_with_schema({"name": "m1", "price": -5}, PRIVATE_ASSET_PATCH_SCHEMA)


def test_public_update_requires_both_fields():
    errors = validate_with_schema({}, PUBLIC_UPDATE_SCHEMA)
    assert len(errors) == 2
