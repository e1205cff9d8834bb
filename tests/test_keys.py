"""Composite key derivation and partition naming."""

import pytest

from pdc.errors import DecodeError, KeyDerivationError
from pdc.keys import (
    COMPOSITE_KEY_INDEX,
    RecordType,
    asset_key,
    derive_key,
    partition_name,
    printable_key,
    split_key,
)


class TestDeriveKey:

    def test_layout_matches_ledger_namespace(self):
        key = derive_key("name~doctype", ["m1", "MOBILE"])
        assert key == "\x00name~doctype\x00m1\x00MOBILE\x00"

    def test_deterministic(self):
        assert derive_key(COMPOSITE_KEY_INDEX, ["m1", "MOBILE"]) == derive_key(
            COMPOSITE_KEY_INDEX, ["m1", "MOBILE"]
        )

    def test_public_and_private_keys_differ(self):
        assert asset_key("m1", RecordType.PUBLIC) != asset_key("m1", RecordType.PRIVATE)

    def test_attribute_boundaries_do_not_collide(self):
        assert derive_key("idx", ["a", "bc"]) != derive_key("idx", ["ab", "c"])

    def test_no_attributes(self):
        assert derive_key("idx", []) == "\x00idx\x00"

    def test_separator_in_name_rejected(self):
        with pytest.raises(KeyDerivationError) as exc_info:
            asset_key("m\x001", RecordType.PUBLIC)
        assert "attributes[0]" in str(exc_info.value)

    def test_max_rune_rejected(self):
        with pytest.raises(KeyDerivationError):
            derive_key("idx", ["m\U0010ffff"])

    def test_empty_index_rejected(self):
        with pytest.raises(KeyDerivationError):
            derive_key("", ["m1"])

    def test_key_error_is_a_decode_error(self):
        with pytest.raises(DecodeError):
            derive_key("idx", [42])  # type: ignore[list-item]

    def test_unicode_names_supported(self):
        key = asset_key("téléphone-📱", RecordType.PRIVATE)
        assert split_key(key) == (COMPOSITE_KEY_INDEX, ["téléphone-📱", "MOBILE_PRIVATE"])


class TestSplitKey:

    def test_round_trip(self):
        key = derive_key("name~doctype", ["m1", "MOBILE_PRIVATE"])
        assert split_key(key) == ("name~doctype", ["m1", "MOBILE_PRIVATE"])

    def test_rejects_simple_key(self):
        with pytest.raises(KeyDerivationError):
            split_key("m1")


class TestRecordType:

    def test_wire_tags(self):
        assert RecordType.PUBLIC.value == "MOBILE"
        assert RecordType.PRIVATE.value == "MOBILE_PRIVATE"

    def test_from_tag(self):
        assert RecordType.from_tag("MOBILE_PRIVATE") is RecordType.PRIVATE

    def test_unknown_tag(self):
        with pytest.raises(KeyDerivationError):
            RecordType.from_tag("CAR")


def test_partition_name_default_prefix():
    assert partition_name("Org1MSP") == "_implicit_org_Org1MSP"


def test_partition_name_custom_prefix():
    assert partition_name("Org1MSP", prefix="_pdc_") == "_pdc_Org1MSP"


def test_printable_key():
    assert printable_key(asset_key("m1", RecordType.PUBLIC)) == "\\x00name~doctype\\x00m1\\x00MOBILE\\x00"
