"""Permission decoding: every historic shape normalizes to the same PermissionCode."""

import pytest

from access_ledger.domain.exceptions import ConfigurationError, UnknownVerbError
from access_ledger.domain.models.permission import (
    ALL_VERBS,
    BareBool,
    CompactCode,
    PermissionCode,
    Verb,
    VerbList,
    VerbObject,
    classify,
    decode_permission,
    encode_permissions,
)

VCU = frozenset({Verb.VIEW, Verb.CREATE, Verb.UPDATE})


def test_compact_verb_object_and_verb_list_decode_identically():
    compact = decode_permission("rcu")
    verb_object = decode_permission({"view": True, "create": True, "update": True})
    verb_list = decode_permission(["read", "create", "edit"])
    assert compact.granted == verb_object.granted == verb_list.granted == VCU


def test_unknown_code_characters_are_ignored():
    assert decode_permission("rxz?").granted == frozenset({Verb.VIEW})
    assert CompactCode("rxz?").unknown_characters == "xz?"


def test_unknown_verb_names_and_non_bool_flags_are_ignored():
    code = decode_permission({"view": True, "approve": True, "create": "yes", "delete": 1})
    assert code.granted == frozenset({Verb.VIEW})
    assert code.revoked == frozenset()


def test_verb_object_false_is_recorded_as_revoked():
    code = decode_permission({"view": True, "delete": False})
    assert code.granted == frozenset({Verb.VIEW})
    assert code.revoked == frozenset({Verb.DELETE})


def test_bare_booleans():
    assert decode_permission(True).granted == ALL_VERBS
    denied = decode_permission(False)
    assert denied.granted == frozenset()
    assert denied.revoked == ALL_VERBS


def test_none_decodes_to_empty():
    assert decode_permission(None) == PermissionCode()


def test_wrong_type_raises_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        decode_permission(42, "orders")
    assert exc_info.value.module == "orders"
    assert "orders" in exc_info.value.message


def test_classify_tags_each_shape():
    assert isinstance(classify("r"), CompactCode)
    assert isinstance(classify({"view": True}), VerbObject)
    assert isinstance(classify(["view"]), VerbList)
    assert isinstance(classify(True), BareBool)


def test_encode_uses_canonical_order():
    assert decode_permission("eur").encode() == "rue"
    assert PermissionCode(granted=ALL_VERBS).encode() == "rcude"


def test_encode_permissions_converts_any_shape_to_compact():
    encoded = encode_permissions(
        {
            "orders": {"view": True, "export": True},
            "staff": True,
            "coupons": ["remove", "read"],
            "banners": "cr",
        }
    )
    assert encoded == {"orders": "re", "staff": "rcude", "coupons": "rd", "banners": "rc"}


def test_verb_parse_accepts_legacy_names():
    assert Verb.parse("read") is Verb.VIEW
    assert Verb.parse("download") is Verb.EXPORT
    assert Verb.parse(" Update ") is Verb.UPDATE
    with pytest.raises(UnknownVerbError):
        Verb.parse("approve")


def test_permission_code_membership():
    code = decode_permission("rc")
    assert Verb.VIEW in code
    assert Verb.DELETE not in code
