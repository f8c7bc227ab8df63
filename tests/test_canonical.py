"""Tests for canonical serialization of signed structures."""

from types import MappingProxyType

import pytest

from actioncodes.protocol.canonical import (
    CanonicalSerializationError,
    canonical_serialize,
    code_message,
    get_field_order,
)


class TestCanonicalSerialize:
    """Field ordering and compact output."""

    def test_orders_known_fields(self):
        out = canonical_serialize("code", {"chain": "solana", "code": "AB12CD34"})
        assert out == b'{"code":"AB12CD34","chain":"solana"}'

    def test_extra_fields_appended_sorted(self):
        out = canonical_serialize("code", {"zeta": 1, "code": "X", "alpha": 2})
        assert out == b'{"code":"X","alpha":2,"zeta":1}'

    def test_none_omitted(self):
        out = canonical_serialize("delegation", {"v": "1", "chain": None})
        assert out == b'{"v":"1"}'

    def test_unicode_kept(self):
        out = canonical_serialize("code", {"code": "Café"})
        assert out == '{"code":"Café"}'.encode("utf-8")

    def test_unknown_kind(self):
        with pytest.raises(CanonicalSerializationError, match="Unknown structure"):
            canonical_serialize("passport", {})

    def test_nan_rejected(self):
        with pytest.raises(CanonicalSerializationError):
            canonical_serialize("code", {"code": float("nan")})

    def test_sets_sorted(self):
        out = canonical_serialize("issuer", {"scope": {"chains": {"sui", "bitcoin"}}})
        assert out == b'{"scope":{"chains":["bitcoin","sui"]}}'

    def test_unsortable_set_rejected(self):
        with pytest.raises(CanonicalSerializationError):
            canonical_serialize("code", {"metadata": {"x": {1, "a"}}})

    def test_non_string_keys_rejected(self):
        # 1 and "1" would otherwise collide in the JSON output
        with pytest.raises(CanonicalSerializationError, match="Non-string key"):
            canonical_serialize("code", {"metadata": {1: "a", "1": "b"}})

    def test_read_only_mappings_serialized(self):
        out = canonical_serialize("code", {"metadata": MappingProxyType({"b": 1, "a": (2, 3)})})
        assert out == b'{"metadata":{"a":[2,3],"b":1}}'

    def test_get_field_order(self):
        assert get_field_order("code")[0] == "code"
        assert get_field_order("nope") is None


class TestCodeMessage:
    """Validation of code message inputs."""

    def test_basic(self):
        assert code_message("AB12CD34", "pk", 1000, "solana") == (
            b'{"code":"AB12CD34","pubkey":"pk","timestamp":1000,"chain":"solana"}'
        )

    def test_empty_metadata_omitted(self):
        assert code_message("C", "pk", 1, "solana", {}) == code_message("C", "pk", 1, "solana")

    @pytest.mark.parametrize("kwargs", [
        {"code": ""},
        {"pubkey": None},
        {"chain": 5},
        {"timestamp": "1000"},
        {"timestamp": False},
        {"metadata": ["not", "a", "map"]},
    ])
    def test_rejects_bad_fields(self, kwargs):
        args = {"code": "C", "pubkey": "pk", "timestamp": 1, "chain": "solana"}
        args.update(kwargs)
        with pytest.raises(CanonicalSerializationError):
            code_message(**args)
