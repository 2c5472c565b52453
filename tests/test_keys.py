"""Tests for canonical key derivation."""

import datetime as dt
import re

import pytest

import revalx.keys as keys_mod
from revalx import UNDEFINED, FrozenProps, derive_key, freeze


class TestDeterminism:
    def test_mapping_key_order_ignored(self):
        assert derive_key({"a": 1, "b": 2}) == derive_key({"b": 2, "a": 1})

    def test_nested_mapping_key_order_ignored(self):
        left = {"outer": {"c": 1, "b": [1, {"y": 2, "x": 1}]}}
        right = {"outer": {"b": [1, {"x": 1, "y": 2}], "c": 1}}
        assert derive_key(left) == derive_key(right)

    def test_absent_equals_none(self):
        assert derive_key({"a": None}) == derive_key({})
        assert derive_key({"a": UNDEFINED, "b": 1}) == derive_key({"b": 1})
        assert derive_key({"a": float("nan")}) == derive_key({})

    def test_missing_input_is_empty_mapping(self):
        assert derive_key() == derive_key({}) == ""

    def test_mapping_format(self):
        assert derive_key({"b": "x", "a": 1}) == '{"a":1,"b":"x"}'

    def test_sequence_order_matters(self):
        assert derive_key([1, 2]) != derive_key([2, 1])
        assert derive_key((1, 2)) == derive_key([1, 2]) == "1,2"

    def test_int_and_integral_float_agree(self):
        assert derive_key(1) == derive_key(1.0) == "1"
        assert derive_key(1.5) == "1.5"


class TestSentinels:
    def test_leaf_sentinels(self):
        assert derive_key(None) == "#N"
        assert derive_key("") == "#E"
        assert derive_key([UNDEFINED, None, ""]) == "#U,#N,#E"

    def test_sentinels_survive_nesting(self):
        assert derive_key({"a": [None, ""]}) == '{"a":#N,#E}'
        assert derive_key({"a": ""}) == '{"a":#E}'

    def test_nan_leaf(self):
        assert derive_key(float("nan")) == "NaN"
        assert derive_key([float("nan")]) == "NaN"

    def test_falsy_scalars(self):
        assert derive_key(0) == "0"
        assert derive_key(False) == "false"
        assert derive_key(True) == "true"

    def test_strings_are_quoted(self):
        assert derive_key("abc") == '"abc"'
        assert derive_key("#N") != derive_key(None)
        assert derive_key("héllo") == '"héllo"'


class TestSpecialValues:
    def test_datetime_by_epoch_millis(self):
        moment = dt.datetime(1970, 1, 1, 0, 0, 1, tzinfo=dt.timezone.utc)
        assert derive_key(moment) == "D:1000"
        assert derive_key(dt.date(1970, 1, 2)) == "D:86400000"

    def test_equal_instants_in_different_zones(self):
        utc = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)
        plus_two = utc.astimezone(dt.timezone(dt.timedelta(hours=2)))
        assert derive_key(utc) == derive_key(plus_two)

    def test_pattern_by_text(self):
        assert derive_key(re.compile("a+")).startswith("R:/a+/")
        assert derive_key(re.compile("a+")) == derive_key(re.compile("a+"))
        assert derive_key(re.compile("a+")) != derive_key(re.compile("a+", re.IGNORECASE))

    def test_opaque_values(self):
        assert derive_key(object()) == "#I"
        assert derive_key({1, 2}) == "#I"
        assert derive_key(len) == "#I"
        assert derive_key("#I") != "#I"

    def test_never_raises(self):
        loop = []
        loop.append(loop)
        assert derive_key(loop) == "#I"


class TestFrozenProps:
    def test_same_key_as_plain_mapping(self):
        assert derive_key(freeze({"b": 2, "a": 1})) == derive_key({"a": 1, "b": 2})

    def test_immutable(self):
        props = freeze({"a": 1})
        with pytest.raises(TypeError):
            props["a"] = 2

    def test_deep_freeze(self):
        props = freeze({"a": {"b": [1, 2]}})
        assert isinstance(props["a"], FrozenProps)
        assert props["a"]["b"] == (1, 2)

    def test_kwargs(self):
        assert dict(freeze(a=1, b=2)) == {"a": 1, "b": 2}

    def test_freeze_is_idempotent(self):
        props = freeze({"a": 1})
        assert freeze(props) is props

    def test_hash_follows_key(self):
        assert hash(freeze({"a": 1, "b": None})) == hash(freeze({"a": 1}))

    def test_key_memoized_on_instance(self, monkeypatch):
        calls = []
        original = keys_mod._serialize_mapping

        def counting(value):
            calls.append(value)
            return original(value)

        monkeypatch.setattr(keys_mod, "_serialize_mapping", counting)
        props = freeze({"a": 1})
        first = derive_key(props)
        second = derive_key(props)
        assert first == second == '{"a":1}'
        assert len(calls) == 1

    def test_plain_mapping_recomputed(self, monkeypatch):
        calls = []
        original = keys_mod._serialize_mapping

        def counting(value):
            calls.append(value)
            return original(value)

        monkeypatch.setattr(keys_mod, "_serialize_mapping", counting)
        props = {"a": 1}
        derive_key(props)
        derive_key(props)
        assert len(calls) == 2
