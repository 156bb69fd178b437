"""Tests for Python <-> Lua value conversion."""

from __future__ import annotations

import math
from typing import Any

import lupa
import pytest

from mediabridge.infrastructure.lua.marshal import (
    PluginRecord,
    records_from,
    texts_from,
    to_native_value,
    to_plugin_value,
)


@pytest.fixture()
def runtime() -> lupa.LuaRuntime:
    return lupa.LuaRuntime(unpack_returned_tuples=True)


class TestRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            None,
            True,
            42,
            1.5,
            "héllo",
            [],
            [1, "two", 3.0],
            {"title": "Inception", "year": 2010, "genres": ["Action", "Sci-Fi"]},
            {"nested": {"list": [{"a": 1}, {"b": [True, False]}]}},
        ],
    )
    def test_native_value_survives(self, runtime: lupa.LuaRuntime, value: Any) -> None:
        assert to_native_value(to_plugin_value(runtime, value)) == value

    def test_tuple_becomes_list(self, runtime: lupa.LuaRuntime) -> None:
        assert to_native_value(to_plugin_value(runtime, ("a", "b"))) == ["a", "b"]

    def test_unsupported_objects_become_nil(self, runtime: lupa.LuaRuntime) -> None:
        assert to_plugin_value(runtime, object()) is None
        table = to_plugin_value(runtime, {"keep": 1, 2: "dropped"})
        assert to_native_value(table) == {"keep": 1}

    def test_empty_mapping_comes_back_as_list(self, runtime: lupa.LuaRuntime) -> None:
        # Lua has one empty table; only the top level can be reshaped.
        assert to_native_value(to_plugin_value(runtime, {"a": {}})) == {"a": []}
        assert to_native_value(to_plugin_value(runtime, {}), dict) == {}

    def test_integer_beyond_64_bits_becomes_float(self, runtime: lupa.LuaRuntime) -> None:
        assert to_plugin_value(runtime, 2**63 - 1) == 2**63 - 1
        assert to_plugin_value(runtime, 2**63) == float(2**63)
        assert to_plugin_value(runtime, -(2**64)) == -float(2**64)
        assert to_plugin_value(runtime, 10**400) == math.inf
        assert to_plugin_value(runtime, -(10**400)) == -math.inf
        table = to_plugin_value(runtime, {"n": 10**30})
        assert to_native_value(table) == {"n": float(10**30)}


class TestFromLua:
    def test_sequence_table_is_list(self, runtime: lupa.LuaRuntime) -> None:
        assert to_native_value(runtime.execute("return {10, 20, 30}")) == [10, 20, 30]

    def test_empty_table_is_empty_list(self, runtime: lupa.LuaRuntime) -> None:
        assert to_native_value(runtime.execute("return {}")) == []

    def test_sparse_table_is_dict(self, runtime: lupa.LuaRuntime) -> None:
        value = to_native_value(runtime.execute("return {[1] = 'a', [3] = 'c'}"))
        assert value == {"1": "a", "3": "c"}

    def test_mixed_table_is_dict(self, runtime: lupa.LuaRuntime) -> None:
        value = to_native_value(runtime.execute("return {'x', name = 'y'}"))
        assert value == {"1": "x", "name": "y"}

    def test_function_becomes_none(self, runtime: lupa.LuaRuntime) -> None:
        value = to_native_value(runtime.execute("return {f = function() end, n = 1}"))
        assert value == {"f": None, "n": 1}

    def test_self_reference_is_cut(self, runtime: lupa.LuaRuntime) -> None:
        value = to_native_value(runtime.execute("local t = {}; t.self = t; return t"))
        depth = 0
        while isinstance(value, dict):
            value = value["self"]
            depth += 1
        assert value is None
        assert depth > 1

    def test_shape_coercion(self, runtime: lupa.LuaRuntime) -> None:
        assert to_native_value(runtime.execute("return 7"), str) == "7"
        assert to_native_value(runtime.execute("return '12'"), int) == 12
        assert to_native_value(runtime.execute("return nil"), list) == []
        assert to_native_value(runtime.execute("return 'x'"), bool) is False


class TestPluginRecord:
    def test_permissive_fields(self) -> None:
        record = PluginRecord(
            {"title": "T", "year": "2001", "score": 7, "m3u8": True, "n": 3.0}
        )
        assert record.text("title") == "T"
        assert record.integer("year") == 2001
        assert record.number("score") == 7.0
        assert record.flag("m3u8") is True
        assert record.text("n") == "3"
        assert record.text("missing") == ""
        assert record.integer("title") == 0
        assert "title" in record
        assert "missing" not in record

    def test_non_dict_is_empty(self) -> None:
        record = PluginRecord(["not", "a", "record"])
        assert record.text("title") == ""

    def test_mapping_keeps_text_values(self) -> None:
        record = PluginRecord({"headers": {"Referer": "r", "X-Num": 5, "bad": {}}})
        assert record.mapping("headers") == {"Referer": "r", "X-Num": "5"}


def test_records_from_skips_non_tables() -> None:
    rows = records_from([{"id": "1"}, "junk", 3, {"id": "2"}], context="search")
    assert [row.text("id") for row in rows] == ["1", "2"]


def test_records_from_non_list() -> None:
    assert records_from(None) == []
    assert records_from("x") == []


def test_texts_from() -> None:
    assert texts_from(["auto", 1080, "", None, "720p"]) == ["auto", "1080", "720p"]
