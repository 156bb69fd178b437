"""Conversion between Python values and Lua values.

Python -> Lua: ``str``, numbers, ``bool``, ``None``, sequences and
string-keyed mappings (recursively). Integers beyond 64 bits become floats.
Anything else becomes ``nil``.

Lua -> Python: a table whose keys are exactly ``1..n`` becomes a ``list``
(an empty table becomes ``[]``), any other table a ``dict`` with string
keys. Functions, userdata and coroutines become ``None``. An empty table
carries no hint of which it was, so ``{"a": {}}`` comes back as
``{"a": []}``; ``shape=dict`` restores ``{}`` at the top level only.

Plugins are loosely typed, so field access on their records is permissive:
a missing or mistyped field yields the zero value of the requested type.
``PluginRecord`` is the one place that rule lives.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

import lupa
import structlog

log = structlog.get_logger(__name__)

# Guards against self-referencing tables.
_MAX_DEPTH = 64

# Lua integers are 64-bit; wider values travel as floats.
_LUA_INT_MIN = -(2**63)
_LUA_INT_MAX = 2**63 - 1

_SHAPE_ZERO: dict[type, Any] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    list: [],
    dict: {},
}


def to_plugin_value(runtime: lupa.LuaRuntime, value: Any) -> Any:
    """Convert a native value into something the Lua runtime accepts."""
    if isinstance(value, int) and not isinstance(value, bool):
        if not _LUA_INT_MIN <= value <= _LUA_INT_MAX:
            try:
                return float(value)
            except OverflowError:
                return math.copysign(math.inf, value)
        return value
    if value is None or isinstance(value, (bool, float, str)):
        return value
    if isinstance(value, Mapping):
        table = runtime.table()
        for key, item in value.items():
            if isinstance(key, str):
                table[key] = to_plugin_value(runtime, item)
        return table
    if isinstance(value, (list, tuple)):
        table = runtime.table()
        for index, item in enumerate(value, start=1):
            table[index] = to_plugin_value(runtime, item)
        return table
    return None


def to_native_value(value: Any, shape: type | None = None) -> Any:
    """Convert a Lua value into plain Python data.

    With ``shape`` the result is coerced to that type, falling back to the
    type's zero value when the Lua value does not fit.
    """
    native = _convert(value, 0)
    if shape is None:
        return native
    return _coerce(native, shape)


def _convert(value: Any, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        log.debug("lua_table_too_deep", max_depth=_MAX_DEPTH)
        return None
    kind = lupa.lua_type(value)
    if kind == "table":
        return _table_to_native(value, depth)
    if kind is not None:
        # function, userdata, thread
        return None
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    # Python objects handed to Lua and returned unchanged.
    return None


def _table_to_native(table: Any, depth: int) -> list[Any] | dict[str, Any]:
    items = list(table.items())
    if not items:
        return []

    keys = [key for key, _ in items]
    if all(isinstance(key, int) and not isinstance(key, bool) for key in keys):
        if sorted(keys) == list(range(1, len(keys) + 1)):
            by_index = dict(items)
            return [_convert(by_index[i], depth + 1) for i in range(1, len(keys) + 1)]

    return {_key_text(key): _convert(item, depth + 1) for key, item in items}


def _key_text(key: Any) -> str:
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    if isinstance(key, float) and key.is_integer():
        return str(int(key))
    return str(key)


def _coerce(value: Any, shape: type) -> Any:
    zero = _SHAPE_ZERO.get(shape)
    if shape is bool:
        return value if isinstance(value, bool) else False
    if shape is str:
        return _as_text(value)
    if shape is int:
        return _as_int(value)
    if shape is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return 0.0
    if isinstance(value, shape):
        return value
    return type(zero)() if zero is not None else None


def _as_text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return default


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


class PluginRecord:
    """Read-only, permissive view over one table returned by a plugin."""

    __slots__ = ("_data",)

    def __init__(self, data: Any) -> None:
        self._data: dict[str, Any] = data if isinstance(data, dict) else {}

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"PluginRecord({self._data!r})"

    def text(self, key: str, default: str = "") -> str:
        return _as_text(self._data.get(key), default)

    def integer(self, key: str, default: int = 0) -> int:
        return _as_int(self._data.get(key), default)

    def number(self, key: str, default: float = 0.0) -> float:
        value = self._data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return default

    def flag(self, key: str, default: bool = False) -> bool:
        value = self._data.get(key)
        return value if isinstance(value, bool) else default

    def texts(self, key: str) -> list[str]:
        return texts_from(self._data.get(key))

    def records(self, key: str) -> list[PluginRecord]:
        return records_from(self._data.get(key), context=key)

    def mapping(self, key: str) -> dict[str, str]:
        value = self._data.get(key)
        if not isinstance(value, dict):
            return {}
        return {k: _as_text(v) for k, v in value.items() if _as_text(v)}


def records_from(value: Any, *, context: str = "") -> list[PluginRecord]:
    """Rows of a list-shaped plugin result; non-table rows are skipped."""
    if not isinstance(value, list):
        if value not in (None, {}):
            log.debug(
                "plugin_list_expected", context=context, got=type(value).__name__
            )
        return []

    rows: list[PluginRecord] = []
    for index, item in enumerate(value, start=1):
        if not isinstance(item, dict):
            log.debug(
                "plugin_row_skipped",
                context=context,
                index=index,
                got=type(item).__name__,
            )
            continue
        rows.append(PluginRecord(item))
    return rows


def texts_from(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_as_text(item) for item in value) if text]
