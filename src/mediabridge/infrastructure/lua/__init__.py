"""Lua plugin host: marshaling, capabilities and the provider adapter."""

from __future__ import annotations

from .capabilities import EachErrorPolicy, PluginCapabilities
from .document import QueryableDocument
from .marshal import PluginRecord, to_native_value, to_plugin_value
from .provider import LuaProvider

__all__ = [
    "EachErrorPolicy",
    "LuaProvider",
    "PluginCapabilities",
    "PluginRecord",
    "QueryableDocument",
    "to_native_value",
    "to_plugin_value",
]
