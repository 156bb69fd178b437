"""Shared fixtures for integration tests.

These tests use real infrastructure components (config loader,
ProviderRegistry, LuaProvider, the default extractors) with mocked HTTP
via respx.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
import respx

from mediabridge.infrastructure.config.schema import AppConfig

_EXAMPLE_PLUGIN = Path(__file__).parent.parent.parent / "plugins" / "example.lua"


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def plugin_dir(tmp_path: Path) -> Path:
    """Plugin directory holding a copy of the bundled example plugin."""
    directory = tmp_path / "plugins"
    directory.mkdir()
    shutil.copy(_EXAMPLE_PLUGIN, directory / "example.lua")
    return directory


@pytest.fixture()
def plugins_only_config(plugin_dir: Path) -> AppConfig:
    """Config with native adapters switched off so only plugins load."""
    return AppConfig.model_validate(
        {
            "plugins": {"plugin_dir": str(plugin_dir), "extract_timeout_seconds": 5.0},
            "providers": {"flixhq": {"enabled": False}, "sflix": {"enabled": False}},
        }
    )
