"""Tests for the mediabridge command line entrypoint."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from mediabridge.interfaces.cli import cli

_PLUGIN = """
function get_name() return "Local" end
function get_type() return "anime" end

function search(query)
  return { { id = "a1", title = query, type = "anime", year = 2001 } }
end

function get_seasons(media_id)
  return { { id = media_id .. "|1", number = 1, title = "Season 1" } }
end

function get_stream_url(id, quality)
  if id == "missing" then return "" end
  return "https://cdn.example/" .. id .. ".m3u8"
end

function health_check() return false end
"""


@pytest.fixture(autouse=True)
def cli_logs(monkeypatch: pytest.MonkeyPatch) -> Iterator[list[dict[str, Any]]]:
    """Native adapters off; structlog events captured instead of printed."""
    monkeypatch.setenv("MEDIABRIDGE_FLIXHQ_ENABLED", "false")
    monkeypatch.setenv("MEDIABRIDGE_SFLIX_ENABLED", "false")
    monkeypatch.setattr(cli, "configure_logging", lambda config: None)
    with structlog.testing.capture_logs() as logs:
        yield logs


@pytest.fixture()
def plugin_dir(write_plugin: Callable[..., Path]) -> Path:
    write_plugin(_PLUGIN, name="local")
    write_plugin("function get_name( return", name="broken")
    return write_plugin("", name="empty").parent


def _run(
    capsys: pytest.CaptureFixture[str], plugin_dir: Path, *argv: str
) -> tuple[int, str, str]:
    code = cli.start(["--plugin-dir", str(plugin_dir), *argv])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


class TestProvidersCommand:
    def test_lists_providers_and_load_errors(
        self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code, out, _ = _run(capsys, plugin_dir, "providers")

        assert code == 0
        payload = json.loads(out)
        # A script without get_name still loads, under the fallback name.
        assert payload["providers"] == [
            {"name": "Local", "kind": "anime"},
            {"name": "Unknown", "kind": "unknown"},
        ]
        assert list(payload["load_errors"]) == [str(plugin_dir / "broken.lua")]

    def test_logs_load_summary(
        self,
        plugin_dir: Path,
        capsys: pytest.CaptureFixture[str],
        cli_logs: list[dict[str, Any]],
    ) -> None:
        _run(capsys, plugin_dir, "providers")

        events = {entry["event"]: entry for entry in cli_logs}
        assert events["plugin_load_failed"]["log_level"] == "error"
        assert events["providers_loaded"]["providers"] == ["Local", "Unknown"]
        assert events["providers_loaded"]["failed_plugins"] == 1

    def test_native_provider_listed_when_enabled(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("MEDIABRIDGE_SFLIX_ENABLED", "true")
        code, out, _ = _run(capsys, tmp_path / "none", "providers")

        assert code == 0
        assert json.loads(out)["providers"] == [{"name": "sflix", "kind": "movie_tv"}]


class TestLookupCommands:
    def test_search(self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, out, _ = _run(capsys, plugin_dir, "search", "Local", "Akira")

        assert code == 0
        assert json.loads(out) == [
            {
                "id": "a1",
                "title": "Akira",
                "kind": "anime",
                "poster_url": "",
                "year": 2001,
                "status": "",
            }
        ]

    def test_seasons(self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, out, _ = _run(capsys, plugin_dir, "seasons", "Local", "a1")

        assert code == 0
        assert json.loads(out) == [{"id": "a1|1", "number": 1, "title": "Season 1"}]

    def test_stream(self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, out, _ = _run(capsys, plugin_dir, "stream", "Local", "ep1", "--quality", "720p")

        assert code == 0
        stream = json.loads(out)
        assert stream["url"] == "https://cdn.example/ep1.m3u8"
        assert stream["quality"] == "720p"
        assert stream["stream_type"] == "hls"


class TestFailures:
    def test_unknown_provider(
        self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code, out, err = _run(capsys, plugin_dir, "search", "nope", "x")

        assert code == 1
        assert out == ""
        assert "error: provider not found: nope" in err

    def test_no_sources(self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, _, err = _run(capsys, plugin_dir, "stream", "Local", "missing")

        assert code == 1
        assert err.startswith("no sources:")

    def test_missing_function(
        self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code, _, err = _run(capsys, plugin_dir, "trending", "Local")

        assert code == 1
        assert "function not found: get_trending" in err

    def test_unhealthy(self, plugin_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, _, err = _run(capsys, plugin_dir, "health", "Local")

        assert code == 1
        assert "reported unhealthy" in err
