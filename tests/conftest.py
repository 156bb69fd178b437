"""Shared test fixtures for the mediabridge test suite."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from mediabridge.domain.entities.media import Server, Source, Subtitle, VideoSources

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def servers() -> list[Server]:
    """Three servers in the order a site lists them."""
    return [
        Server(name="UpCloud", locator="srv-1"),
        Server(name="Vidcloud", locator="srv-2"),
        Server(name="MegaCloud", locator="srv-3"),
    ]


@pytest.fixture()
def video_sources() -> VideoSources:
    """Two qualities plus one subtitle track."""
    return VideoSources(
        sources=[
            Source(url="https://cdn.example/1080.m3u8", quality="1080p", is_m3u8=True),
            Source(url="https://cdn.example/720.mp4", quality="720p"),
        ],
        subtitles=[Subtitle(url="https://cdn.example/en.vtt", language="English")],
    )


# ---------------------------------------------------------------------------
# Lua plugin fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def write_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Write a Lua plugin script into tmp_path and return its path."""

    def _write(source: str, name: str = "plugin") -> Path:
        path = tmp_path / f"{name}.lua"
        path.write_text(source, encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_mediabridge_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep MEDIABRIDGE_* variables from the outer shell out of tests."""
    for key in list(os.environ):
        if key.upper().startswith("MEDIABRIDGE_"):
            monkeypatch.delenv(key, raising=False)
