"""Tests for the in-memory metadata cache."""

from __future__ import annotations

from mediabridge.infrastructure.providers.cache import MetadataCache


def test_get_put() -> None:
    cache: MetadataCache[list[str]] = MetadataCache("search")
    assert cache.get("q") is None
    cache.put("q", ["a"])
    assert cache.get("q") == ["a"]
    assert "q" in cache
    assert len(cache) == 1


def test_last_writer_wins() -> None:
    cache: MetadataCache[str] = MetadataCache()
    cache.put("k", "first")
    cache.put("k", "second")
    assert cache.get("k") == "second"


def test_clear() -> None:
    cache: MetadataCache[int] = MetadataCache()
    cache.put("a", 1)
    cache.clear()
    assert len(cache) == 0
    assert "a" not in cache
