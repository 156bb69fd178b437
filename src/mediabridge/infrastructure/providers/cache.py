"""In-memory metadata cache used by the site adapters."""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class MetadataCache(Generic[T]):
    """Process-lifetime key/value store for search results and detail pages.

    No expiry, no size bound; concurrent writers of the same key race and
    the last write wins. Never used for stream URLs, which expire upstream.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._entries: dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> T | None:
        return self._entries.get(key)

    def put(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
