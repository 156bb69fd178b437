"""Port every media provider satisfies, native or scripted."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from mediabridge.domain.entities.media import (
    Episode,
    Media,
    MediaDetails,
    MediaKind,
    Season,
    StreamURL,
)


@runtime_checkable
class ProviderPort(Protocol):
    """Uniform contract over scraped sites and script plugins.

    Identifiers are opaque strings minted by the provider itself; callers
    pass them back unchanged.
    """

    @property
    def name(self) -> str:
        """Registry key, e.g. ``"flixhq"``."""
        ...

    @property
    def kind(self) -> MediaKind: ...

    async def search(self, query: str) -> list[Media]: ...

    async def get_trending(self) -> list[Media]: ...

    async def get_recent(self) -> list[Media]: ...

    async def get_media_details(self, media_id: str) -> MediaDetails: ...

    async def get_seasons(self, media_id: str) -> list[Season]: ...

    async def get_episodes(self, season_id: str) -> list[Episode]: ...

    async def get_stream_url(self, episode_id: str, quality: str) -> StreamURL:
        """Resolve a playable URL, preferring ``quality`` when available."""
        ...

    async def get_available_qualities(self, episode_id: str) -> list[str]: ...

    async def health_check(self) -> None:
        """Raise if the provider cannot currently serve requests."""
        ...
