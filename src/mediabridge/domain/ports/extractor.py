"""Port for turning a host embed URL into playable sources."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from mediabridge.domain.entities.media import VideoSources


@runtime_checkable
class ExtractorPort(Protocol):
    """Resolves a video host's embed page to sources and subtitles.

    Implementations handle host-specific extraction (API calls, packed JS,
    etc.) and raise ``ExtractionError`` when the page yields nothing usable.
    """

    @property
    def name(self) -> str:
        """Extractor key matched against server names (e.g. ``"vidcloud"``)."""
        ...

    async def extract(self, embed_url: str) -> VideoSources: ...
