"""Domain entities for media catalogues and stream resolution.

Pure value objects: no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

QUALITY_AUTO = "auto"


class MediaKind(str, Enum):
    """Kind of catalogue a provider serves (or a single item belongs to)."""

    MOVIE = "movie"
    TV = "tv"
    MOVIE_TV = "movie_tv"
    ANIME = "anime"
    MANGA = "manga"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> MediaKind:
        """Map free-form text onto a kind; anything unrecognised is ``UNKNOWN``."""
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        key = _KIND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


_KIND_ALIASES: dict[str, str] = {
    "movie_or_tv": "movie_tv",
    "movies": "movie",
    "series": "tv",
    "tv_series": "tv",
    "show": "tv",
}


class StreamType(str, Enum):
    """Container family of a playable URL."""

    HLS = "hls"
    MP4 = "mp4"


@dataclass(frozen=True)
class Media:
    """A catalogue entry; identity is ``id``."""

    id: str
    title: str
    kind: MediaKind = MediaKind.UNKNOWN
    poster_url: str = ""
    year: int = 0
    status: str = ""


@dataclass(frozen=True)
class Season:
    id: str
    number: int
    title: str = ""


@dataclass(frozen=True)
class MediaDetails(Media):
    """A ``Media`` plus the fields only a detail page carries."""

    synopsis: str = ""
    genres: list[str] = field(default_factory=list)
    seasons: list[Season] = field(default_factory=list)


@dataclass(frozen=True)
class Episode:
    """A playable unit. Movies expose exactly one episode numbered 1."""

    id: str
    number: int
    title: str = ""
    season: int = 0


@dataclass(frozen=True)
class Server:
    """One upstream host offering an episode.

    ``name`` selects the extractor (case-insensitive); ``locator`` is opaque
    to everything except the adapter that produced it.
    """

    name: str
    locator: str


@dataclass(frozen=True)
class Source:
    url: str
    quality: str = QUALITY_AUTO
    is_m3u8: bool = False
    referer: str = ""


@dataclass(frozen=True)
class Subtitle:
    url: str
    language: str = ""


@dataclass(frozen=True)
class VideoSources:
    """Sources and subtitles for one episode.

    An empty instance is a valid result and distinct from a failure.
    """

    sources: list[Source] = field(default_factory=list)
    subtitles: list[Subtitle] = field(default_factory=list)

    @classmethod
    def empty(cls) -> VideoSources:
        return cls()

    @property
    def has_sources(self) -> bool:
        return any(source.url for source in self.sources)

    def playable(self) -> VideoSources:
        """Drop sources without a URL."""
        return VideoSources(
            sources=[source for source in self.sources if source.url],
            subtitles=list(self.subtitles),
        )


@dataclass(frozen=True)
class StreamURL:
    """Final answer of a stream lookup, ready to hand to a player."""

    url: str
    quality: str = QUALITY_AUTO
    stream_type: StreamType = StreamType.MP4
    referer: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    subtitles: list[Subtitle] = field(default_factory=list)


@dataclass(frozen=True)
class ServerAttempt:
    """Outcome of trying one server during resolution."""

    server: Server
    error: Exception | None = None
    source_count: int = 0

    @property
    def failed(self) -> bool:
        return self.error is not None
