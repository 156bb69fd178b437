"""Shared base class for httpx-based site adapters.

Covers what every scraped site needs: client lifecycle, browser-like
headers, fetch helpers that turn transport failures into domain errors,
metadata caches, and stream resolution through ``ResolutionPipeline``.

Subclasses implement the site-specific parts:

- ``_search()`` and ``_load_info()`` (cached by the base class)
- ``discover_servers()`` and ``_embed_url()`` (driven by the pipeline)
- optionally ``get_trending()``, ``get_recent()`` and ``_episode_id()``
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from mediabridge.application.resolution import (
    Ranker,
    ResolutionPipeline,
    available_qualities,
)
from mediabridge.domain.entities.media import (
    Episode,
    Media,
    MediaDetails,
    MediaKind,
    Season,
    Server,
    StreamURL,
    VideoSources,
)
from mediabridge.domain.errors import (
    ExtractionError,
    ProviderError,
    ProviderParseError,
    ProviderTransportError,
    ProviderUnavailableError,
    UnsupportedOperationError,
)
from mediabridge.domain.identifiers import SeasonRef
from mediabridge.infrastructure.common.constants import (
    DEFAULT_ACCEPT,
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_USER_AGENT,
)
from mediabridge.infrastructure.extractors.registry import (
    ExtractorRegistry,
    build_default_registry,
)

from .cache import MetadataCache


@dataclass(frozen=True)
class SiteInfo:
    """Everything an adapter scraped from one detail page."""

    id: str
    url: str
    title: str
    kind: MediaKind
    poster_url: str = ""
    synopsis: str = ""
    released: str = ""
    rating: str = ""
    genres: list[str] = field(default_factory=list)
    episodes: list[Episode] = field(default_factory=list)


def year_from(released: str) -> int:
    """Leading four-digit year of a release string, 0 when absent."""
    head = released.strip()[:4]
    return int(head) if len(head) == 4 and head.isdigit() else 0


class HttpxProviderBase:
    """Shared base for site adapters.

    Subclasses **must** set ``name`` and ``default_base_url``.
    """

    name: str = ""
    kind: MediaKind = MediaKind.MOVIE_TV
    default_base_url: str = ""

    _timeout: float = DEFAULT_CLIENT_TIMEOUT
    _user_agent: str = DEFAULT_USER_AGENT

    def __init__(
        self,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        extractors: ExtractorRegistry | None = None,
        timeout: float | None = None,
        ranker: Ranker | None = None,
    ) -> None:
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        if timeout is not None:
            self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._extractors = extractors
        self._search_cache: MetadataCache[list[Media]] = MetadataCache(
            f"{self.name}_search"
        )
        self._info_cache: MetadataCache[SiteInfo] = MetadataCache(f"{self.name}_info")
        self._pipeline = ResolutionPipeline(provider=self.name, ranker=ranker)
        self._log = structlog.get_logger(self.name or __name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self.base_url!r})"

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Create httpx client if not already running."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def _extractor_registry(self) -> ExtractorRegistry:
        if self._extractors is None:
            client = await self._ensure_client()
            self._extractors = build_default_registry(client, timeout=self._timeout)
        return self._extractors

    async def aclose(self) -> None:
        """Close the httpx client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Fetch helpers
    # ------------------------------------------------------------------

    def _headers(self, *, ajax: bool = False) -> dict[str, str]:
        headers = {
            "User-Agent": self._user_agent,
            "Accept": DEFAULT_ACCEPT,
            "Referer": self.base_url,
        }
        if ajax:
            headers["X-Requested-With"] = "XMLHttpRequest"
        return headers

    async def _fetch(
        self, url: str, *, context: str, ajax: bool = False
    ) -> httpx.Response:
        """GET ``url``; transport failures and non-2xx become ``ProviderTransportError``."""
        client = await self._ensure_client()
        try:
            resp = await client.get(url, headers=self._headers(ajax=ajax))
        except httpx.HTTPError as exc:
            raise ProviderTransportError(
                f"{context}: failed to fetch {url}: {exc}",
                provider=self.name,
                url=url,
            ) from exc

        if not resp.is_success:
            raise ProviderTransportError(
                f"{context}: {url} returned status {resp.status_code}",
                provider=self.name,
                url=url,
                status_code=resp.status_code,
            )
        return resp

    async def _fetch_text(self, url: str, *, context: str, ajax: bool = False) -> str:
        resp = await self._fetch(url, context=context, ajax=ajax)
        return resp.text

    async def _fetch_json(self, url: str, *, context: str, ajax: bool = True) -> Any:
        resp = await self._fetch(url, context=context, ajax=ajax)
        try:
            return resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise ProviderParseError(
                f"{context}: invalid JSON from {url}", provider=self.name
            ) from exc

    async def _safe_fetch(
        self, url: str, *, context: str, ajax: bool = False
    ) -> httpx.Response | None:
        """Like ``_fetch`` but logs and returns ``None`` on failure.

        For optional lookups that have a fallback.
        """
        try:
            return await self._fetch(url, context=context, ajax=ajax)
        except ProviderTransportError as exc:
            self._log.warning(
                f"{self.name}_fetch_failed",
                url=url,
                status=exc.status_code,
                context=context,
                error=str(exc),
            )
            return None

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    async def search(self, query: str) -> list[Media]:
        cached = self._search_cache.get(query)
        if cached is not None:
            self._log.debug(f"{self.name}_search_cache_hit", query=query)
            return list(cached)
        results = await self._search(query)
        self._search_cache.put(query, results)
        self._log.info(f"{self.name}_search", query=query, results=len(results))
        return list(results)

    async def _search(self, query: str) -> list[Media]:
        raise NotImplementedError(f"{type(self).__name__}._search() not implemented")

    async def get_trending(self) -> list[Media]:
        raise UnsupportedOperationError(
            f"{self.name}: trending is not supported", provider=self.name
        )

    async def get_recent(self) -> list[Media]:
        raise UnsupportedOperationError(
            f"{self.name}: recent is not supported", provider=self.name
        )

    async def get_info(self, media_id: str) -> SiteInfo:
        """Scraped detail page for ``media_id``, fetched at most once."""
        cached = self._info_cache.get(media_id)
        if cached is not None:
            return cached
        info = await self._load_info(media_id)
        self._info_cache.put(media_id, info)
        return info

    async def _load_info(self, media_id: str) -> SiteInfo:
        raise NotImplementedError(
            f"{type(self).__name__}._load_info() not implemented"
        )

    async def get_media_details(self, media_id: str) -> MediaDetails:
        info = await self.get_info(media_id)
        return MediaDetails(
            id=media_id,
            title=info.title,
            kind=info.kind,
            poster_url=info.poster_url,
            year=year_from(info.released),
            status=info.released,
            synopsis=info.synopsis,
            genres=list(info.genres),
            seasons=self._seasons_for(media_id, info),
        )

    async def get_seasons(self, media_id: str) -> list[Season]:
        info = await self.get_info(media_id)
        if not info.episodes:
            return [Season(id=media_id, number=1, title="Season 1")]
        return self._seasons_for(media_id, info)

    def _seasons_for(self, media_id: str, info: SiteInfo) -> list[Season]:
        if info.kind is not MediaKind.TV or not info.episodes:
            return [Season(id=media_id, number=1, title="Movie")]
        numbers = sorted({episode.season or 1 for episode in info.episodes})
        return [
            Season(
                id=SeasonRef(media_id=media_id, season=number).encode(),
                number=number,
                title=f"Season {number}",
            )
            for number in numbers
        ]

    async def get_episodes(self, season_id: str) -> list[Episode]:
        ref = SeasonRef.parse(season_id)
        info = await self.get_info(ref.media_id)
        if not info.episodes:
            if ref.season != 1:
                return []
            return [Episode(id=info.id, number=1, title=info.title, season=1)]
        return [
            Episode(
                id=self._episode_id(episode, info),
                number=episode.number,
                title=episode.title,
                season=episode.season or 1,
            )
            for episode in info.episodes
            if (episode.season or 1) == ref.season
        ]

    def _episode_id(self, episode: Episode, info: SiteInfo) -> str:
        """Public id of a scraped episode."""
        return episode.id

    async def get_movie_episode_id(self, media_id: str) -> str:
        info = await self.get_info(media_id)
        if not info.episodes:
            raise ProviderError(
                f"no episodes found for movie {media_id}", provider=self.name
            )
        return self._episode_id(info.episodes[0], info)

    # ------------------------------------------------------------------
    # Servers and streams
    # ------------------------------------------------------------------

    async def discover_servers(self, episode_id: str) -> list[Server]:
        raise NotImplementedError(
            f"{type(self).__name__}.discover_servers() not implemented"
        )

    async def _embed_url(self, server: Server) -> str:
        raise NotImplementedError(
            f"{type(self).__name__}._embed_url() not implemented"
        )

    async def extract_server(self, server: Server) -> VideoSources:
        embed_url = await self._embed_url(server)
        registry = await self._extractor_registry()
        extractor = registry.for_server(server.name)
        if extractor is None:
            raise ExtractionError(
                f"no extractor for server {server.name!r}", url=embed_url
            )
        self._log.debug(
            f"{self.name}_extracting",
            server=server.name,
            extractor=extractor.name,
            embed_url=embed_url,
        )
        return await extractor.extract(embed_url)

    async def get_sources(self, episode_id: str) -> VideoSources:
        return await self._pipeline.resolve(episode_id, self)

    async def get_stream_url(self, episode_id: str, quality: str) -> StreamURL:
        return await self._pipeline.resolve_stream(episode_id, quality, self)

    async def get_available_qualities(self, episode_id: str) -> list[str]:
        return available_qualities(await self.get_sources(episode_id))

    async def health_check(self) -> None:
        try:
            await self._fetch(f"{self.base_url}/", context="health_check")
        except ProviderTransportError as exc:
            raise ProviderUnavailableError(
                f"{self.name} is unreachable: {exc}", provider=self.name
            ) from exc
