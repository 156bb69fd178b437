"""Fallback extractor for player pages that embed their video URL."""

from __future__ import annotations

import httpx
import structlog

from mediabridge.domain.entities.media import QUALITY_AUTO, Source, VideoSources
from mediabridge.domain.errors import ExtractionError
from mediabridge.infrastructure.common.constants import DEFAULT_USER_AGENT

from ._video_extract import find_video_urls, is_hls_url

log = structlog.get_logger(__name__)


class EmbedPageExtractor:
    """Fetches the embed page and scans it (and packed JS in it) for video URLs."""

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self._http = http_client
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "embed"

    async def extract(self, embed_url: str) -> VideoSources:
        try:
            resp = await self._http.get(
                embed_url,
                headers={"User-Agent": DEFAULT_USER_AGENT},
                follow_redirects=True,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ExtractionError(
                f"embed: request failed: {exc}", extractor=self.name, url=embed_url
            ) from exc

        if resp.status_code != 200:
            raise ExtractionError(
                f"embed: page returned status {resp.status_code}",
                extractor=self.name,
                url=embed_url,
            )

        urls = find_video_urls(resp.text)
        if not urls:
            log.debug("embed_no_video_url", url=embed_url)
            raise ExtractionError(
                "embed: no video URL in page", extractor=self.name, url=embed_url
            )

        return VideoSources(
            sources=[
                Source(
                    url=url,
                    quality=QUALITY_AUTO,
                    is_m3u8=is_hls_url(url),
                    referer=embed_url,
                )
                for url in urls
            ]
        )
