"""VidCloud / MegaCloud extractors.

Both hosts serve an embed page whose player fetches its sources from a
``getSources`` JSON endpoint on the same host:

    vidcloud   https://{host}/embed-4/{id}       -> /ajax/embed-4/getSources?id={id}
    megacloud  https://{host}/embed-2/e-1/{id}   -> /embed-2/ajax/e-1/getSources?id={id}

The endpoint answers ``{"sources": [...], "tracks": [...]}``. Hosts that
encrypt ``sources`` into a string are reported as ``ExtractionError``.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from mediabridge.domain.entities.media import (
    QUALITY_AUTO,
    Source,
    Subtitle,
    VideoSources,
)
from mediabridge.domain.errors import ExtractionError
from mediabridge.infrastructure.common.constants import DEFAULT_USER_AGENT

from ._video_extract import is_hls_url

log = structlog.get_logger(__name__)

_SUBTITLE_KINDS = frozenset({"captions", "subtitles"})


def embed_id(url: str) -> str:
    """Last path segment of an embed URL (query string dropped)."""
    path = urlparse(url).path.rstrip("/")
    return path.rsplit("/", 1)[-1] if path else ""


class CloudSourcesExtractor:
    """Shared ``getSources`` flow; subclasses set ``_name`` and ``_sources_path``."""

    _name: str = ""
    _aliases: tuple[str, ...] = ()
    _sources_path: str = ""

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self._http = http_client
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    @property
    def aliases(self) -> tuple[str, ...]:
        """Other server names this extractor handles."""
        return self._aliases

    def sources_url(self, embed_url: str) -> str:
        parsed = urlparse(embed_url)
        if not parsed.scheme or not parsed.netloc:
            raise ExtractionError(
                f"invalid embed URL: {embed_url!r}", extractor=self._name, url=embed_url
            )
        file_id = embed_id(embed_url)
        if not file_id:
            raise ExtractionError(
                f"no file id in embed URL: {embed_url!r}",
                extractor=self._name,
                url=embed_url,
            )
        return f"{parsed.scheme}://{parsed.netloc}{self._sources_path}?id={file_id}"

    async def extract(self, embed_url: str) -> VideoSources:
        api_url = self.sources_url(embed_url)
        parsed = urlparse(embed_url)
        referer = f"{parsed.scheme}://{parsed.netloc}/"

        try:
            resp = await self._http.get(
                api_url,
                headers={
                    "User-Agent": DEFAULT_USER_AGENT,
                    "Referer": embed_url,
                    "X-Requested-With": "XMLHttpRequest",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ExtractionError(
                f"{self._name}: request failed: {exc}", extractor=self._name, url=api_url
            ) from exc

        if resp.status_code != 200:
            raise ExtractionError(
                f"{self._name}: getSources returned status {resp.status_code}",
                extractor=self._name,
                url=api_url,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ExtractionError(
                f"{self._name}: invalid JSON from getSources",
                extractor=self._name,
                url=api_url,
            ) from exc
        if not isinstance(payload, dict):
            raise ExtractionError(
                f"{self._name}: unexpected getSources payload",
                extractor=self._name,
                url=api_url,
            )

        result = _parse_payload(payload, referer, extractor=self._name, url=api_url)
        log.debug(
            "cloud_sources_extracted",
            extractor=self._name,
            sources=len(result.sources),
            subtitles=len(result.subtitles),
        )
        return result


def _parse_payload(
    payload: dict[str, Any], referer: str, *, extractor: str, url: str
) -> VideoSources:
    raw_sources = payload.get("sources")
    if isinstance(raw_sources, str):
        raise ExtractionError(
            f"{extractor}: encrypted sources are not supported",
            extractor=extractor,
            url=url,
        )

    entries = list(_payload_list(payload, "sources", extractor=extractor, url=url))
    backup = payload.get("sourcesBackup")
    if isinstance(backup, list):
        entries.extend(backup)

    sources: list[Source] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        file_url = entry.get("file")
        if not isinstance(file_url, str) or not file_url:
            continue
        hls = entry.get("type") == "hls" or is_hls_url(file_url)
        label = entry.get("label")
        quality = label if isinstance(label, str) and label and not hls else QUALITY_AUTO
        sources.append(
            Source(url=file_url, quality=quality, is_m3u8=hls, referer=referer)
        )

    subtitles: list[Subtitle] = []
    for track in _payload_list(payload, "tracks", extractor=extractor, url=url):
        if not isinstance(track, dict) or track.get("kind") not in _SUBTITLE_KINDS:
            continue
        track_url = track.get("file")
        if isinstance(track_url, str) and track_url:
            subtitles.append(
                Subtitle(url=track_url, language=str(track.get("label") or ""))
            )

    return VideoSources(sources=sources, subtitles=subtitles)


def _payload_list(
    payload: dict[str, Any], key: str, *, extractor: str, url: str
) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ExtractionError(
            f"{extractor}: unexpected {key!r} in sources response",
            extractor=extractor,
            url=url,
        )
    return value


class VidCloudExtractor(CloudSourcesExtractor):
    _name = "vidcloud"
    _aliases = ("upcloud",)
    _sources_path = "/ajax/embed-4/getSources"


class MegaCloudExtractor(CloudSourcesExtractor):
    _name = "megacloud"
    _aliases = ("akcloud",)
    _sources_path = "/embed-2/ajax/e-1/getSources"
