"""Multi-server source resolution.

episode id -> discover servers -> try each in order -> first non-empty
result wins -> pick the requested quality -> StreamURL.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog

from mediabridge.domain.entities.media import (
    QUALITY_AUTO,
    Server,
    ServerAttempt,
    Source,
    StreamType,
    StreamURL,
    Subtitle,
    VideoSources,
)
from mediabridge.domain.errors import NoSourcesError, SourceResolutionError
from mediabridge.domain.ports.server_site import ServerSitePort

log = structlog.get_logger(__name__)

# Scores a non-empty result; higher wins.
Ranker = Callable[[Server, VideoSources], float]


class ResolutionPipeline:
    """Tries an episode's servers one after another.

    Per-server failures are logged and recorded, never raised on their own.
    Without a ranker the first server that yields a source with a URL wins
    and later servers are not touched. With a ranker every server is tried
    and the best-scoring non-empty result wins.

    Cancellation of the awaiting task propagates between attempts and is
    never recorded as a server failure.
    """

    def __init__(self, *, provider: str = "", ranker: Ranker | None = None) -> None:
        self._provider = provider
        self._ranker = ranker

    async def resolve(self, episode_id: str, site: ServerSitePort) -> VideoSources:
        servers = await site.discover_servers(episode_id)
        if not servers:
            log.info(
                "no_servers_found", provider=self._provider, episode_id=episode_id
            )
            return VideoSources.empty()

        attempts: list[ServerAttempt] = []
        best: VideoSources | None = None
        best_score = float("-inf")

        for server in servers:
            try:
                result = await site.extract_server(server)
            except Exception as exc:  # noqa: BLE001
                attempts.append(ServerAttempt(server=server, error=exc))
                log.warning(
                    "server_attempt_failed",
                    provider=self._provider,
                    server=server.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                continue

            attempts.append(
                ServerAttempt(server=server, source_count=len(result.sources))
            )
            if not result.has_sources:
                log.debug(
                    "server_returned_no_sources",
                    provider=self._provider,
                    server=server.name,
                )
                continue

            playable = result.playable()
            if self._ranker is None:
                log.info(
                    "server_resolved",
                    provider=self._provider,
                    server=server.name,
                    sources=len(playable.sources),
                    attempts=len(attempts),
                )
                return playable

            score = self._ranker(server, playable)
            if best is None or score > best_score:
                best, best_score = playable, score

        if best is not None:
            return best

        failures = [attempt for attempt in attempts if attempt.failed]
        if failures:
            last = failures[-1]
            raise SourceResolutionError(
                f"failed to extract sources from all {len(servers)} servers; "
                f"last server {last.server.name!r}: {last.error}",
                attempts=attempts,
            ) from last.error

        log.info(
            "all_servers_empty", provider=self._provider, servers=len(servers)
        )
        return VideoSources.empty()

    async def resolve_stream(
        self, episode_id: str, quality: str, site: ServerSitePort
    ) -> StreamURL:
        """Resolve and pick one source; raises ``NoSourcesError`` when empty."""
        sources = await self.resolve(episode_id, site)
        selected = select_source(sources.sources, quality)
        return build_stream_url(selected, sources.subtitles)


def select_source(sources: Sequence[Source], quality: str) -> Source:
    """Pick the source labelled ``quality`` (case-insensitive), else the first.

    ``"auto"`` matches a source labelled ``"auto"`` like any other label.
    """
    if not sources:
        raise NoSourcesError()

    wanted = (quality or QUALITY_AUTO).strip().lower()
    for source in sources:
        if source.quality.lower() == wanted:
            return source
    return sources[0]


def build_stream_url(source: Source, subtitles: Sequence[Subtitle] = ()) -> StreamURL:
    headers = {"Referer": source.referer} if source.referer else {}
    return StreamURL(
        url=source.url,
        quality=source.quality,
        stream_type=StreamType.HLS if source.is_m3u8 else StreamType.MP4,
        referer=source.referer,
        headers=headers,
        subtitles=list(subtitles),
    )


def available_qualities(sources: VideoSources) -> list[str]:
    """Distinct quality labels in source order."""
    seen: list[str] = []
    for source in sources.sources:
        if source.quality not in seen:
            seen.append(source.quality)
    return seen
