"""Tests for the multi-server resolution pipeline."""

from __future__ import annotations

import asyncio

import pytest

from mediabridge.application.resolution import (
    ResolutionPipeline,
    available_qualities,
    build_stream_url,
    select_source,
)
from mediabridge.domain.entities.media import (
    Server,
    Source,
    StreamType,
    Subtitle,
    VideoSources,
)
from mediabridge.domain.errors import (
    ExtractionError,
    NoSourcesError,
    SourceResolutionError,
)


class FakeSite:
    """ServerSite double: each server maps to a result or an exception."""

    def __init__(
        self, servers: list[Server], outcomes: dict[str, VideoSources | Exception]
    ) -> None:
        self._servers = servers
        self._outcomes = outcomes
        self.discovered: list[str] = []
        self.extracted: list[str] = []

    async def discover_servers(self, episode_id: str) -> list[Server]:
        self.discovered.append(episode_id)
        return list(self._servers)

    async def extract_server(self, server: Server) -> VideoSources:
        self.extracted.append(server.name)
        outcome = self._outcomes[server.name]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _sources(*qualities: str) -> VideoSources:
    return VideoSources(
        sources=[
            Source(url=f"https://cdn.example/{q}.m3u8", quality=q, is_m3u8=True)
            for q in qualities
        ]
    )


class TestResolve:
    @pytest.mark.asyncio()
    async def test_no_servers_is_empty(self) -> None:
        site = FakeSite([], {})
        result = await ResolutionPipeline().resolve("ep1", site)
        assert result == VideoSources.empty()
        assert site.discovered == ["ep1"]

    @pytest.mark.asyncio()
    async def test_first_success_stops_iteration(self, servers: list[Server]) -> None:
        site = FakeSite(
            servers,
            {
                "UpCloud": ExtractionError("down"),
                "Vidcloud": _sources("1080p"),
                "MegaCloud": _sources("720p"),
            },
        )
        result = await ResolutionPipeline().resolve("ep1", site)
        assert [s.quality for s in result.sources] == ["1080p"]
        # Server K+1 is never touched.
        assert site.extracted == ["UpCloud", "Vidcloud"]

    @pytest.mark.asyncio()
    async def test_empty_results_are_skipped(self, servers: list[Server]) -> None:
        site = FakeSite(
            servers,
            {
                "UpCloud": VideoSources.empty(),
                "Vidcloud": VideoSources(sources=[Source(url="")]),
                "MegaCloud": _sources("auto"),
            },
        )
        result = await ResolutionPipeline().resolve("ep1", site)
        assert [s.quality for s in result.sources] == ["auto"]
        assert site.extracted == ["UpCloud", "Vidcloud", "MegaCloud"]

    @pytest.mark.asyncio()
    async def test_all_failing_names_last_server(self, servers: list[Server]) -> None:
        last_error = ExtractionError("megacloud broke")
        site = FakeSite(
            servers,
            {
                "UpCloud": ExtractionError("a"),
                "Vidcloud": RuntimeError("b"),
                "MegaCloud": last_error,
            },
        )
        with pytest.raises(SourceResolutionError) as exc_info:
            await ResolutionPipeline().resolve("ep1", site)

        exc = exc_info.value
        assert "MegaCloud" in str(exc)
        assert exc.last_server == servers[2]
        assert exc.__cause__ is last_error
        assert len(exc.attempts) == 3

    @pytest.mark.asyncio()
    async def test_all_empty_is_empty_without_error(self, servers: list[Server]) -> None:
        site = FakeSite(servers, {s.name: VideoSources.empty() for s in servers})
        result = await ResolutionPipeline().resolve("ep1", site)
        assert result.has_sources is False

    @pytest.mark.asyncio()
    async def test_failure_then_empty_raises(self, servers: list[Server]) -> None:
        site = FakeSite(
            servers,
            {
                "UpCloud": VideoSources.empty(),
                "Vidcloud": ExtractionError("broken"),
                "MegaCloud": VideoSources.empty(),
            },
        )
        with pytest.raises(SourceResolutionError) as exc_info:
            await ResolutionPipeline().resolve("ep1", site)
        assert exc_info.value.last_server == servers[1]

    @pytest.mark.asyncio()
    async def test_ranker_picks_best_result(self, servers: list[Server]) -> None:
        site = FakeSite(
            servers,
            {
                "UpCloud": _sources("480p"),
                "Vidcloud": _sources("1080p", "720p"),
                "MegaCloud": ExtractionError("x"),
            },
        )
        pipeline = ResolutionPipeline(ranker=lambda server, result: len(result.sources))
        result = await pipeline.resolve("ep1", site)
        assert [s.quality for s in result.sources] == ["1080p", "720p"]
        assert site.extracted == ["UpCloud", "Vidcloud", "MegaCloud"]

    @pytest.mark.asyncio()
    async def test_cancellation_propagates(self, servers: list[Server]) -> None:
        class SlowSite(FakeSite):
            async def extract_server(self, server: Server) -> VideoSources:
                self.extracted.append(server.name)
                await asyncio.sleep(10)
                return VideoSources.empty()

        site = SlowSite(servers, {})
        task = asyncio.create_task(ResolutionPipeline().resolve("ep1", site))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert site.extracted == ["UpCloud"]

    @pytest.mark.asyncio()
    async def test_resolve_stream_selects_quality(
        self, servers: list[Server], video_sources: VideoSources
    ) -> None:
        site = FakeSite(servers[:1], {"UpCloud": video_sources})
        stream = await ResolutionPipeline().resolve_stream("ep1", "720P", site)
        assert stream.url == "https://cdn.example/720.mp4"
        assert stream.stream_type is StreamType.MP4
        assert stream.subtitles == video_sources.subtitles

    @pytest.mark.asyncio()
    async def test_resolve_stream_empty_raises_no_sources(
        self, servers: list[Server]
    ) -> None:
        site = FakeSite(servers, {s.name: VideoSources.empty() for s in servers})
        with pytest.raises(NoSourcesError):
            await ResolutionPipeline().resolve_stream("ep1", "auto", site)


class TestSelectSource:
    def test_case_insensitive_match(self) -> None:
        sources = [Source(url="a", quality="1080p"), Source(url="b", quality="720p")]
        assert select_source(sources, "720P").url == "b"

    def test_unmatched_falls_back_to_first(self) -> None:
        sources = [Source(url="a", quality="1080p"), Source(url="b", quality="720p")]
        assert select_source(sources, "4k").url == "a"

    def test_auto_matches_auto_label(self) -> None:
        sources = [Source(url="a", quality="1080p"), Source(url="b", quality="auto")]
        assert select_source(sources, "auto").url == "b"

    def test_empty_raises(self) -> None:
        with pytest.raises(NoSourcesError):
            select_source([], "auto")


def test_build_stream_url_hls_with_referer() -> None:
    source = Source(
        url="https://cdn.example/master.m3u8",
        quality="auto",
        is_m3u8=True,
        referer="https://rabbitstream.net/",
    )
    subtitle = Subtitle(url="https://cdn.example/en.vtt", language="English")
    stream = build_stream_url(source, [subtitle])
    assert stream.stream_type is StreamType.HLS
    assert stream.headers == {"Referer": "https://rabbitstream.net/"}
    assert stream.subtitles == [subtitle]


def test_available_qualities_distinct_in_order() -> None:
    result = VideoSources(
        sources=[
            Source(url="a", quality="1080p"),
            Source(url="b", quality="720p"),
            Source(url="c", quality="1080p"),
        ]
    )
    assert available_qualities(result) == ["1080p", "720p"]
