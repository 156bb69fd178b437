"""Tests for the embed page video URL scanner.

Covers:
- Dean Edwards packed JS unpacking
- HLS/MP4 URL discovery in JWPlayer-style configs
- Ordering and filtering of candidates
"""

from __future__ import annotations

from mediabridge.infrastructure.extractors._video_extract import (
    find_video_urls,
    is_hls_url,
    unpack_packed_js,
)

PACKED = (
    "eval(function(p,a,c,k,e,d)"
    "{e=function(c){return c};if(!''.replace(/^/,String))"
    "{while(c--)d[c]=k[c]||c;k=[function(e)"
    "{return d[e]}];e=function(){return'\\w+'};c=1};"
    "while(c--)if(k[c])p=p.replace(new RegExp('\\b'+e(c)+'\\b','g'),k[c]);"
    "return p}("
    "'0=[{1:\"https://cdn.example.com/packed.m3u8\"}]'"
    ",2,2,'sources|file'.split('|'),0,{}))"
)


# ---------------------------------------------------------------------------
# unpack_packed_js
# ---------------------------------------------------------------------------


class TestUnpackPackedJs:
    def test_simple_packed_js(self) -> None:
        result = unpack_packed_js(PACKED)
        assert result is not None
        assert "sources" in result
        assert 'file:"https://cdn.example.com/packed.m3u8"' in result

    def test_returns_none_for_non_packed(self) -> None:
        assert unpack_packed_js("var x = 1;") is None

    def test_returns_none_for_empty(self) -> None:
        assert unpack_packed_js("") is None


# ---------------------------------------------------------------------------
# find_video_urls
# ---------------------------------------------------------------------------


class TestFindVideoUrls:
    def test_jwplayer_sources(self) -> None:
        html = '<script>sources:[{file:"https://cdn.example.com/video.m3u8"}]</script>'
        assert find_video_urls(html) == ["https://cdn.example.com/video.m3u8"]

    def test_source_pattern_mp4(self) -> None:
        html = 'source:"https://cdn.example.com/movie.mp4"'
        assert find_video_urls(html) == ["https://cdn.example.com/movie.mp4"]

    def test_escaped_slashes_and_quotes(self) -> None:
        html = "sources:[{file:\\'https:\\/\\/cdn.example.com\\/master.m3u8\\'}]"
        assert find_video_urls(html) == ["https://cdn.example.com/master.m3u8"]

    def test_hls_listed_before_mp4(self) -> None:
        html = (
            '"https://cdn.example.com/fallback.mp4" '
            '"https://cdn.example.com/stream/master.m3u8"'
        )
        assert find_video_urls(html) == [
            "https://cdn.example.com/stream/master.m3u8",
            "https://cdn.example.com/fallback.mp4",
        ]

    def test_packed_js_extraction(self) -> None:
        urls = find_video_urls(f"<script>{PACKED}</script>")
        assert urls == ["https://cdn.example.com/packed.m3u8"]

    def test_plain_html_has_no_urls(self) -> None:
        assert find_video_urls("<html><body><h1>Hello</h1></body></html>") == []

    def test_skips_thumbnail_urls(self) -> None:
        assert find_video_urls('"https://cdn.example.com/thumbnail.m3u8"') == []

    def test_skips_track_urls(self) -> None:
        assert find_video_urls('"https://cdn.example.com/track/subtitle.m3u8"') == []


def test_is_hls_url() -> None:
    assert is_hls_url("https://cdn.example.com/Master.M3U8?token=1")
    assert not is_hls_url("https://cdn.example.com/movie.mp4")
