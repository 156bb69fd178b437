"""Video URL scanning for embed pages.

Finds playable HLS/MP4 URLs in player pages that configure JWPlayer or
similar players, including configs hidden in Dean Edwards packed
JavaScript.
"""

from __future__ import annotations

import re

_PACKED_START_RE = re.compile(
    r"eval\s*\(\s*function\s*\(\s*p\s*,\s*a\s*,\s*c\s*,\s*k\s*,\s*e\s*,\s*d\s*\)"
)
_PACKED_ARGS_RE = re.compile(
    r"}\('(.*?)',\s*(\d+),\s*(\d+),\s*'([^']*)'\s*\.split\('\|'\)", re.DOTALL
)
_WORD_RE = re.compile(r"\b\w+\b")

# Ordered from most to least specific.
_URL_PATTERNS = (
    re.compile(r"""sources\s*:\s*\[\s*\{[^}]*file\s*:\s*["'](https?://[^"']+)"""),
    re.compile(r"""file\s*:\s*["'](https?://[^"']+\.(?:m3u8|mp4)[^"']*)"""),
    re.compile(r"""(?:source|src)\s*:\s*["'](https?://[^"']+\.(?:m3u8|mp4)[^"']*)"""),
    re.compile(r"""["'](https?://[^"'\s]+\.m3u8[^"'\s]*)["']"""),
    re.compile(r"""["'](https?://[^"'\s]+\.mp4[^"'\s]*)["']"""),
)

_NOT_VIDEO_MARKERS = ("thumbnail", "track", ".vtt", ".jpg", ".png")

_PACKED_CHUNK_LIMIT = 65536
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def unpack_packed_js(packed: str) -> str | None:
    """Unpack ``eval(function(p,a,c,k,e,d){...}('payload',base,count,'dict'...))``.

    Base-N tokens in the payload are replaced by their dictionary words.
    """
    match = _PACKED_ARGS_RE.search(packed)
    if not match:
        return None

    payload, base, count = match.group(1), int(match.group(2)), int(match.group(3))
    words = match.group(4).split("|")
    if len(words) < count:
        words.extend([""] * (count - len(words)))
    if not 2 <= base <= len(_DIGITS):
        return None

    def _substitute(token: re.Match[str]) -> str:
        word = token.group(0)
        try:
            index = int(word, base)
        except ValueError:
            return word
        return words[index] if index < len(words) and words[index] else word

    return _WORD_RE.sub(_substitute, payload)


def _is_video_url(url: str) -> bool:
    lowered = url.lower()
    return not any(marker in lowered for marker in _NOT_VIDEO_MARKERS)


def _scan(text: str) -> list[str]:
    normalized = text.replace("\\'", "'").replace('\\"', '"').replace("\\/", "/")
    found: list[str] = []
    for pattern in _URL_PATTERNS:
        for match in pattern.finditer(normalized):
            url = match.group(1)
            if _is_video_url(url) and url not in found:
                found.append(url)
    return found


def find_video_urls(html: str) -> list[str]:
    """Every candidate video URL in ``html``, best candidates first.

    Packed script blocks are unpacked and scanned before the raw page.
    """
    found: list[str] = []
    for start in _PACKED_START_RE.finditer(html):
        chunk = html[start.start() : start.start() + _PACKED_CHUNK_LIMIT]
        unpacked = unpack_packed_js(chunk)
        if unpacked:
            found.extend(url for url in _scan(unpacked) if url not in found)
    found.extend(url for url in _scan(html) if url not in found)
    return found


def is_hls_url(url: str) -> bool:
    return ".m3u8" in url.lower()
