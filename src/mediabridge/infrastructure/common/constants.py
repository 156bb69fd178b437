"""Shared HTTP constants."""

from __future__ import annotations

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

DEFAULT_CLIENT_TIMEOUT = 15.0
DEFAULT_PLUGIN_HTTP_TIMEOUT = 30.0
DEFAULT_EXTRACT_TIMEOUT = 60.0
