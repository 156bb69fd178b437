"""Native site adapters."""

from __future__ import annotations

from .base import HttpxProviderBase, SiteInfo
from .cache import MetadataCache
from .flixhq import FlixHQProvider
from .sflix import SFlixProvider

__all__ = [
    "FlixHQProvider",
    "HttpxProviderBase",
    "MetadataCache",
    "SFlixProvider",
    "SiteInfo",
]
