"""Extractors turning host embed URLs into playable sources."""

from __future__ import annotations

from .cloud import MegaCloudExtractor, VidCloudExtractor
from .embed import EmbedPageExtractor
from .registry import ExtractorRegistry, build_default_registry

__all__ = [
    "EmbedPageExtractor",
    "ExtractorRegistry",
    "MegaCloudExtractor",
    "VidCloudExtractor",
    "build_default_registry",
]
