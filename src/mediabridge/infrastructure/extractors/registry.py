"""Registry mapping server names to extractors."""

from __future__ import annotations

import httpx
import structlog

from mediabridge.domain.ports.extractor import ExtractorPort

from .cloud import MegaCloudExtractor, VidCloudExtractor
from .embed import EmbedPageExtractor

log = structlog.get_logger(__name__)


class ExtractorRegistry:
    """Looks up extractors by server name.

    ``match`` compares the hint against registered extractor names only
    (case-insensitive substring) and returns ``None`` when nothing fits.
    ``for_server`` also considers each extractor's ``aliases`` and falls
    back to the generic extractor, which is what site adapters want.
    """

    def __init__(
        self,
        extractors: list[ExtractorPort] | None = None,
        fallback: ExtractorPort | None = None,
    ) -> None:
        self._extractors: dict[str, ExtractorPort] = {}
        self._aliases: dict[str, ExtractorPort] = {}
        self._fallback = fallback
        for extractor in extractors or []:
            self.register(extractor)

    def register(self, extractor: ExtractorPort) -> None:
        self._extractors[extractor.name.lower()] = extractor
        for alias in getattr(extractor, "aliases", ()) or ():
            self._aliases[alias.lower()] = extractor
        log.debug("extractor_registered", extractor=extractor.name)

    @property
    def supported_extractors(self) -> list[str]:
        return list(self._extractors.keys())

    def match(self, hint: object) -> ExtractorPort | None:
        if not isinstance(hint, str) or not hint:
            return None
        lowered = hint.lower()
        for key, extractor in self._extractors.items():
            if key in lowered:
                return extractor
        return None

    def for_server(self, server_name: str) -> ExtractorPort | None:
        extractor = self.match(server_name)
        if extractor is not None:
            return extractor
        lowered = server_name.lower()
        for alias, aliased in self._aliases.items():
            if alias in lowered:
                return aliased
        return self._fallback

    async def cleanup(self) -> None:
        """Close resources held by extractors that have a cleanup method."""
        for extractor in {id(e): e for e in self._extractors.values()}.values():
            cleanup_fn = getattr(extractor, "cleanup", None)
            if cleanup_fn is not None:
                await cleanup_fn()


def build_default_registry(
    http_client: httpx.AsyncClient, timeout: float = 15.0
) -> ExtractorRegistry:
    """VidCloud and MegaCloud, with the embed page scanner as fallback."""
    return ExtractorRegistry(
        extractors=[
            VidCloudExtractor(http_client, timeout=timeout),
            MegaCloudExtractor(http_client, timeout=timeout),
        ],
        fallback=EmbedPageExtractor(http_client, timeout=timeout),
    )
