"""Provider registry: native adapters from config plus Lua plugins on disk."""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog

from mediabridge.domain.errors import PluginError, ProviderNotFoundError
from mediabridge.domain.ports.provider import ProviderPort
from mediabridge.infrastructure.config.schema import AppConfig
from mediabridge.infrastructure.extractors.registry import (
    ExtractorRegistry,
    build_default_registry,
)
from mediabridge.infrastructure.lua import (
    EachErrorPolicy,
    LuaProvider,
    PluginCapabilities,
)
from mediabridge.infrastructure.providers import FlixHQProvider, SFlixProvider
from mediabridge.infrastructure.providers.base import HttpxProviderBase

log = structlog.get_logger(__name__)

NATIVE_PROVIDERS: dict[str, type[HttpxProviderBase]] = {
    "flixhq": FlixHQProvider,
    "sflix": SFlixProvider,
}


class ProviderRegistry:
    """Holds every usable provider, keyed by its name.

    ``load()`` registers enabled native adapters, then every ``*.lua`` file
    in the plugin directory (sorted by file name). A plugin that fails to
    load is logged, remembered in ``load_errors`` and left out. When two
    providers report the same name, the first one wins.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._providers: dict[str, ProviderPort] = {}
        self.load_errors: dict[Path, str] = {}
        self._http_client: httpx.AsyncClient | None = None
        self._extractors: ExtractorRegistry | None = None

    @property
    def extractors(self) -> ExtractorRegistry:
        """Extractor set shared by native adapters and plugins."""
        if self._extractors is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._config.http_timeout_seconds,
                follow_redirects=True,
                headers={"User-Agent": self._config.http_user_agent},
            )
            self._extractors = build_default_registry(
                self._http_client, timeout=self._config.http_timeout_seconds
            )
        return self._extractors

    def load(self) -> None:
        self._load_native()
        if self._config.plugins_enabled:
            self._load_plugins(self._config.plugin_dir)
        log.info(
            "providers_loaded",
            providers=self.names(),
            failed_plugins=len(self.load_errors),
        )

    def register(self, provider: ProviderPort) -> bool:
        """Add ``provider`` unless its name is taken. Returns whether it was added."""
        if provider.name in self._providers:
            log.warning(
                "provider_duplicate_name",
                name=provider.name,
                provider=repr(provider),
            )
            return False
        self._providers[provider.name] = provider
        return True

    def _load_native(self) -> None:
        for name, settings in self._config.providers.items():
            if not settings.enabled:
                log.debug("provider_disabled", provider=name)
                continue
            provider_cls = NATIVE_PROVIDERS[name]
            self.register(
                provider_cls(
                    base_url=settings.base_url,
                    extractors=self.extractors,
                    timeout=settings.timeout_seconds
                    or self._config.http_timeout_seconds,
                )
            )

    def _load_plugins(self, plugin_dir: Path) -> None:
        if not plugin_dir.is_dir():
            log.warning("plugin_dir_missing", plugin_dir=str(plugin_dir))
            return

        for path in sorted(plugin_dir.glob("*.lua")):
            try:
                provider = LuaProvider(path, capabilities=self._capabilities_for(path))
            except PluginError as exc:
                self.load_errors[path] = str(exc)
                log.error("plugin_load_failed", path=str(path), error=str(exc))
                continue
            if not self.register(provider):
                provider.close()

    def _capabilities_for(self, path: Path) -> PluginCapabilities:
        return PluginCapabilities(
            plugin=path.stem,
            extractors=self.extractors,
            http_timeout=self._config.plugin_http_timeout_seconds,
            user_agent=self._config.http_user_agent,
            extract_timeout=self._config.plugin_extract_timeout_seconds,
            each_error_policy=EachErrorPolicy(self._config.each_error_policy),
        )

    def get(self, name: str) -> ProviderPort:
        try:
            return self._providers[name]
        except KeyError:
            raise ProviderNotFoundError(name) from None

    def names(self) -> list[str]:
        return sorted(self._providers)

    def all(self) -> list[ProviderPort]:
        return [self._providers[name] for name in self.names()]

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    async def aclose(self) -> None:
        for provider in self._providers.values():
            aclose = getattr(provider, "aclose", None)
            if aclose is not None:
                await aclose()
        if self._extractors is not None:
            await self._extractors.cleanup()
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
