"""Error hierarchy shared by providers, plugins, extractors and resolution."""

from __future__ import annotations

from collections.abc import Sequence

from mediabridge.domain.entities.media import Server, ServerAttempt


class MediaBridgeError(Exception):
    """Base class for all mediabridge errors."""


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class ProviderError(MediaBridgeError):
    """Raised by a provider adapter; ``provider`` names the adapter."""

    def __init__(self, message: str, *, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider


class ProviderTransportError(ProviderError):
    """Network failure or non-success status while talking to a site."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.url = url
        self.status_code = status_code


class ProviderParseError(ProviderError):
    """A site answered with markup or JSON the adapter cannot use."""


class ProviderUnavailableError(ProviderError):
    """Health check failed."""


class UnsupportedOperationError(ProviderError):
    """The provider does not offer this operation."""


class ProviderNotFoundError(ProviderError):
    """Raised when a provider name is not known to the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"provider not found: {name}", provider=name)


# ---------------------------------------------------------------------------
# Script plugins
# ---------------------------------------------------------------------------


class PluginError(MediaBridgeError):
    """Base class for script plugin errors; ``plugin`` names the script."""

    def __init__(self, message: str, *, plugin: str = "") -> None:
        super().__init__(message)
        self.plugin = plugin


class PluginLoadError(PluginError):
    """The script could not be read or failed to execute at load time."""


class PluginContractError(PluginError):
    """The script broke the function contract (missing function, bad return)."""

    def __init__(self, message: str, *, plugin: str = "", function: str = "") -> None:
        super().__init__(message, plugin=plugin)
        self.function = function


class PluginFunctionNotFoundError(PluginContractError):
    def __init__(self, function: str, *, plugin: str = "") -> None:
        super().__init__(
            f"function not found: {function}", plugin=plugin, function=function
        )


class PluginCallError(PluginError):
    """A script function raised while running."""

    def __init__(self, message: str, *, plugin: str = "", function: str = "") -> None:
        super().__init__(message, plugin=plugin)
        self.function = function


# ---------------------------------------------------------------------------
# Extraction and resolution
# ---------------------------------------------------------------------------


class ExtractionError(MediaBridgeError):
    """An extractor could not turn an embed URL into sources."""

    def __init__(self, message: str, *, extractor: str = "", url: str = "") -> None:
        super().__init__(message)
        self.extractor = extractor
        self.url = url


class ResolutionError(MediaBridgeError):
    """Base class for stream resolution failures."""


class SourceResolutionError(ResolutionError):
    """Every server was tried and at least one of them failed.

    The exception is chained (``__cause__``) to the last server's error.
    """

    def __init__(self, message: str, *, attempts: Sequence[ServerAttempt] = ()) -> None:
        super().__init__(message)
        self.attempts = list(attempts)

    @property
    def last_server(self) -> Server | None:
        for attempt in reversed(self.attempts):
            if attempt.failed:
                return attempt.server
        return None


class NoSourcesError(ResolutionError):
    """Resolution succeeded but produced nothing playable."""

    def __init__(self, message: str = "no sources found") -> None:
        super().__init__(message)
