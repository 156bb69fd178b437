"""Provider backed by a Lua plugin script.

The script defines global functions with fixed names (``get_name``,
``search``, ``get_stream_url``, ...). Every provider method looks up the
matching function, calls it with marshaled arguments, takes the first
return value and converts it back. A missing function is a contract
error, never a crash, and never disables the plugin for later calls.

One Lua state per plugin; it is not safe for concurrent use, so every
call holds the plugin's lock. Calls run in a worker thread so the event
loop stays free, which also lets ``extract_sources`` hand async extractor
work back to that loop.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

import lupa
import structlog

from mediabridge.domain.entities.media import (
    QUALITY_AUTO,
    Episode,
    Media,
    MediaDetails,
    MediaKind,
    Season,
    StreamType,
    StreamURL,
    Subtitle,
)
from mediabridge.domain.errors import (
    NoSourcesError,
    PluginCallError,
    PluginContractError,
    PluginFunctionNotFoundError,
    PluginLoadError,
    ProviderUnavailableError,
)

from .capabilities import PluginCapabilities
from .marshal import (
    PluginRecord,
    records_from,
    texts_from,
    to_native_value,
    to_plugin_value,
)

log = structlog.get_logger(__name__)

UNKNOWN_NAME = "Unknown"


def _deny_attribute_access(obj: Any, attr_name: Any, is_setting: bool) -> Any:
    raise AttributeError(f"access to {attr_name!r} is not allowed")


class LuaProvider:
    """``ProviderPort`` implementation driving one Lua script."""

    def __init__(
        self,
        path: Path,
        *,
        capabilities: PluginCapabilities | None = None,
    ) -> None:
        self._path = path
        self._plugin_id = path.stem
        self._lock = threading.Lock()
        self._capabilities = capabilities or PluginCapabilities(plugin=path.stem)

        try:
            self._load()
        except BaseException:
            self._capabilities.close()
            raise

        self._name = self._resolve_name()
        self._kind = self._resolve_kind()
        log.info(
            "plugin_loaded", plugin=self._plugin_id, name=self._name, kind=self._kind
        )

    def _load(self) -> None:
        try:
            source = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PluginLoadError(
                f"failed to read plugin {self._path}: {exc}", plugin=self._plugin_id
            ) from exc

        self._runtime = lupa.LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
            attribute_filter=_deny_attribute_access,
        )
        self._capabilities.install(self._runtime)

        try:
            self._runtime.execute(source)
        except Exception as exc:  # noqa: BLE001
            raise PluginLoadError(
                f"failed to load plugin {self._path}: {exc}", plugin=self._plugin_id
            ) from exc

    def __repr__(self) -> str:
        return f"LuaProvider(name={self._name!r}, path={str(self._path)!r})"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> MediaKind:
        return self._kind

    @property
    def path(self) -> Path:
        return self._path

    def _resolve_name(self) -> str:
        try:
            value = self._call("get_name")
        except (PluginContractError, PluginCallError) as exc:
            log.warning(
                "plugin_name_unavailable", plugin=self._plugin_id, error=str(exc)
            )
            return UNKNOWN_NAME
        return value if isinstance(value, str) and value else UNKNOWN_NAME

    def _resolve_kind(self) -> MediaKind:
        try:
            value = self._call("get_type")
        except (PluginContractError, PluginCallError):
            return MediaKind.UNKNOWN
        return MediaKind.parse(value)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _call(self, function: str, *args: Any) -> Any:
        """Call a global script function under the plugin lock."""
        with self._lock:
            fn = self._runtime.globals()[function]
            if lupa.lua_type(fn) != "function":
                raise PluginFunctionNotFoundError(function, plugin=self._plugin_id)

            lua_args = [to_plugin_value(self._runtime, arg) for arg in args]
            try:
                result = fn(*lua_args)
            except Exception as exc:
                raise PluginCallError(
                    f"{function}: {exc}", plugin=self._plugin_id, function=function
                ) from exc

            if isinstance(result, tuple):
                result = result[0] if result else None
            return to_native_value(result)

    async def _invoke(self, function: str, *args: Any) -> Any:
        self._capabilities.bind_loop(asyncio.get_running_loop())
        return await asyncio.to_thread(self._call, function, *args)

    # ------------------------------------------------------------------
    # ProviderPort
    # ------------------------------------------------------------------

    async def search(self, query: str) -> list[Media]:
        return _media_list(await self._invoke("search", query), "search")

    async def get_trending(self) -> list[Media]:
        return _media_list(await self._invoke("get_trending"), "get_trending")

    async def get_recent(self) -> list[Media]:
        return _media_list(await self._invoke("get_recent"), "get_recent")

    async def get_media_details(self, media_id: str) -> MediaDetails:
        value = await self._invoke("get_media_details", media_id)
        if not isinstance(value, dict):
            raise PluginContractError(
                f"get_media_details: no details for {media_id!r}",
                plugin=self._plugin_id,
                function="get_media_details",
            )
        record = PluginRecord(value)
        return MediaDetails(
            id=media_id,
            title=record.text("title"),
            kind=MediaKind.parse(record.text("type")),
            poster_url=record.text("poster_url"),
            year=record.integer("year"),
            status=record.text("status"),
            synopsis=record.text("synopsis"),
            genres=record.texts("genres"),
            seasons=[_season(row) for row in record.records("seasons")],
        )

    async def get_seasons(self, media_id: str) -> list[Season]:
        value = await self._invoke("get_seasons", media_id)
        return [_season(row) for row in records_from(value, context="get_seasons")]

    async def get_episodes(self, season_id: str) -> list[Episode]:
        value = await self._invoke("get_episodes", season_id)
        return [
            Episode(
                id=row.text("id"),
                number=row.integer("number"),
                title=row.text("title"),
                season=row.integer("season"),
            )
            for row in records_from(value, context="get_episodes")
        ]

    async def get_stream_url(self, episode_id: str, quality: str) -> StreamURL:
        value = await self._invoke("get_stream_url", episode_id, quality)
        if isinstance(value, dict):
            return _stream_from_record(PluginRecord(value), quality)
        url = value if isinstance(value, str) else ""
        if not url:
            raise NoSourcesError(f"get_stream_url: no stream for {episode_id!r}")
        return StreamURL(
            url=url,
            quality=quality or QUALITY_AUTO,
            stream_type=_guess_stream_type(url),
        )

    async def get_available_qualities(self, episode_id: str) -> list[str]:
        return texts_from(await self._invoke("get_qualities", episode_id))

    async def health_check(self) -> None:
        value = await self._invoke("health_check")
        if value is False:
            raise ProviderUnavailableError(
                f"plugin {self._name} reported unhealthy", provider=self._name
            )

    async def get_info(self, media_id: str) -> Any:
        """Raw details as the script returns them."""
        return await self._invoke("get_info", media_id)

    def close(self) -> None:
        self._capabilities.close()

    async def aclose(self) -> None:
        self.close()


def _media_list(value: Any, context: str) -> list[Media]:
    return [
        Media(
            id=row.text("id"),
            title=row.text("title"),
            kind=MediaKind.parse(row.text("type")),
            poster_url=row.text("poster_url"),
            year=row.integer("year"),
            status=row.text("status"),
        )
        for row in records_from(value, context=context)
    ]


def _season(row: PluginRecord) -> Season:
    return Season(
        id=row.text("id"), number=row.integer("number"), title=row.text("title")
    )


def _guess_stream_type(url: str) -> StreamType:
    return StreamType.HLS if ".m3u8" in url.lower() else StreamType.MP4


def _stream_from_record(record: PluginRecord, quality: str) -> StreamURL:
    url = record.text("url")
    if not url:
        raise NoSourcesError("get_stream_url: plugin returned no url")
    referer = record.text("referer")
    headers = record.mapping("headers")
    if referer and "Referer" not in headers:
        headers["Referer"] = referer
    if "is_m3u8" in record:
        stream_type = StreamType.HLS if record.flag("is_m3u8") else StreamType.MP4
    else:
        stream_type = _guess_stream_type(url)
    return StreamURL(
        url=url,
        quality=record.text("quality") or quality or QUALITY_AUTO,
        stream_type=stream_type,
        referer=referer,
        headers=headers,
        subtitles=[
            Subtitle(url=row.text("url"), language=row.text("lang"))
            for row in record.records("subtitles")
            if row.text("url")
        ],
    )
