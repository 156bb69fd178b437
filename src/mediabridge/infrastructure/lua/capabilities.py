"""Host functions exposed to a script plugin.

Each loaded plugin gets its own ``PluginCapabilities`` (and its own HTTP
client). Installed into a Lua runtime, it provides these globals:

``http_get(url, headers?)``
    ``{body, status_code, headers}`` or ``nil, err``. A non-2xx status is
    not an error at this layer. Also available as ``require("http").get``.
``html_parse(text)``
    A queryable selection (``doc:find(sel)``, ``:text()``, ``:attr(name)``,
    ``:first()``, ``:length()``, ``:each(fn)``) or ``nil``.
``json_parse(text)``
    The decoded value or ``nil, err``.
``extract_sources(embed_url, server_hint)``
    ``{sources = {...}, subtitles = {...}}`` or ``nil, err``. Returns
    nothing at all when no extractor matches the hint.
``log(message)``
    Writes to the host log, tagged with the plugin name.

Capabilities never raise into the script; failures come back as values.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx
import lupa
import structlog

from mediabridge.domain.entities.media import VideoSources
from mediabridge.infrastructure.common.constants import (
    DEFAULT_EXTRACT_TIMEOUT,
    DEFAULT_PLUGIN_HTTP_TIMEOUT,
)

from .document import QueryableDocument
from .marshal import to_native_value, to_plugin_value

if TYPE_CHECKING:
    from mediabridge.infrastructure.extractors.registry import ExtractorRegistry

log = structlog.get_logger(__name__)


class EachErrorPolicy(str, Enum):
    """What ``Selection:each`` does when the Lua callback raises."""

    SWALLOW = "swallow"
    PROPAGATE = "propagate"


# Runs once per runtime. Selections are Lua tables wrapping an opaque host
# handle so scripts can use colon syntax on them.
_PRELUDE = """
return function(ops)
  local Selection = {}
  Selection.__index = Selection

  local function wrap(handle)
    if handle == nil then
      return nil
    end
    return setmetatable({ _handle = handle }, Selection)
  end

  function Selection:find(selector)
    return wrap(ops.find(self._handle, tostring(selector)))
  end

  function Selection:text()
    return ops.text(self._handle)
  end

  function Selection:attr(name)
    return ops.attr(self._handle, tostring(name))
  end

  function Selection:first()
    return wrap(ops.first(self._handle))
  end

  function Selection:length()
    return ops.length(self._handle)
  end

  function Selection:each(callback)
    for index = 1, ops.length(self._handle) do
      local ok, err = pcall(callback, index, wrap(ops.at(self._handle, index)))
      if not ok and ops.each_failed(index, tostring(err)) then
        error(err, 0)
      end
    end
  end

  html_parse = function(text)
    return wrap(ops.parse(text))
  end

  http_get = ops.http_get
  json_parse = ops.json_parse
  extract_sources = ops.extract_sources
  log = ops.log

  package.loaded["http"] = {
    get = function(url, options)
      local headers = nil
      if type(options) == "table" then
        headers = options.headers
      end
      return ops.http_get(url, headers)
    end,
  }

  os = { time = os.time, clock = os.clock, date = os.date }
  io = nil
  debug = nil
  dofile = nil
  loadfile = nil
  package.cpath = ""
  package.loadlib = nil
end
"""


class PluginCapabilities:
    """Network, parsing and extraction services for one plugin."""

    def __init__(
        self,
        *,
        plugin: str,
        extractors: ExtractorRegistry | None = None,
        http_client: httpx.Client | None = None,
        http_timeout: float = DEFAULT_PLUGIN_HTTP_TIMEOUT,
        user_agent: str = "",
        extract_timeout: float = DEFAULT_EXTRACT_TIMEOUT,
        each_error_policy: EachErrorPolicy = EachErrorPolicy.SWALLOW,
    ) -> None:
        self._plugin = plugin
        self._extractors = extractors
        self._extract_timeout = extract_timeout
        self._each_error_policy = EachErrorPolicy(each_error_policy)
        self._owns_client = http_client is None
        headers = {"User-Agent": user_agent} if user_agent else None
        self._client = http_client or httpx.Client(
            timeout=http_timeout,
            follow_redirects=True,
            headers=headers,
        )
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def plugin(self) -> str:
        return self._plugin

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remember the event loop extractors must run on."""
        self._loop = loop

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------
    # Host-side implementations (plain Python values in and out)
    # ------------------------------------------------------------------

    def http_get(
        self, url: Any, headers: Any = None
    ) -> tuple[dict[str, Any] | None, str | None]:
        if not isinstance(url, str) or not url:
            return None, "http_get: url must be a non-empty string"

        request_headers = _string_headers(headers)
        try:
            response = self._client.get(url, headers=request_headers or None)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.debug(
                "plugin_http_get_failed", plugin=self._plugin, url=url, error=str(exc)
            )
            return None, f"http_get: {exc}"

        return {
            "body": response.text,
            "status_code": response.status_code,
            "headers": {k.lower(): v for k, v in response.headers.items()},
        }, None

    def html_parse(self, text: Any) -> QueryableDocument | None:
        if not isinstance(text, str):
            return None
        return QueryableDocument.parse(text)

    def json_parse(self, text: Any) -> tuple[Any, str | None]:
        if not isinstance(text, str):
            return None, "json_parse: input must be a string"
        try:
            return json.loads(text), None
        except ValueError as exc:
            return None, f"json_parse: {exc}"

    def extract_sources(
        self, url: Any, hint: Any
    ) -> tuple[VideoSources | None, str | None] | None:
        """Run the extractor matching ``hint`` on the host event loop.

        ``None`` means no extractor matched; otherwise a (result, error) pair.
        """
        extractor = self._extractors.match(hint) if self._extractors else None
        if extractor is None:
            log.debug("plugin_extractor_unmatched", plugin=self._plugin, hint=hint)
            return None
        if not isinstance(url, str) or not url:
            return None, "extract_sources: url must be a non-empty string"

        loop = self._loop
        if loop is None or loop.is_closed():
            return None, "extract_sources: no host event loop"
        if _running_loop() is loop:
            return None, "extract_sources: cannot block the host event loop"

        future = asyncio.run_coroutine_threadsafe(extractor.extract(url), loop)
        try:
            result = future.result(timeout=self._extract_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            return None, f"extract_sources: {extractor.name} timed out"
        except Exception as exc:  # noqa: BLE001
            log.info(
                "plugin_extraction_failed",
                plugin=self._plugin,
                extractor=extractor.name,
                url=url,
                error=str(exc),
            )
            return None, f"extract_sources: {exc}"
        return result, None

    def log_message(self, message: Any) -> None:
        log.info("plugin_log", plugin=self._plugin, message=str(message))

    # ------------------------------------------------------------------
    # Lua wiring
    # ------------------------------------------------------------------

    def install(self, runtime: lupa.LuaRuntime) -> None:
        """Define the capability globals and sandbox ``runtime``."""

        def http_get(url: Any, headers: Any = None) -> Any:
            result, error = self.http_get(url, to_native_value(headers))
            if error is not None:
                return None, error
            return to_plugin_value(runtime, result)

        def json_parse(text: Any) -> Any:
            value, error = self.json_parse(text)
            if error is not None:
                return None, error
            return to_plugin_value(runtime, value)

        def extract_sources(url: Any, hint: Any = None) -> Any:
            outcome = self.extract_sources(url, hint)
            if outcome is None:
                return ()
            result, error = outcome
            if error is not None or result is None:
                return None, error
            return to_plugin_value(runtime, _video_sources_payload(result))

        def each_failed(index: int, message: str) -> bool:
            log.warning(
                "plugin_each_callback_failed",
                plugin=self._plugin,
                index=index,
                error=message,
            )
            return self._each_error_policy is EachErrorPolicy.PROPAGATE

        ops = runtime.table(
            parse=self.html_parse,
            find=lambda doc, selector: doc.find(selector),
            text=lambda doc: doc.text(),
            attr=lambda doc, name: doc.attr(name),
            first=lambda doc: doc.first(),
            length=lambda doc: doc.length(),
            at=lambda doc, index: doc.at(int(index)),
            each_failed=each_failed,
            http_get=http_get,
            json_parse=json_parse,
            extract_sources=extract_sources,
            log=self.log_message,
        )
        setup = runtime.execute(_PRELUDE)
        setup(ops)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _string_headers(headers: Any) -> dict[str, str]:
    if not isinstance(headers, dict):
        return {}
    return {
        str(key): str(value)
        for key, value in headers.items()
        if isinstance(value, (str, int, float)) and not isinstance(value, bool)
    }


def _video_sources_payload(sources: VideoSources) -> dict[str, Any]:
    return {
        "sources": [
            {
                "url": source.url,
                "quality": source.quality,
                "is_m3u8": source.is_m3u8,
                "referer": source.referer,
            }
            for source in sources.sources
        ],
        "subtitles": [
            {"url": subtitle.url, "lang": subtitle.language}
            for subtitle in sources.subtitles
        ],
    }
