"""FlixHQ adapter (flixhq.to).

Media ids are site paths without the leading slash, e.g.
``movie/watch-inception-19764``. Episode ids are the site's ``data-id``
values: the watch block id for movies, the episode id for shows.

Servers come from ``/ajax/movie/episodes/{id}`` (movies) with a fallback
to ``/ajax/v2/episode/servers/{id}`` (shows, JSON ``{html}`` or raw HTML).
Each server's locator is its ``/ajax/episode/sources/{id}`` URL, which
answers with the embed link handed to the extractor.
"""

from __future__ import annotations

import json
import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from mediabridge.domain.entities.media import Episode, Media, MediaKind, Server
from mediabridge.domain.errors import ProviderParseError
from mediabridge.infrastructure.common.html_selectors import (
    extract_attr,
    extract_text,
    extract_texts,
    parse_html,
    select_items,
)

from .base import HttpxProviderBase, SiteInfo, year_from

_SLUG_RE = re.compile(r"[\W_]+")
_SERVER_ID_RE = re.compile(r"\.(\d+)$")
_EMBED_KEYS = ("link", "embed", "url")


def _card_to_media(card: Tag) -> Media | None:
    title = extract_text(card, ".film-detail .film-name a", ".film-name a")
    href = extract_attr(card, ".film-poster a", "href", ".film-name a")
    if not title or not href:
        return None

    type_text = ""
    released = ""
    for item in card.select(".film-detail .fd-infor .fdi-item"):
        text = item.get_text(strip=True)
        if "Movie" in text:
            type_text = "movie"
        elif "TV" in text:
            type_text = "tv"
        if text.isdigit() and 1900 < int(text) < 2100:
            released = text

    return Media(
        id=href.removeprefix("/"),
        title=title,
        kind=MediaKind.TV if type_text == "tv" else MediaKind.MOVIE,
        poster_url=extract_attr(card, ".film-poster img", "data-src"),
        year=year_from(released),
        status=released,
    )


def parse_cards(root: BeautifulSoup | Tag, selector: str) -> list[Media]:
    results: list[Media] = []
    seen: set[str] = set()
    for card in select_items(root, selector):
        media = _card_to_media(card)
        if media is not None and media.id not in seen:
            seen.add(media.id)
            results.append(media)
    return results


def parse_movie_servers(html: str, base_url: str) -> list[Server]:
    """``<a title="Vidcloud" href="/watch-movie/...-19764.1613445">`` links."""
    servers: list[Server] = []
    for link in parse_html(html).select("a[title][href]"):
        name = str(link.get("title", "")).strip()
        match = _SERVER_ID_RE.search(str(link.get("href", "")))
        if name and match:
            servers.append(
                Server(
                    name=name,
                    locator=f"{base_url}/ajax/episode/sources/{match.group(1)}",
                )
            )
    return servers


def parse_episode_servers(html: str, base_url: str) -> list[Server]:
    """``.nav-item a[data-id]`` links whose text is the server name."""
    servers: list[Server] = []
    for link in parse_html(html).select(".nav-item a"):
        name = link.get_text(strip=True)
        server_id = link.get("data-id")
        if name and server_id:
            servers.append(
                Server(name=name, locator=f"{base_url}/ajax/episode/sources/{server_id}")
            )
    return servers


def embed_link_from(payload: Any) -> str:
    """Embed URL from a sources response (``link``/``embed``/``url`` or ``result.*``)."""
    if not isinstance(payload, dict):
        return ""
    for key in _EMBED_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    result = payload.get("result")
    if isinstance(result, dict):
        for key in ("url", "link"):
            value = result.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


class FlixHQProvider(HttpxProviderBase):
    """Scraper for flixhq.to."""

    name = "flixhq"
    kind = MediaKind.MOVIE_TV
    default_base_url = "https://flixhq.to"

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    async def _search(self, query: str) -> list[Media]:
        slug = _SLUG_RE.sub("-", query)
        html = await self._fetch_text(f"{self.base_url}/search/{slug}", context="search")
        return parse_cards(parse_html(html), ".film_list-wrap > div.flw-item")

    async def get_trending(self) -> list[Media]:
        html = await self._fetch_text(f"{self.base_url}/home", context="get_trending")
        soup = parse_html(html)
        return parse_cards(soup, "#trending-movies div.flw-item") + parse_cards(
            soup, "#trending-tv div.flw-item"
        )

    async def get_recent(self) -> list[Media]:
        html = await self._fetch_text(f"{self.base_url}/home", context="get_recent")
        results: list[Media] = []
        for section in parse_html(html).select("section.block_area"):
            heading = extract_text(section, ".cat-heading", "h2")
            if "latest" in heading.lower():
                results.extend(parse_cards(section, "div.flw-item"))
        return results

    async def _load_info(self, media_id: str) -> SiteInfo:
        path = media_id if media_id.startswith("/") else f"/{media_id}"
        url = f"{self.base_url}{path}"
        soup = parse_html(await self._fetch_text(url, context="get_info"))

        heading = soup.select(".heading-name a")
        title = heading[0].get_text(strip=True) if heading else ""
        released = ""
        genres: list[str] = []
        for row in soup.select(".row-line"):
            label = extract_text(row, "strong")
            if "Released" in label:
                released = extract_text(row, "a")
            elif "Genre" in label:
                genres.extend(extract_texts(row, "a"))

        is_tv = "season" in title.lower() or bool(soup.select("#episodes-content"))
        if is_tv:
            episodes = self._parse_episodes(soup)
        else:
            watch_id = extract_attr(soup, ".watch_block", "data-id")
            episodes = (
                [Episode(id=watch_id, number=1, title=title, season=1)]
                if watch_id
                else []
            )

        self._log.debug(
            "flixhq_info_loaded", media_id=media_id, tv=is_tv, episodes=len(episodes)
        )
        return SiteInfo(
            id=media_id,
            url=url,
            title=title,
            kind=MediaKind.TV if is_tv else MediaKind.MOVIE,
            poster_url=extract_attr(soup, ".m_i-d-poster img", "src"),
            synopsis=extract_text(soup, ".description"),
            released=released,
            genres=genres,
            episodes=episodes,
        )

    @staticmethod
    def _parse_episodes(soup: BeautifulSoup) -> list[Episode]:
        episodes: list[Episode] = []
        for index, item in enumerate(soup.select(".ss-list a.ssl-item.ep-item"), 1):
            order = extract_text(item, ".ssli-order")
            episodes.append(
                Episode(
                    id=str(item.get("data-id", "")),
                    number=int(order) if order.isdigit() else index,
                    title=extract_text(item, ".ssli-detail .ep-name"),
                    season=1,
                )
            )
        return episodes

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    async def discover_servers(self, episode_id: str) -> list[Server]:
        movie_resp = await self._safe_fetch(
            f"{self.base_url}/ajax/movie/episodes/{episode_id}",
            context="discover_servers",
            ajax=True,
        )
        if movie_resp is not None:
            servers = parse_movie_servers(movie_resp.text, self.base_url)
            if servers:
                return servers

        body = await self._fetch_text(
            f"{self.base_url}/ajax/v2/episode/servers/{episode_id}",
            context="discover_servers",
            ajax=True,
        )
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("html"), str):
            body = payload["html"] or body
        return parse_episode_servers(body, self.base_url)

    async def _embed_url(self, server: Server) -> str:
        payload = await self._fetch_json(server.locator, context="extract_server")
        embed_url = embed_link_from(payload)
        if not embed_url:
            raise ProviderParseError(
                f"no embed URL found in response from {server.locator}",
                provider=self.name,
            )
        return embed_url
