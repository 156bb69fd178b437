"""SFlix adapter (sflix.ps).

Media ids carry their type: ``movie/<slug>`` or ``tv/<slug>``. A bare
slug is tried as a movie first, then as a show.

Episode ids are ``<data-id>|<media id>``: the server listing endpoint
differs between movies and shows, so the media id rides along. Server
locators are the site's server ``data-id``; ``/ajax/episode/sources/{id}``
turns one into an embed link.
"""

from __future__ import annotations

from bs4 import BeautifulSoup

from mediabridge.domain.entities.media import Episode, Media, MediaKind, Server
from mediabridge.domain.errors import ProviderParseError, ProviderTransportError
from mediabridge.domain.identifiers import EpisodeRef
from mediabridge.infrastructure.common.html_selectors import (
    extract_attr,
    extract_text,
    parse_html,
)

from .base import HttpxProviderBase, SiteInfo


def _parse_number(text: str, default: int) -> int:
    text = text.strip().removesuffix(":").strip()
    return int(text) if text.isdigit() else default


def parse_search_results(html: str) -> list[Media]:
    results: list[Media] = []
    for card in parse_html(html).select("div.flw-item"):
        href = extract_attr(card, "h2.film-name a", "href")
        if not href:
            continue

        year = 0
        for item in card.select(".fdi-item"):
            text = item.get_text(strip=True)
            if len(text) == 4 and text.isdigit():
                year = int(text)

        parts = href.removeprefix("/").split("/")
        kind = MediaKind.MOVIE
        if len(parts) >= 2:
            if parts[0] == "tv":
                kind = MediaKind.TV
            media_id = f"{parts[0]}/{parts[1]}"
        else:
            media_id = parts[0]

        results.append(
            Media(
                id=media_id,
                title=extract_text(card, "h2.film-name a"),
                kind=kind,
                poster_url=extract_attr(card, "img", "data-src"),
                year=year,
            )
        )
    return results


def parse_servers(html: str) -> list[Server]:
    servers: list[Server] = []
    for item in parse_html(html).select(".ulclear > li"):
        data_id = extract_attr(item, "a", "data-id")
        name = extract_text(item, "a span")
        if data_id and name:
            servers.append(Server(name=name.lower(), locator=data_id))
    return servers


class SFlixProvider(HttpxProviderBase):
    """Scraper for sflix.ps. Trending and recent are not offered."""

    name = "sflix"
    kind = MediaKind.MOVIE_TV
    default_base_url = "https://sflix.ps"

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    async def _search(self, query: str) -> list[Media]:
        slug = query.replace(" ", "-")
        html = await self._fetch_text(f"{self.base_url}/search/{slug}", context="search")
        return parse_search_results(html)

    async def _load_info(self, media_id: str) -> SiteInfo:
        if media_id.startswith(("movie/", "tv/")):
            kind_text = media_id.split("/", 1)[0]
            url = f"{self.base_url}/{media_id}"
            html = await self._fetch_text(url, context="get_info")
        else:
            kind_text = "movie"
            url = f"{self.base_url}/movie/{media_id}"
            try:
                html = await self._fetch_text(url, context="get_info")
            except ProviderTransportError:
                self._log.debug("sflix_movie_lookup_failed", media_id=media_id)
                kind_text = "tv"
                url = f"{self.base_url}/tv/{media_id}"
                html = await self._fetch_text(url, context="get_info")

        clean_id = media_id if "/" in media_id else f"{kind_text}/{media_id}"
        soup = parse_html(html)
        title = extract_text(soup, "h2.heading-name")
        rating = extract_text(soup, "span.imdb").removeprefix("IMDB:").strip()

        released = ""
        genres: list[str] = []
        for row in soup.select("div.elements .row-line"):
            text = row.get_text()
            if "Released:" in text:
                released = text.split("Released:", 1)[1].strip()
            if "Genre:" in text:
                for link in row.select("a"):
                    genre = link.get_text(strip=True)
                    if genre and "http" not in genre.lower():
                        genres.append(genre)

        data_id = extract_attr(soup, ".detail_page-watch", "data-id") or extract_attr(
            soup, "#watch", "data-id"
        )
        episodes: list[Episode] = []
        if data_id and kind_text == "movie":
            episodes = [Episode(id=data_id, number=1, title=title, season=1)]
        elif data_id:
            episodes = await self._fetch_episode_list(data_id)

        return SiteInfo(
            id=clean_id,
            url=url,
            title=title,
            kind=MediaKind.TV if kind_text == "tv" else MediaKind.MOVIE,
            poster_url=extract_attr(soup, "img.film-poster-img", "src"),
            synopsis=extract_text(soup, "div.description"),
            released=released,
            rating=rating,
            genres=genres,
            episodes=episodes,
        )

    async def _fetch_episode_list(self, show_id: str) -> list[Episode]:
        """Seasons from ``/ajax/season/list``, then each season's episodes.

        A season whose episode list cannot be fetched is skipped.
        """
        resp = await self._safe_fetch(
            f"{self.base_url}/ajax/season/list/{show_id}",
            context="season_list",
            ajax=True,
        )
        if resp is None:
            return []

        episodes: list[Episode] = []
        for index, item in enumerate(parse_html(resp.text).select(".ss-item"), 1):
            season_id = item.get("data-id")
            if not season_id:
                continue
            season_text = item.get_text(strip=True)
            season = index
            if "Season " in season_text:
                season = _parse_number(season_text.split("Season ", 1)[1], index)

            ep_resp = await self._safe_fetch(
                f"{self.base_url}/ajax/season/episodes/{season_id}",
                context="season_episodes",
                ajax=True,
            )
            if ep_resp is None:
                continue
            episodes.extend(self._parse_season_episodes(parse_html(ep_resp.text), season))
        return episodes

    @staticmethod
    def _parse_season_episodes(soup: BeautifulSoup, season: int) -> list[Episode]:
        episodes: list[Episode] = []
        for index, item in enumerate(soup.select(".eps-item"), 1):
            episode_id = item.get("data-id")
            if not episode_id:
                continue
            number_text = extract_text(item, ".episode-number").removeprefix("Episode ")
            episodes.append(
                Episode(
                    id=str(episode_id),
                    number=_parse_number(number_text, index),
                    title=extract_text(item, ".film-name a"),
                    season=season,
                )
            )
        return episodes

    def _episode_id(self, episode: Episode, info: SiteInfo) -> str:
        return EpisodeRef(episode_id=episode.id, media_id=info.id).encode()

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    async def discover_servers(self, episode_id: str) -> list[Server]:
        ref = EpisodeRef.parse(episode_id)
        if ref.media_id.startswith("movie/"):
            url = f"{self.base_url}/ajax/episode/list/{ref.episode_id}"
        else:
            url = f"{self.base_url}/ajax/episode/servers/{ref.episode_id}"
        html = await self._fetch_text(url, context="discover_servers", ajax=True)
        return parse_servers(html)

    async def _embed_url(self, server: Server) -> str:
        payload = await self._fetch_json(
            f"{self.base_url}/ajax/episode/sources/{server.locator}",
            context="extract_server",
        )
        link = payload.get("link") if isinstance(payload, dict) else None
        if not isinstance(link, str) or not link:
            raise ProviderParseError(
                "no embed link found in response", provider=self.name
            )
        return link
