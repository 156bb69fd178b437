"""Queryable HTML selections handed to script plugins.

A ``QueryableDocument`` is an ordered selection of nodes from one parsed
page. Queries never raise on a miss: an absent attribute reads as ``""``
and a selector that matches nothing yields an empty selection.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from mediabridge.infrastructure.common.html_selectors import attr_text, parse_html

log = structlog.get_logger(__name__)


class QueryableDocument:
    __slots__ = ("_nodes",)

    def __init__(self, nodes: Sequence[BeautifulSoup | Tag] = ()) -> None:
        self._nodes = list(nodes)

    @classmethod
    def parse(cls, html: str) -> QueryableDocument:
        return cls([parse_html(html)])

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"QueryableDocument(length={len(self._nodes)})"

    def find(self, selector: str) -> QueryableDocument:
        """Descendants of every node in the selection matching ``selector``."""
        matches: list[Tag] = []
        seen: set[int] = set()
        for node in self._nodes:
            try:
                found = node.select(selector)
            except SelectorSyntaxError as exc:
                log.debug("invalid_selector", selector=selector, error=str(exc))
                return QueryableDocument()
            for match in found:
                if id(match) not in seen:
                    seen.add(id(match))
                    matches.append(match)
        return QueryableDocument(matches)

    def text(self) -> str:
        """Combined text of the selection, stripped; ``""`` when empty."""
        return "".join(node.get_text() for node in self._nodes).strip()

    def attr(self, name: str) -> str:
        """Attribute of the first node; ``""`` when absent."""
        if not self._nodes:
            return ""
        return attr_text(self._nodes[0], name)

    def first(self) -> QueryableDocument:
        return QueryableDocument(self._nodes[:1])

    def at(self, index: int) -> QueryableDocument:
        """Single-node selection at 1-based ``index``; empty when out of range."""
        if 1 <= index <= len(self._nodes):
            return QueryableDocument([self._nodes[index - 1]])
        return QueryableDocument()

    def length(self) -> int:
        return len(self._nodes)
