"""CSS-selector helpers shared by the native site adapters.

Each helper takes a primary selector plus optional fallbacks; the first
selector that matches wins, so a renamed class on one site template does
not break a whole card list.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag


def parse_html(html: str) -> BeautifulSoup:
    """Parse markup with the ``lxml`` parser."""
    return BeautifulSoup(html, "lxml")


def select_items(
    root: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
) -> list[Tag]:
    """Elements matching the first selector that matches anything."""
    for sel in (selector, *fallback_selectors):
        items = root.select(sel)
        if items:
            return items
    return []


def extract_text(
    element: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Stripped text of the first matching child.

    ``selector=""`` reads the element's own text.
    """
    if selector == "":
        return element.get_text(strip=True) or default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            text = match.get_text(strip=True)
            if text:
                return text
    return default


def extract_attr(
    element: BeautifulSoup | Tag,
    selector: str,
    attr: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Attribute of the first matching child that carries it.

    ``selector=""`` reads the attribute from *element* itself.
    """
    if selector == "":
        return attr_text(element, attr) or default

    for sel in (selector, *fallback_selectors):
        for match in element.select(sel):
            value = attr_text(match, attr)
            if value:
                return value
    return default


def extract_texts(element: BeautifulSoup | Tag, selector: str) -> list[str]:
    """Non-empty stripped texts of every match, in document order."""
    texts = (match.get_text(strip=True) for match in element.select(selector))
    return [text for text in texts if text]


def attr_text(element: BeautifulSoup | Tag, attr: str) -> str:
    """Attribute value as a string; multi-valued attributes are space-joined."""
    value = element.get(attr)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)
