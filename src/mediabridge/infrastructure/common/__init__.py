"""Common infrastructure utilities."""

from __future__ import annotations

from .html_selectors import (
    attr_text,
    extract_attr,
    extract_text,
    extract_texts,
    parse_html,
    select_items,
)

__all__ = [
    "attr_text",
    "extract_attr",
    "extract_text",
    "extract_texts",
    "parse_html",
    "select_items",
]
