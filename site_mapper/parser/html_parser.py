"""HTML parsing utilities for SiteMapper.

The crawler and the indexing rules never touch BeautifulSoup directly; they
only rely on the small :class:`MarkupQuery` capability:

* ``select(css)``: every element matching a CSS selector, in document order;
* ``attr(css, name)``: attribute *name* of the first matching element, or
  ``None`` when no element matches or the attribute is missing;
* ``attrs(css, name)``: attribute *name* of every matching element.

:class:`HtmlDocument` implements it on top of ``bs4`` (CSS selectors come from
``soupsieve``, which ships with it). Any other parser can be plugged in by
providing the same three methods.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__: Sequence[str] = ("MarkupQuery", "HtmlDocument", "parse_html")


@runtime_checkable
class MarkupQuery(Protocol):
    """Read-only query interface over parsed markup."""

    def select(self, selector: str) -> list[Any]:
        ...

    def attr(self, selector: str, name: str) -> str | None:
        ...

    def attrs(self, selector: str, name: str) -> list[str]:
        ...


class HtmlDocument:
    """BeautifulSoup-backed :class:`MarkupQuery`."""

    __slots__ = ("_soup",)

    def __init__(self, markup: str | bytes) -> None:
        self._soup = BeautifulSoup(markup, "html.parser")

    def select(self, selector: str) -> list[Tag]:
        return [tag for tag in self._soup.select(selector) if isinstance(tag, Tag)]

    def attr(self, selector: str, name: str) -> str | None:
        tag = self._soup.select_one(selector)
        if tag is None:
            return None
        value = tag.get(name)
        if value is None:
            return None
        # multi-valued attributes (class, rel) come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def attrs(self, selector: str, name: str) -> list[str]:
        """Attribute *name* of every matching element that carries it."""
        values: list[str] = []
        for tag in self.select(selector):
            value = tag.get(name)
            if isinstance(value, str):
                values.append(value)
        return values


def parse_html(markup: str | bytes) -> HtmlDocument:
    """Parse raw HTML into an :class:`HtmlDocument`."""
    return HtmlDocument(markup)
