"""site_mapper.canonical: ключ записи sitemap и дедупликация по canonical URL."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import datetime, tzinfo
from typing import Dict, Optional, Tuple
from urllib.parse import urljoin

from site_mapper.crawler.models import FetchedPage
from site_mapper.logger import logger

__all__ = ("CANONICAL_LINK", "MODIFIED_TIME", "parse_timestamp", "canonical_url", "resolve", "SitemapEntries")

CANONICAL_LINK = 'link[rel~="canonical"]'
MODIFIED_TIME = 'meta[property="article:modified_time"]'


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; ``None`` if *value* is empty or malformed."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def canonical_url(page: FetchedPage) -> Optional[str]:
    """Non-empty, well-formed canonical href of *page* resolved against its URL, or ``None``."""
    href = page.document.attr(CANONICAL_LINK, "href")
    if href is None or not href.strip():
        return None
    try:
        return urljoin(page.url, href.strip())
    except ValueError as exc:
        logger.debug("Ignoring malformed canonical %r on %s: %s", href, page.url, exc)
        return None


def resolve(
    page: FetchedPage,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Tuple[str, datetime]:
    """
    Compute the sitemap key and lastmod of *page*.

    Key: the canonical link if present, otherwise the effective URL.
    Lastmod: ``article:modified_time`` if parseable, otherwise *now*
    (current time in *tz*, or the local wall clock when no zone is given).
    """
    key = canonical_url(page) or page.url
    lastmod = parse_timestamp(page.document.attr(MODIFIED_TIME, "content"))
    if lastmod is None:
        lastmod = now if now is not None else datetime.now(tz)
    return key, lastmod


class SitemapEntries(Mapping[str, datetime]):
    """Insertion-ordered ``key -> lastmod`` mapping where the first write wins."""

    def __init__(self) -> None:
        self._entries: Dict[str, datetime] = {}

    def add(self, key: str, lastmod: datetime) -> bool:
        """Record *key*; return False (and change nothing) if it is already known."""
        if key in self._entries:
            return False
        self._entries[key] = lastmod
        return True

    def __getitem__(self, key: str) -> datetime:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def as_dict(self) -> Dict[str, datetime]:
        return dict(self._entries)
