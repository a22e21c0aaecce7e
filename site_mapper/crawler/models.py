"""
Data models for the SiteMapper crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Dict, List, Optional

from site_mapper.crawler.stats import StatsCollector
from site_mapper.parser.html_parser import MarkupQuery, parse_html


@dataclass(slots=True, frozen=True)
class FrontierEntry:
    """A URL waiting in the frontier together with its discovery depth."""

    url: str
    depth: int


@dataclass(frozen=True)
class FetchedPage:
    """Response of one fetch: effective URL after redirects and raw markup."""

    url: str
    content: str
    status: int = 200
    content_type: str = "text/html"
    requested_url: Optional[str] = None

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type.lower()

    @cached_property
    def document(self) -> MarkupQuery:
        return parse_html(self.content)


@dataclass
class CrawlResult:
    """Outcome of a crawl run: accepted sitemap entries plus statistics."""

    root_url: str
    entries: Dict[str, datetime]
    stats: StatsCollector
    fetched: List[str] = field(default_factory=list)
    cancelled: bool = False
    duration: float = 0.0


__all__ = ("FrontierEntry", "FetchedPage", "CrawlResult")
