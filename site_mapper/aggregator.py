"""site_mapper.aggregator: Модуль агрегатора отчёта об обходе сайта."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, TypedDict

from site_mapper.crawler.models import CrawlResult
from site_mapper.report.sitemap import SitemapDocument, build_sitemap


class EntryInfo(TypedDict):
    """Запись sitemap в отчёте."""

    loc: str
    lastmod: str
    priority: str
    changefreq: str


@dataclass(slots=True)
class CrawlReport:
    """Итоги обхода: счётчики, ошибки и записи sitemap."""

    crawl_id: str
    root_url: str
    enqueued: int = 0
    skipped: int = 0
    failed: int = 0
    persisted: int = 0
    fetched: int = 0
    cancelled: bool = False
    duration: float = 0.0
    failures: Dict[str, str] = field(default_factory=dict)
    skipped_urls: List[str] = field(default_factory=list)
    entries: List[EntryInfo] = field(default_factory=list)

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление отчёта."""
        return json.dumps(asdict(self), ensure_ascii=False, indent=2 if pretty else None)

    def summary_lines(self) -> List[str]:
        return [
            f"Enqueued:  {self.enqueued}",
            f"Skipped:   {self.skipped}",
            f"Failed:    {self.failed}",
            f"Persisted: {self.persisted}",
        ]


def _entries(document: SitemapDocument) -> List[EntryInfo]:
    return [
        {
            "loc": u.loc,
            "lastmod": u.lastmod,
            "priority": f"{u.priority:.1f}",
            "changefreq": u.changefreq,
        }
        for u in document.urls
    ]


def aggregate_results(result: CrawlResult, document: Optional[SitemapDocument] = None) -> CrawlReport:
    """Собирает CrawlResult (и готовый документ, если он уже построен) в CrawlReport."""
    stats = result.stats
    counts = stats.counts()
    if document is None:
        document = build_sitemap(result.entries)
    return CrawlReport(
        crawl_id=stats.crawl_id,
        root_url=result.root_url,
        enqueued=counts["enqueued"],
        skipped=counts["skipped"],
        failed=counts["failed"],
        persisted=counts["persisted"],
        fetched=len(result.fetched),
        cancelled=result.cancelled,
        duration=round(result.duration, 3),
        failures=stats.failed,
        skipped_urls=stats.filtered,
        entries=_entries(document),
    )
