"""
Crawl statistics: observer protocol and the default collector.

Observers are passed explicitly to the crawler. They only record what
happened; nothing they do feeds back into traversal.
"""
from __future__ import annotations

import uuid
from typing import Dict, List, Optional, Protocol, runtime_checkable

__all__ = ("CrawlObserver", "StatsCollector")


@runtime_checkable
class CrawlObserver(Protocol):
    """Receives crawl events. Filtered covers both pre- and post-fetch drops."""

    def on_queued(self, url: str) -> None:
        ...

    def on_filtered(self, url: str) -> None:
        ...

    def on_persisted(self, url: str) -> None:
        ...

    def on_failed(self, url: str, message: str) -> None:
        ...


class StatsCollector:
    """Accumulates queued, filtered, persisted and failed URLs of one crawl."""

    def __init__(self, crawl_id: Optional[str] = None) -> None:
        self.crawl_id: str = crawl_id or uuid.uuid4().hex
        self._queued: List[str] = []
        self._filtered: List[str] = []
        self._persisted: List[str] = []
        self._failed: Dict[str, str] = {}

    # event sink --------------------------------------------------------------

    def on_queued(self, url: str) -> None:
        self._queued.append(url)

    def on_filtered(self, url: str) -> None:
        self._filtered.append(url)

    def on_persisted(self, url: str) -> None:
        self._persisted.append(url)

    def on_failed(self, url: str, message: str) -> None:
        self._failed[str(url)] = message

    # accessors ---------------------------------------------------------------

    @property
    def queued(self) -> List[str]:
        return list(self._queued)

    @property
    def filtered(self) -> List[str]:
        return list(self._filtered)

    @property
    def persisted(self) -> List[str]:
        return list(self._persisted)

    @property
    def failed(self) -> Dict[str, str]:
        return dict(self._failed)

    def counts(self) -> Dict[str, int]:
        return {
            "enqueued": len(self._queued),
            "skipped": len(self._filtered),
            "failed": len(self._failed),
            "persisted": len(self._persisted),
        }

    def summary(self) -> str:
        """Human-readable report of the crawl counters."""
        c = self.counts()
        return (
            f"CRAWL ID: {self.crawl_id}\n"
            f"  ENQUEUED:  {c['enqueued']}\n"
            f"  SKIPPED:   {c['skipped']}\n"
            f"  FAILED:    {c['failed']}\n"
            f"  PERSISTED: {c['persisted']}"
        )

    def __str__(self) -> str:
        return self.summary()
