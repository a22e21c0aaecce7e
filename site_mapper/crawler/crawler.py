from __future__ import annotations

import asyncio
import time
from typing import List, Optional, Sequence

from site_mapper.canonical import SitemapEntries, resolve
from site_mapper.config import SitemapConfig
from site_mapper.crawler.fetcher import PageFetcher
from site_mapper.crawler.frontier import Frontier
from site_mapper.crawler.link_extractor import HostFilter, extract_links
from site_mapper.crawler.models import CrawlResult, FetchedPage, FrontierEntry
from site_mapper.crawler.robots import RobotsPolicy
from site_mapper.crawler.stats import CrawlObserver, StatsCollector
from site_mapper.exceptions import FetchError
from site_mapper.indexability import indexability_reasons
from site_mapper.logger import logger

__all__ = ("AsyncCrawler",)


class AsyncCrawler:
    """
    Breadth-first crawler of one site producing sitemap entries.

    Fetches run concurrently (``config.concurrency`` workers), but frontier,
    entries and observers are only touched between awaits on one event loop,
    so the capacity and dedup checks never race.
    """

    def __init__(
        self,
        config: SitemapConfig,
        fetcher: PageFetcher,
        policy: RobotsPolicy,
        observers: Sequence[CrawlObserver] = (),
        stats: Optional[StatsCollector] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.policy = policy
        self.stats = stats or StatsCollector()
        self.observers: List[CrawlObserver] = [self.stats, *observers]
        self.host_filter = HostFilter(config.hosts, config.allow_subdomains)
        self.frontier = Frontier(config.max_depth, config.max_queue_size)
        self.entries = SitemapEntries()
        self.fetched: List[str] = []
        self._stop = asyncio.Event()

    # public ------------------------------------------------------------------

    def stop(self) -> None:
        """Ask the crawl to stop: nothing new is dequeued, in-flight fetches finish."""
        if not self._stop.is_set():
            logger.warning("Crawl aborted.")
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def crawl(self) -> CrawlResult:
        root = self.config.root_url
        logger.info("Starting site crawl: %s", root)
        start = time.monotonic()

        if self.frontier.offer(root, 0) is not None:
            self._emit("on_queued", root)

        workers = [asyncio.create_task(self._worker()) for _ in range(self.config.concurrency)]
        joined = asyncio.create_task(self.frontier.join())
        stopped = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait(
                {joined, stopped},
                timeout=self.config.crawl_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if not joined.done():
                if not self.stopping:
                    logger.warning("Crawl did not finish within %s seconds", self.config.crawl_timeout)
                self.stop()
                dropped = self.frontier.drain()
                logger.info("Dropped %d pending URLs", dropped)
                await joined
        finally:
            for task in (*workers, joined, stopped):
                task.cancel()
            await asyncio.gather(*workers, joined, stopped, return_exceptions=True)

        duration = time.monotonic() - start
        logger.info(
            "Finished: %d pages fetched, %d entries in %.2f s",
            len(self.fetched), len(self.entries), duration,
        )
        return CrawlResult(
            root_url=root,
            entries=self.entries.as_dict(),
            stats=self.stats,
            fetched=list(self.fetched),
            cancelled=self.stopping,
            duration=duration,
        )

    # workers -----------------------------------------------------------------

    async def _worker(self) -> None:
        while True:
            entry = await self.frontier.get()
            try:
                if not self.stopping:
                    await self._process(entry)
            except Exception as exc:
                # a worker must outlive any single page
                logger.exception("Unexpected error while processing %s", entry.url)
                self._emit("on_failed", entry.url, f"{type(exc).__name__}: {exc}")
            finally:
                self.frontier.task_done()

    async def _process(self, entry: FrontierEntry) -> None:
        try:
            page = await self.fetcher.fetch(entry.url)
        except FetchError as exc:
            logger.warning("Failed %s: %s", entry.url, exc.message)
            self._emit("on_failed", entry.url, exc.message)
            return

        self.fetched.append(entry.url)
        if page.url != entry.url:
            logger.debug("Redirected %s -> %s", entry.url, page.url)
            self.frontier.mark_seen(page.url)
        if not page.is_html:
            logger.debug("Skipping %s (content type %s)", page.url, page.content_type)
            self._emit("on_filtered", page.url)
            return

        if not self.stopping:
            self._discover(page, entry.depth)
        self._record(page)

    def _discover(self, page: FetchedPage, depth: int) -> None:
        for link in extract_links(page):
            if self.frontier.seen(link):
                continue
            if not self.host_filter(link):
                reason = "host"
            elif self.frontier.offer(link, depth + 1) is not None:
                self._emit("on_queued", link)
                continue
            elif depth + 1 > self.frontier.max_depth:
                reason = "depth"
            else:
                reason = "queue size"
            # rejections are permanent in breadth-first order
            self.frontier.mark_seen(link)
            logger.debug("Filtered %s (%s)", link, reason)
            self._emit("on_filtered", link)

    def _record(self, page: FetchedPage) -> None:
        reasons = indexability_reasons(page, self.policy)
        if reasons:
            for reason in reasons:
                logger.info(" - Skipping %s (%s)", page.url, reason)
            return

        key, lastmod = resolve(page, tz=self.config.zone)
        if key != page.url:
            logger.info(" - Canonicalizing %s to %s", page.url, key)
        if not self.host_filter(key):
            logger.info(" - Skipping %s (canonical outside allowed hosts)", key)
            self._emit("on_filtered", page.url)
            return
        if self.entries.add(key, lastmod):
            logger.info(" - Adding %s", key)
            self._emit("on_persisted", key)

    def _emit(self, event: str, *args: str) -> None:
        for observer in self.observers:
            try:
                getattr(observer, event)(*args)
            except Exception:
                logger.exception("Observer %r failed on %s%r", observer, event, args)
