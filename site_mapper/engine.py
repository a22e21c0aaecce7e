# File: site_mapper/engine.py
"""site_mapper.engine: Orchestration layer: robots.txt, обход сайта, сборка и запись sitemap."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Optional, Sequence, Union

from aiohttp import ClientSession

from site_mapper.config import SitemapConfig
from site_mapper.crawler.crawler import AsyncCrawler
from site_mapper.crawler.fetcher import Fetcher
from site_mapper.crawler.models import CrawlResult
from site_mapper.crawler.robots import load_robots_policy
from site_mapper.crawler.stats import CrawlObserver
from site_mapper.report.sitemap import SitemapDocument, build_sitemap, write_sitemap

__all__ = ["Engine", "generate_sitemap"]


class Engine:
    """Фасад для CLI и тестов: загрузка robots.txt, обход, построение и запись sitemap."""

    def __init__(self, config: SitemapConfig, observers: Sequence[CrawlObserver] = ()) -> None:
        """Инициализирует Engine с заданной конфигурацией и дополнительными наблюдателями."""
        self.config = config
        self.observers = list(observers)
        self.crawler: Optional[AsyncCrawler] = None

    async def crawl(self) -> CrawlResult:
        """Загружает robots.txt (PolicyError до первого запроса страницы) и обходит сайт."""
        cfg = self.config
        async with ClientSession(headers={"User-Agent": cfg.user_agent}) as session:
            policy = await load_robots_policy(session, cfg.robots_txt_url, cfg.user_agent, cfg.timeout)
            fetcher = Fetcher(
                session,
                timeout=cfg.timeout,
                rate_limit=cfg.rate_limit,
                crawl_delay=policy.crawl_delay,
            )
            self.crawler = AsyncCrawler(cfg, fetcher, policy, self.observers)
            installed = self._install_stop_handler(self.crawler)
            try:
                return await self.crawler.crawl()
            finally:
                if installed:
                    asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    def build(self, result: CrawlResult) -> SitemapDocument:
        return build_sitemap(result.entries, tz=self.config.zone)

    def write(self, document: SitemapDocument, path: Union[str, Path, None] = None) -> Path:
        """Записывает sitemap; ошибки записи дают WriteError, отдельно от ошибок обхода."""
        return write_sitemap(document, path or self.config.output_path)

    @staticmethod
    def _install_stop_handler(crawler: AsyncCrawler) -> bool:
        # Ctrl+C stops dequeuing but keeps what has been collected
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, crawler.stop)
        except (NotImplementedError, RuntimeError, ValueError):
            return False
        return True


async def generate_sitemap(config: SitemapConfig) -> tuple[CrawlResult, SitemapDocument]:
    """Обходит сайт и строит документ без записи на диск."""
    engine = Engine(config)
    result = await engine.crawl()
    return result, engine.build(result)
