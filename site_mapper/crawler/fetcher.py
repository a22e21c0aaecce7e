"""
Fetcher module: HTTP GET with rate limiting, robots.txt crawl-delay and timeout.
"""
from __future__ import annotations

import asyncio
import time
from typing import Optional, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_mapper.crawler.models import FetchedPage
from site_mapper.exceptions import FetchError

__all__ = ("PageFetcher", "Fetcher")


class PageFetcher(Protocol):
    """Anything that turns a URL into a :class:`FetchedPage` or raises FetchError."""

    async def fetch(self, url: str) -> FetchedPage:
        ...


class Fetcher:
    """aiohttp-backed fetcher. No retries: a failure is final for that URL."""

    def __init__(
        self,
        session: ClientSession,
        *,
        timeout: float = 10.0,
        rate_limit: float = 5.0,
        crawl_delay: Optional[float] = None,
    ) -> None:
        if rate_limit <= 0:
            raise ValueError("rate_limit must be > 0")
        self.session = session
        self.timeout = ClientTimeout(total=timeout)
        self.interval = max(1 / rate_limit, crawl_delay or 0)
        self._rate_lock = asyncio.Lock()
        self._last_request_ts = 0.0

    async def fetch(self, url: str) -> FetchedPage:
        """
        Fetch *url* following redirects.

        Returns FetchedPage with the effective URL; raises FetchError on
        network errors, timeouts and HTTP statuses >= 400.
        """
        await self._wait_for_rate_limit()
        try:
            async with self.session.get(url, timeout=self.timeout, allow_redirects=True) as resp:
                if resp.status >= 400:
                    raise FetchError(url, f"HTTP {resp.status} {resp.reason or ''}".strip())
                ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                text = await resp.text(errors="replace") if "html" in ctype else ""
                return FetchedPage(
                    url=str(resp.url),
                    content=text,
                    status=resp.status,
                    content_type=ctype,
                    requested_url=url,
                )
        except asyncio.TimeoutError as exc:
            raise FetchError(url, "timeout") from exc
        except ClientError as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc

    async def _wait_for_rate_limit(self) -> None:
        async with self._rate_lock:
            now = time.monotonic()
            wait = self.interval - (now - self._last_request_ts)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_ts = time.monotonic()
