"""
Breadth-first frontier with depth and capacity limits.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Set

from site_mapper.crawler.models import FrontierEntry

__all__ = ("Frontier",)


class Frontier:
    """
    FIFO work queue of :class:`FrontierEntry`.

    ``max_queue_size`` caps the number of entries admitted over the whole run,
    so the pending queue can never exceed it either. Offers that break a limit
    are refused; the caller decides how to report them. A URL is admitted at
    most once.
    """

    def __init__(self, max_depth: int, max_queue_size: int) -> None:
        self.max_depth = max_depth
        self.max_queue_size = max_queue_size
        self._queue: asyncio.Queue[FrontierEntry] = asyncio.Queue()
        self._seen: Set[str] = set()
        self.admitted = 0
        self.peak = 0

    def __len__(self) -> int:
        return self._queue.qsize()

    def seen(self, url: str) -> bool:
        return url in self._seen

    def mark_seen(self, url: str) -> None:
        self._seen.add(url)

    @property
    def is_full(self) -> bool:
        return self.admitted >= self.max_queue_size

    def offer(self, url: str, depth: int) -> Optional[FrontierEntry]:
        """Admit *url* at *depth* if limits allow; return the entry or None."""
        if depth > self.max_depth or self.is_full:
            return None
        entry = FrontierEntry(url, depth)
        self._seen.add(url)
        self.admitted += 1
        self._queue.put_nowait(entry)
        self.peak = max(self.peak, self._queue.qsize())
        return entry

    async def get(self) -> FrontierEntry:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    def drain(self) -> int:
        """Discard pending entries (used on cancellation); return how many."""
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            self._queue.task_done()
            dropped += 1
