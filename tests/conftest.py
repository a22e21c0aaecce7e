# File: tests/conftest.py
import asyncio
from typing import Callable, Dict, List, Optional, Union

import pytest

from site_mapper.config import SitemapConfig
from site_mapper.crawler.models import FetchedPage
from site_mapper.crawler.robots import RobotsPolicy
from site_mapper.exceptions import FetchError


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


def html_page(
    url: str,
    links: tuple = (),
    *,
    canonical: Optional[str] = None,
    robots: Optional[str] = None,
    modified: Optional[str] = None,
) -> FetchedPage:
    """Build a FetchedPage with the given anchors and head tags."""
    head = []
    if canonical is not None:
        head.append(f'<link rel="canonical" href="{canonical}">')
    if robots is not None:
        head.append(f'<meta name="robots" content="{robots}">')
    if modified is not None:
        head.append(f'<meta property="article:modified_time" content="{modified}">')
    body = "".join(f'<a href="{href}">{href}</a>' for href in links)
    markup = f"<html><head>{''.join(head)}</head><body>{body}</body></html>"
    return FetchedPage(url=url, content=markup)


class FakeFetcher:
    """In-memory fetcher: url -> FetchedPage, or an error message for FetchError."""

    def __init__(self, pages: Dict[str, Union[FetchedPage, str]], delay: float = 0.0) -> None:
        self.pages = pages
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str) -> FetchedPage:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            page = self.pages.get(url)
            if page is None:
                raise FetchError(url, "HTTP 404 Not Found")
            if isinstance(page, str):
                raise FetchError(url, page)
            return page
        finally:
            self.in_flight -= 1


@pytest.fixture()
def make_config() -> Callable[..., SitemapConfig]:
    """Factory for a SitemapConfig rooted at https://example.com/."""

    def _make(**overrides) -> SitemapConfig:
        data = {"base_url": "https://example.com/", "concurrency": 1}
        data.update(overrides)
        return SitemapConfig(**data)

    return _make


@pytest.fixture()
def allow_all() -> RobotsPolicy:
    return RobotsPolicy.allow_all()


@pytest.fixture()
def mock_page() -> FetchedPage:
    """A page with one internal, one external and one mailto link."""
    return html_page(
        "https://example.com/",
        ("/link1", "https://external.com/", "mailto:a@example.com"),
    )
