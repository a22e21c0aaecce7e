"""site_mapper.indexability: может ли страница попасть в sitemap."""

from __future__ import annotations

from typing import List

from site_mapper.crawler.models import FetchedPage
from site_mapper.crawler.robots import RobotsPolicy

__all__ = ("META_ROBOTS", "NOINDEX", "indexability_reasons", "is_indexable", "has_noindex")

META_ROBOTS = 'meta[name="robots" i]'
NOINDEX = "noindex"


def has_noindex(page: FetchedPage) -> bool:
    """True if the page's first ``<meta name="robots">`` contains ``noindex``."""
    content = page.document.attr(META_ROBOTS, "content")
    return content is not None and NOINDEX in content.lower()


def indexability_reasons(page: FetchedPage, policy: RobotsPolicy) -> List[str]:
    """Return every reason that vetoes indexing *page*; empty list means indexable."""
    reasons: List[str] = []
    if has_noindex(page):
        reasons.append("on-page no-index")
    if not policy.may_index(page.url):
        reasons.append("robots.txt no-index")
    return reasons


def is_indexable(page: FetchedPage, policy: RobotsPolicy) -> bool:
    return not indexability_reasons(page, policy)
