"""
Link discovery and host scoping for SiteMapper.
"""
from __future__ import annotations

from typing import Iterable, List
from urllib.parse import urldefrag, urljoin, urlparse

from site_mapper.crawler.models import FetchedPage
from site_mapper.logger import logger

__all__ = ("LINK_SELECTORS", "extract_links", "HostFilter")

#: anchors plus the canonical hint, both followed by the crawler
LINK_SELECTORS = ("a[href]", 'link[rel~="canonical"][href]')

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")


def extract_links(page: FetchedPage) -> List[str]:
    """
    Extract absolute HTTP(S) links from anchors and canonical links.

    Relative hrefs are resolved against the effective page URL, fragments are
    dropped, duplicates removed with order preserved. Hosts are not checked
    here, see :class:`HostFilter`.
    """
    seen: set[str] = set()
    links: List[str] = []
    for selector in LINK_SELECTORS:
        for href in page.document.attrs(selector, "href"):
            raw = href.strip()
            if not raw or raw.lower().startswith(_SKIP_SCHEMES):
                continue
            try:
                absolute, _ = urldefrag(urljoin(page.url, raw))
                scheme = urlparse(absolute).scheme
            except ValueError as exc:
                logger.debug("Ignoring malformed link %r on %s: %s", raw, page.url, exc)
                continue
            if scheme not in ("http", "https"):
                continue
            if absolute not in seen:
                seen.add(absolute)
                links.append(absolute)
    return links


class HostFilter:
    """Accepts URLs whose host is one of the allowed hosts (optionally subdomains)."""

    def __init__(self, hosts: Iterable[str], allow_subdomains: bool = False) -> None:
        self.hosts = frozenset(h.lower() for h in hosts)
        self.allow_subdomains = allow_subdomains

    def __call__(self, url: str) -> bool:
        return self.allows(url)

    def allows(self, url: str) -> bool:
        parsed = urlparse(url)
        netloc = parsed.netloc.lower()
        if netloc in self.hosts:
            return True
        hostname = (parsed.hostname or "").lower()
        if hostname in self.hosts:
            return True
        if self.allow_subdomains:
            return any(hostname.endswith("." + h.split(":", 1)[0]) for h in self.hosts)
        return False
