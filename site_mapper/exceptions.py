"""
Exception hierarchy for SiteMapper.

FetchError is per URL and never leaves the crawler; PolicyError and
WriteError reach the caller.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union

__all__ = ("SiteMapperError", "FetchError", "PolicyError", "WriteError")


class SiteMapperError(Exception):
    """Base class for all SiteMapper errors."""


class FetchError(SiteMapperError):
    """A single page could not be retrieved (network, timeout or HTTP status)."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message


class PolicyError(SiteMapperError):
    """robots.txt could not be loaded or decoded before the crawl started."""

    def __init__(self, url: str, cause: object) -> None:
        super().__init__(f"Cannot load robots.txt from {url}: {cause}")
        self.url = url
        self.cause = cause


class WriteError(SiteMapperError):
    """The sitemap document could not be persisted."""

    def __init__(self, path: Union[str, Path], cause: object) -> None:
        super().__init__(f"Cannot write sitemap to {path}: {cause}")
        self.path = Path(path)
        self.cause = cause
