"""site_mapper.report.sitemap: построение и запись sitemap.xml (протокол sitemaps.org)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import List, Mapping, Optional, Union

from lxml import etree

from site_mapper.exceptions import WriteError
from site_mapper.logger import logger

__all__ = (
    "SITEMAP_NS",
    "CHANGE_FREQUENCY",
    "SitemapUrl",
    "SitemapDocument",
    "priority_for",
    "format_lastmod",
    "build_sitemap",
    "write_sitemap",
)

SITEMAP_NS = "https://www.sitemaps.org/schemas/sitemap/0.9"
XSI_NS = "https://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{SITEMAP_NS} {SITEMAP_NS}/sitemap.xsd"
CHANGE_FREQUENCY = "monthly"

_ONE_DECIMAL = Decimal("0.1")


def _slash_count(url: str) -> int:
    """Count "/" after the ``scheme://`` separator, ignoring one trailing slash."""
    _, sep, rest = url.partition("://")
    if not sep:
        rest = url
    if rest.endswith("/"):
        rest = rest[:-1]
    return rest.count("/")


def priority_for(url: str) -> Decimal:
    """``1 - 0.05 * slashes`` rounded half-up to one decimal, clamped to [0.0, 1.0]."""
    raw = Decimal(1) - Decimal("0.05") * _slash_count(url)
    value = raw.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return min(max(value, Decimal("0.0")), Decimal("1.0"))


def format_lastmod(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """ISO-8601 with explicit offset; naive values get *tz* or the local zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz) if tz is not None else value.astimezone()
    return value.isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class SitemapUrl:
    loc: str
    lastmod: str
    priority: Decimal
    changefreq: str = CHANGE_FREQUENCY


@dataclass
class SitemapDocument:
    """Ordered ``<url>`` entries; rendering is pure, writing is :func:`write_sitemap`."""

    urls: List[SitemapUrl]

    def __len__(self) -> int:
        return len(self.urls)

    def to_element(self) -> etree._Element:
        urlset = etree.Element(
            f"{{{SITEMAP_NS}}}urlset",
            nsmap={None: SITEMAP_NS, "xsi": XSI_NS},
        )
        urlset.set(f"{{{XSI_NS}}}schemaLocation", SCHEMA_LOCATION)
        for item in self.urls:
            node = etree.SubElement(urlset, f"{{{SITEMAP_NS}}}url")
            etree.SubElement(node, f"{{{SITEMAP_NS}}}loc").text = item.loc
            etree.SubElement(node, f"{{{SITEMAP_NS}}}lastmod").text = item.lastmod
            etree.SubElement(node, f"{{{SITEMAP_NS}}}priority").text = f"{item.priority:.1f}"
            etree.SubElement(node, f"{{{SITEMAP_NS}}}changefreq").text = item.changefreq
        return urlset

    def to_xml(self) -> bytes:
        """Pretty-printed UTF-8 XML with declaration."""
        return etree.tostring(
            self.to_element(),
            pretty_print=True,
            xml_declaration=True,
            encoding="UTF-8",
        )


def build_sitemap(entries: Mapping[str, datetime], tz: Optional[tzinfo] = None) -> SitemapDocument:
    """Build the document from ``url -> lastmod`` in the mapping's order."""
    urls = [
        SitemapUrl(loc=url, lastmod=format_lastmod(lastmod, tz), priority=priority_for(url))
        for url, lastmod in entries.items()
    ]
    return SitemapDocument(urls)


def write_sitemap(document: SitemapDocument, path: Union[str, Path]) -> Path:
    """Write *document* to *path*, creating parent directories; WriteError on failure."""
    output = Path(path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(document.to_xml())
    except OSError as exc:
        raise WriteError(output, exc) from exc
    logger.info("Sitemap with %d URLs written to %s", len(document), output)
    return output
