# File: tests/test_engine.py
# End-to-end scenarios against a local aiohttp server
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Dict

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web
from lxml import etree
from site_mapper.config import SitemapConfig
from site_mapper.crawler.fetcher import Fetcher
from site_mapper.engine import Engine, generate_sitemap
from site_mapper.exceptions import FetchError, PolicyError, WriteError
from site_mapper.report.sitemap import SITEMAP_NS

NS = {"sm": SITEMAP_NS}


# --------------------------------------------------------------------------- #
#                               Helper utilities                              #
# --------------------------------------------------------------------------- #


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


def make_app(routes: Dict[str, str], hits: Dict[str, int] | None = None) -> web.Application:
    """Serve each path -> HTML body; a body starting with 'STATUS:' returns that status."""
    app = web.Application()

    def handler_for(path: str, body: str):
        async def handle(_):
            if hits is not None:
                hits[path] = hits.get(path, 0) + 1
            if body.startswith("STATUS:"):
                return web.Response(status=int(body.split(":", 1)[1]))
            content_type = "text/plain" if path.endswith(".txt") else "text/html"
            return web.Response(text=body, content_type=content_type)

        return handle

    for path, body in routes.items():
        app.router.add_get(path, handler_for(path, body))
    return app


def config_for(base: str, tmp_path, **kwargs) -> SitemapConfig:
    data = dict(base_url=f"{base}/", rate_limit=100.0, timeout=2.0, output_path=tmp_path / "public" / "sitemap.xml")
    data.update(kwargs)
    return SitemapConfig(**data)


def locs(xml: bytes) -> list[str]:
    return [el.text for el in etree.fromstring(xml).findall("sm:url/sm:loc", NS)]


# --------------------------------------------------------------------------- #
#                                 Scenarios                                   #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_scenario_a_single_canonical_page(unused_tcp_port: int, tmp_path):
    base = f"http://localhost:{unused_tcp_port}"
    app = make_app({
        "/": (
            f'<html><head><link rel="canonical" href="{base}/">'
            '<meta property="article:modified_time" content="2024-01-01T00:00:00Z">'
            "</head><body>Home</body></html>"
        ),
    })
    async for base in _serve_app(app, unused_tcp_port):
        result, document = await generate_sitemap(config_for(base, tmp_path))

    root = etree.fromstring(document.to_xml())
    urls = root.findall("sm:url", NS)
    assert len(urls) == 1
    assert urls[0].findtext("sm:loc", namespaces=NS) == f"{base}/"
    assert urls[0].findtext("sm:lastmod", namespaces=NS) == "2024-01-01T00:00:00+00:00"
    assert urls[0].findtext("sm:priority", namespaces=NS) == "1.0"
    assert urls[0].findtext("sm:changefreq", namespaces=NS) == "monthly"
    assert result.stats.persisted == [f"{base}/"]


@pytest.mark.asyncio()
async def test_scenario_b_noindex_page_excluded(unused_tcp_port: int, tmp_path):
    app = make_app({
        "/": '<a href="/hidden">hidden</a>',
        "/hidden": '<html><head><meta name="robots" content="noindex"></head></html>',
    })
    async for base in _serve_app(app, unused_tcp_port):
        result, document = await generate_sitemap(config_for(base, tmp_path))

    assert f"{base}/hidden" in result.fetched
    assert f"{base}/hidden" not in result.stats.persisted
    assert locs(document.to_xml()) == [f"{base}/"]


@pytest.mark.asyncio()
async def test_scenario_c_fetch_error_recorded(unused_tcp_port: int, tmp_path):
    app = make_app({
        "/": '<a href="/boom">boom</a><a href="/ok">ok</a>',
        "/boom": "STATUS:500",
        "/ok": "<p>fine</p>",
    })
    async for base in _serve_app(app, unused_tcp_port):
        result, document = await generate_sitemap(config_for(base, tmp_path))

    assert list(result.stats.failed) == [f"{base}/boom"]
    assert "500" in result.stats.failed[f"{base}/boom"]
    assert f"{base}/ok" in result.fetched
    assert locs(document.to_xml()) == [f"{base}/", f"{base}/ok"]


@pytest.mark.asyncio()
async def test_scenario_d_shared_canonical(unused_tcp_port: int, tmp_path):
    base = f"http://localhost:{unused_tcp_port}"
    canonical = f'<html><head><link rel="canonical" href="{base}/c"></head></html>'
    app = make_app({
        "/": '<a href="/a">a</a><a href="/b">b</a>',
        "/a": canonical,
        "/b": canonical,
        "/c": canonical,
    })
    async for base in _serve_app(app, unused_tcp_port):
        _, document = await generate_sitemap(config_for(base, tmp_path))

    assert locs(document.to_xml()).count(f"{base}/c") == 1
    assert locs(document.to_xml()) == [f"{base}/", f"{base}/c"]


@pytest.mark.asyncio()
async def test_robots_txt_vetoes_indexing(unused_tcp_port: int, tmp_path):
    app = make_app({
        "/robots.txt": "User-agent: *\nDisallow: /drafts/",
        "/": '<a href="/drafts/one">draft</a><a href="/post">post</a>',
        "/drafts/one": "<p>draft</p>",
        "/post": "<p>post</p>",
    })
    async for base in _serve_app(app, unused_tcp_port):
        result, document = await generate_sitemap(config_for(base, tmp_path))

    assert f"{base}/drafts/one" in result.fetched
    assert locs(document.to_xml()) == [f"{base}/", f"{base}/post"]


@pytest.mark.asyncio()
async def test_policy_error_before_any_fetch(unused_tcp_port: int, tmp_path):
    hits: Dict[str, int] = {}
    app = make_app({"/robots.txt": "STATUS:503", "/": "<p>home</p>"}, hits)
    async for base in _serve_app(app, unused_tcp_port):
        with pytest.raises(PolicyError):
            await Engine(config_for(base, tmp_path)).crawl()

    assert hits.get("/robots.txt") == 1
    assert "/" not in hits


@pytest.mark.asyncio()
async def test_write_and_write_error(unused_tcp_port: int, tmp_path):
    app = make_app({"/": "<p>home</p>"})
    async for base in _serve_app(app, unused_tcp_port):
        engine = Engine(config_for(base, tmp_path))
        result = await engine.crawl()

    document = engine.build(result)
    written = engine.write(document)
    assert written == tmp_path / "public" / "sitemap.xml"
    assert locs(written.read_bytes()) == [f"{base}/"]

    (tmp_path / "blocked").write_text("file, not a directory")
    with pytest.raises(WriteError):
        engine.write(document, tmp_path / "blocked" / "sitemap.xml")
    assert list(result.entries) == [f"{base}/"]


# --------------------------------------------------------------------------- #
#                                   Fetcher                                   #
# --------------------------------------------------------------------------- #


@pytest_asyncio.fixture
async def fetch_server(unused_tcp_port: int) -> AsyncIterator[str]:
    app = make_app({"/target": "<p>target</p>", "/data.txt": "plain", "/gone": "STATUS:404"})

    async def redirect(_):
        raise web.HTTPFound("/target")

    async def slow(_):
        await asyncio.sleep(2)
        return web.Response(text="late", content_type="text/html")

    app.router.add_get("/redirect", redirect)
    app.router.add_get("/slow", slow)
    async for url in _serve_app(app, unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_fetcher_follows_redirects(fetch_server: str):
    async with ClientSession() as session:
        page = await Fetcher(session, rate_limit=100).fetch(f"{fetch_server}/redirect")
    assert page.url == f"{fetch_server}/target"
    assert page.requested_url == f"{fetch_server}/redirect"
    assert page.is_html


@pytest.mark.asyncio()
async def test_fetcher_non_html(fetch_server: str):
    async with ClientSession() as session:
        page = await Fetcher(session, rate_limit=100).fetch(f"{fetch_server}/data.txt")
    assert not page.is_html
    assert page.content == ""


@pytest.mark.asyncio()
async def test_fetcher_errors(fetch_server: str):
    async with ClientSession() as session:
        fetcher = Fetcher(session, rate_limit=100, timeout=0.5)
        with pytest.raises(FetchError, match="404"):
            await fetcher.fetch(f"{fetch_server}/gone")
        with pytest.raises(FetchError, match="timeout"):
            await fetcher.fetch(f"{fetch_server}/slow")


def test_fetcher_rejects_bad_rate_limit():
    with pytest.raises(ValueError):
        Fetcher(session=None, rate_limit=0)  # type: ignore[arg-type]
