"""Unit tests for sitemap discovery."""

import httpx
import pytest
import respx

from docaudit.readers.crawl import HttpPageClient, SitemapReader
from docaudit.readers.crawl.sitemap import MAX_SITEMAP_DEPTH, parse_sitemap_locs
from tests.fixtures.html_pages import build_sitemap

BASE = "https://docs.example.com"


class TestParseSitemapLocs:
    def test_extracts_and_unescapes_locs(self) -> None:
        content = (
            "<urlset><url><loc> https://docs.example.com/a?x=1&amp;y=2 </loc></url>"
            "<url><LOC>https://docs.example.com/b</LOC></url></urlset>"
        )
        assert parse_sitemap_locs(content) == [
            "https://docs.example.com/a?x=1&y=2",
            "https://docs.example.com/b",
        ]

    def test_truncated_document_yields_complete_entries(self) -> None:
        content = "<urlset><url><loc>https://docs.example.com/a</loc></url><url><loc>https://docs"
        assert parse_sitemap_locs(content) == ["https://docs.example.com/a"]


@respx.mock
@pytest.mark.asyncio
async def test_discover_falls_through_candidates() -> None:
    """Verify the first candidate that yields URLs wins."""
    respx.get(f"{BASE}/sitemap.xml").mock(return_value=httpx.Response(404))
    respx.get(f"{BASE}/sitemap_index.xml").mock(
        return_value=httpx.Response(200, text=build_sitemap([f"{BASE}/a", f"{BASE}/b"]))
    )

    async with HttpPageClient() as client:
        urls = await SitemapReader(client).discover(f"{BASE}/")

    assert urls == [f"{BASE}/a", f"{BASE}/b"]


@respx.mock
@pytest.mark.asyncio
async def test_read_caps_collected_urls() -> None:
    respx.get(f"{BASE}/sitemap.xml").mock(
        return_value=httpx.Response(
            200, text=build_sitemap([f"{BASE}/page-{i}" for i in range(20)])
        )
    )

    async with HttpPageClient() as client:
        urls = await SitemapReader(client, max_urls=5).read(f"{BASE}/sitemap.xml")

    assert urls == [f"{BASE}/page-{i}" for i in range(5)]


@respx.mock
@pytest.mark.asyncio
async def test_nested_indexes_stop_at_max_depth() -> None:
    """Verify a self-referencing sitemap index terminates."""
    route = respx.get(f"{BASE}/loop.xml").mock(
        return_value=httpx.Response(200, text=build_sitemap([f"{BASE}/loop.xml"]))
    )

    async with HttpPageClient() as client:
        urls = await SitemapReader(client).read(f"{BASE}/loop.xml")

    assert urls == []
    assert route.call_count == MAX_SITEMAP_DEPTH + 1


@respx.mock
@pytest.mark.asyncio
async def test_unreachable_sitemaps_yield_nothing() -> None:
    respx.route(host="docs.example.com").mock(side_effect=httpx.ConnectError)

    async with HttpPageClient() as client:
        assert await SitemapReader(client).discover(f"{BASE}/docs") == []
