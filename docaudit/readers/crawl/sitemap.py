"""Sitemap discovery for seeding the crawl frontier."""

from __future__ import annotations

import html
import logging
import re

from docaudit.core.url_validation import get_sitemap_urls
from docaudit.readers.crawl.http_client import HttpPageClient

logger = logging.getLogger(__name__)

LOC_PATTERN = re.compile(r"<loc>\s*([^<]+?)\s*</loc>", re.IGNORECASE)

# Nested sitemap indexes deeper than this are ignored
MAX_SITEMAP_DEPTH = 3


def parse_sitemap_locs(content: str) -> list[str]:
    """Extract ``<loc>`` values from sitemap XML.

    A regex scan is used instead of an XML parser so that truncated or
    otherwise malformed sitemaps still yield whatever entries they contain.
    """
    return [html.unescape(match) for match in LOC_PATTERN.findall(content)]


class SitemapReader:
    """Reads sitemap files, following nested sitemap indexes.

    Args:
        client: HttpPageClient used for every sitemap fetch (SSRF-checked)
        max_urls: Optional cap on the number of URLs collected
    """

    def __init__(self, client: HttpPageClient, max_urls: int | None = None) -> None:
        self._client = client
        self._max_urls = max_urls

    async def discover(self, root_url: str) -> list[str]:
        """Return page URLs from the first sitemap candidate that yields any.

        Candidates are ``/sitemap.xml``, ``/sitemap_index.xml`` and
        ``/sitemap/sitemap.xml``, tried in that order.
        """
        for sitemap_url in get_sitemap_urls(root_url):
            urls = await self.read(sitemap_url)
            if urls:
                logger.info("Sitemap %s listed %d URLs", sitemap_url, len(urls))
                return urls
        return []

    async def read(self, sitemap_url: str, depth: int = 0) -> list[str]:
        """Read one sitemap, recursing into entries that point at ``.xml`` files.

        Unreachable or unreadable sitemaps contribute no URLs.
        """
        if depth > MAX_SITEMAP_DEPTH:
            logger.debug("Sitemap nesting too deep at %s", sitemap_url)
            return []

        content = await self._client.fetch_text(sitemap_url)
        if not content:
            return []

        urls: list[str] = []
        for loc in parse_sitemap_locs(content):
            if self._max_urls is not None and len(urls) >= self._max_urls:
                break
            if loc.lower().endswith(".xml"):
                urls.extend(await self.read(loc, depth + 1))
            else:
                urls.append(loc)

        if self._max_urls is not None:
            return urls[: self._max_urls]
        return urls
