"""HTTP fetching components for site crawling."""

from docaudit.readers.crawl.http_client import HttpPageClient
from docaudit.readers.crawl.models import FetchOutcome
from docaudit.readers.crawl.sitemap import SitemapReader

__all__ = [
    "FetchOutcome",
    "HttpPageClient",
    "SitemapReader",
]
