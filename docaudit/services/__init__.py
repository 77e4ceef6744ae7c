"""Service layer for crawling, AI discovery and audit orchestration."""

from docaudit.services.audit import AuditService
from docaudit.services.crawler import CrawlerService
from docaudit.services.discovery import (
    DiscoveryService,
    parse_llms_txt,
    parse_robots_txt,
    parse_sitemap_info,
)

__all__ = [
    "AuditService",
    "CrawlerService",
    "DiscoveryService",
    "parse_llms_txt",
    "parse_robots_txt",
    "parse_sitemap_info",
]
