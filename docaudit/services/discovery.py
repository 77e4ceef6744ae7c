"""AI discovery files service.

Fetches the site-level files AI agents look for before reading any page
(llms.txt, robots.txt, the sitemap) and probes for a dedicated AI landing
page. The result is a fixed-shape ``AIDiscoveryFiles`` record handed to the
scorer, which never fetches anything itself.

The parsers are pure functions so they can be tested without HTTP.
"""

from __future__ import annotations

import asyncio
import logging
import re
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from docaudit.core.config import AuditConfig
from docaudit.core.models import (
    AIDiscoveryFiles,
    AILandingPageInfo,
    LlmsTxtInfo,
    RobotsTxtInfo,
    SitemapInfo,
)
from docaudit.core.url_validation import get_robots_url, get_sitemap_urls
from docaudit.readers.crawl import HttpPageClient
from docaudit.readers.crawl.sitemap import parse_sitemap_locs

logger = logging.getLogger(__name__)

AI_CRAWLER_USER_AGENTS = (
    "GPTBot",
    "ChatGPT-User",
    "Claude-Web",
    "ClaudeBot",
    "anthropic-ai",
    "Google-Extended",
    "CCBot",
    "Amazonbot",
    "Applebot-Extended",
    "PerplexityBot",
    "Bytespider",
)

AI_LANDING_PATHS = ("/ai", "/llm", "/llms", "/ai-agents", "/for-ai", "/docs/ai")

# Visible text below this length is treated as a stub, not a landing page
MIN_LANDING_TEXT = 100

_HEADING_LINE = re.compile(r"^#\s+.+", re.MULTILINE)
_DOC_KEYWORDS = re.compile(
    r"documentation|docs|getting.?started|api.?reference|tutorial", re.IGNORECASE
)
_LINK_LINE = re.compile(r"https?://|^\s*-\s*/", re.MULTILINE)
_USE_CASE_KEYWORDS = re.compile(
    r"use.?case|solution|example|when.?to.?use", re.IGNORECASE
)
_USER_AGENT_LINE = re.compile(r"^User-agent:\s*(.+)", re.IGNORECASE)
_ALLOW_LINE = re.compile(r"^Allow:\s*(.+)", re.IGNORECASE)
_DISALLOW_LINE = re.compile(r"^Disallow:\s*(.+)", re.IGNORECASE)
_SITEMAP_DIRECTIVE = re.compile(r"Sitemap:", re.IGNORECASE)
_LASTMOD = re.compile(r"<lastmod>", re.IGNORECASE)


def parse_llms_txt(content: str | None) -> LlmsTxtInfo:
    """Derive llms.txt quality flags from its content (None when absent)."""
    if not content:
        return LlmsTxtInfo()

    return LlmsTxtInfo(
        exists=True,
        content=content,
        has_product_description=">" in content
        or bool(_HEADING_LINE.search(content)),
        has_documentation_links=bool(_DOC_KEYWORDS.search(content))
        and bool(_LINK_LINE.search(content)),
        has_use_cases=bool(_USE_CASE_KEYWORDS.search(content)),
    )


def _is_ai_agent(agent: str) -> bool:
    if agent == "*":
        return True
    lowered = agent.lower()
    return any(ua.lower() in lowered for ua in AI_CRAWLER_USER_AGENTS)


def parse_robots_txt(content: str | None) -> RobotsTxtInfo:
    """Derive AI crawler access flags from robots.txt content.

    Consecutive ``User-agent`` lines form one group; the rules that follow
    apply to every agent in it. Only groups naming ``*`` or a known AI
    crawler contribute rules.
    """
    if not content:
        return RobotsTxtInfo()

    rules: list[str] = []
    allows = False
    blocks = False
    group: list[str] = []
    in_agent_block = False

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        agent_match = _USER_AGENT_LINE.match(line)
        if agent_match:
            if not in_agent_block:
                group = []
            group.append(agent_match.group(1).strip())
            in_agent_block = True
            continue
        in_agent_block = False

        ai_agents = [agent for agent in group if _is_ai_agent(agent)]
        if not ai_agents:
            continue
        label = ", ".join(ai_agents)

        allow_match = _ALLOW_LINE.match(line)
        if allow_match:
            value = allow_match.group(1).strip()
            rules.append(f"{label}: Allow {value}")
            if value == "/" or "/docs" in value:
                allows = True
            continue

        disallow_match = _DISALLOW_LINE.match(line)
        if disallow_match:
            value = disallow_match.group(1).strip()
            rules.append(f"{label}: Disallow {value}")
            if value == "/":
                blocks = True

    return RobotsTxtInfo(
        exists=True,
        content=content,
        allows_ai_crawlers=allows,
        blocks_ai_crawlers=blocks,
        mentions_sitemap=bool(_SITEMAP_DIRECTIVE.search(content)),
        ai_crawler_rules=rules,
    )


def parse_sitemap_info(content: str | None, crawled_page_count: int) -> SitemapInfo:
    """Summarize a sitemap and its coverage of the crawled pages."""
    if not content:
        return SitemapInfo()

    url_count = len(parse_sitemap_locs(content))
    coverage = min(1.0, url_count / crawled_page_count) if crawled_page_count else 0.0
    return SitemapInfo(
        exists=True,
        url_count=url_count,
        has_lastmod=bool(_LASTMOD.search(content)),
        coverage_ratio=coverage,
    )


class DiscoveryService:
    """Service for fetching the AI discovery files of a site.

    Every fetch goes through HttpPageClient, so it is SSRF-checked on each
    redirect hop and bounded by the configured timeout. A file that cannot be
    fetched is reported as absent.

    Example:
        >>> service = DiscoveryService()
        >>> files = await service.fetch(config, crawled_page_count=42)
        >>> files.robots_txt.blocks_ai_crawlers
        False
    """

    def __init__(self, client: HttpPageClient | None = None) -> None:
        self._client = client

    async def fetch(
        self, config: AuditConfig, crawled_page_count: int
    ) -> AIDiscoveryFiles:
        """Fetch and parse every AI discovery file for ``config.url``.

        Args:
            config: Audit configuration supplying root URL, timeout, user agent
            crawled_page_count: Number of crawled pages, for sitemap coverage

        Returns:
            AIDiscoveryFiles record
        """
        client = self._client or HttpPageClient(
            timeout=config.timeout_seconds, user_agent=config.user_agent
        )
        try:
            return await self._fetch(client, config.url, crawled_page_count)
        finally:
            if self._client is None:
                await client.close()

    async def _fetch(
        self, client: HttpPageClient, root_url: str, crawled_page_count: int
    ) -> AIDiscoveryFiles:
        parts = urlsplit(root_url)
        base = f"{parts.scheme}://{parts.netloc}"
        robots_url = get_robots_url(root_url) or f"{base}/robots.txt"

        llms, ai_txt, robots, sitemap, landing = await asyncio.gather(
            client.fetch_text(f"{base}/llms.txt"),
            client.fetch_text(f"{base}/ai.txt"),
            client.fetch_text(robots_url),
            self._fetch_sitemap(client, root_url),
            self._probe_landing_page(client, base),
        )

        files = AIDiscoveryFiles(
            llms_txt=parse_llms_txt(llms or ai_txt),
            robots_txt=parse_robots_txt(robots),
            sitemap=parse_sitemap_info(sitemap, crawled_page_count),
            ai_landing_page=landing,
        )
        logger.debug(
            "AI discovery for %s: llms.txt=%s robots.txt=%s sitemap=%s landing=%s",
            base,
            files.llms_txt.exists,
            files.robots_txt.exists,
            files.sitemap.exists,
            files.ai_landing_page.exists,
        )
        return files

    async def _fetch_sitemap(self, client: HttpPageClient, root_url: str) -> str | None:
        for sitemap_url in get_sitemap_urls(root_url):
            content = await client.fetch_text(sitemap_url)
            if content:
                return content
        return None

    async def _probe_landing_page(
        self, client: HttpPageClient, base: str
    ) -> AILandingPageInfo:
        """Return the first AI landing page candidate serving real content.

        A candidate that redirects back to the site root does not count.
        """
        for path in AI_LANDING_PATHS:
            candidate = f"{base}{path}"
            outcome = await client.fetch_page(candidate)
            if not outcome.success or not 200 <= outcome.status_code < 300:
                continue
            final_path = urlsplit(outcome.final_url or candidate).path
            if final_path in ("", "/"):
                continue
            soup = BeautifulSoup(outcome.html, "lxml")
            text = " ".join(soup.get_text(" ").split())
            if len(text) >= MIN_LANDING_TEXT:
                return AILandingPageInfo(exists=True, url=candidate)
        return AILandingPageInfo()

    async def close(self) -> None:
        """Close the injected HTTP client, if any."""
        if self._client is not None:
            await self._client.close()

    async def __aenter__(self) -> DiscoveryService:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
