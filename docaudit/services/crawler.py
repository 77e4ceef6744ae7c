"""Crawler service for bounded, same-origin documentation crawls.

This module walks a documentation site from its root URL. The frontier is
seeded from the site's sitemap, then grown from internal links discovered on
fetched pages until the frontier empties or the page budget is spent.

Fetches are dispatched in batches of at most ``concurrency`` URLs and each
batch is awaited as a whole. The frontier and visited set are only touched
between batches, and every batch is sorted by URL before and after the fetch,
so the resulting page list does not depend on network arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from docaudit.core.config import AuditConfig
from docaudit.core.models import CrawlResult, ExtractedPage
from docaudit.core.url_validation import (
    UnsafeUrlError,
    get_path_depth,
    is_request_safe_async,
    is_same_origin,
    normalize_url,
)
from docaudit.processing.extractor import extract_page_data
from docaudit.readers.crawl import HttpPageClient, SitemapReader

logger = logging.getLogger(__name__)

# Stop enqueuing once frontier + fetched pages reach this multiple of max_pages
FRONTIER_VALVE_FACTOR = 2


@dataclass(frozen=True)
class FrontierEntry:
    """A queued URL and its crawl depth."""

    url: str
    depth: int


class CrawlerService:
    """Service for crawling a documentation site into extracted pages.

    Attributes:
        client: Optional HttpPageClient to use for every fetch. When omitted,
            a client is built per crawl from the config's timeout and user
            agent and closed when the crawl finishes.

    Example:
        >>> async with CrawlerService() as crawler:
        ...     result = await crawler.crawl(AuditConfig(url="https://docs.example.com"))
        >>> len(result.pages)
        42
    """

    def __init__(self, client: HttpPageClient | None = None) -> None:
        self._client = client

    async def crawl(self, config: AuditConfig) -> CrawlResult:
        """Crawl the site rooted at ``config.url``.

        Args:
            config: Audit configuration (root URL, page budget, depth limit,
                concurrency, timeout, user agent)

        Returns:
            CrawlResult with at most ``config.max_pages`` pages sorted by URL,
            the number of failed fetches and the number of URLs skipped by
            the pre-request SSRF check

        Raises:
            UnsafeUrlError: If the root URL is unparsable or fails the SSRF check
        """
        root_url = normalize_url(config.url)
        if root_url is None:
            raise UnsafeUrlError(f"Invalid root URL: {config.url}")
        check = await is_request_safe_async(root_url)
        if not check.safe:
            raise UnsafeUrlError(f"SSRF protection: {check.reason}")

        client = self._client or HttpPageClient(
            timeout=config.timeout_seconds, user_agent=config.user_agent
        )
        try:
            return await self._crawl(config, root_url, client)
        finally:
            if self._client is None:
                await client.close()

    async def _crawl(
        self, config: AuditConfig, root_url: str, client: HttpPageClient
    ) -> CrawlResult:
        logger.info(
            "Starting crawl of %s (max_pages=%d, max_depth=%d, concurrency=%d)",
            root_url,
            config.max_pages,
            config.max_depth,
            config.concurrency,
        )

        visited: set[str] = set()
        frontier: list[FrontierEntry] = []
        pages: list[ExtractedPage] = []
        error_count = 0
        skipped_count = 0

        sitemap = SitemapReader(
            client, max_urls=config.max_pages * FRONTIER_VALVE_FACTOR
        )
        for url in await sitemap.discover(root_url):
            normalized = normalize_url(url)
            if (
                normalized
                and is_same_origin(normalized, root_url)
                and normalized not in visited
            ):
                visited.add(normalized)
                frontier.append(
                    FrontierEntry(normalized, get_path_depth(normalized, root_url))
                )
        logger.debug("Seeded frontier with %d sitemap URLs", len(frontier))

        if root_url not in visited:
            visited.add(root_url)
            frontier.insert(0, FrontierEntry(root_url, 0))

        semaphore = asyncio.Semaphore(config.concurrency)

        async def _bounded_fetch(
            entry: FrontierEntry,
        ) -> tuple[FrontierEntry, ExtractedPage | None, bool]:
            async with semaphore:
                return await self._fetch_entry(client, entry)

        while frontier and len(pages) < config.max_pages:
            frontier.sort(key=lambda entry: entry.url)
            batch_size = min(config.concurrency, config.max_pages - len(pages))
            batch, frontier = frontier[:batch_size], frontier[batch_size:]

            tasks = [asyncio.create_task(_bounded_fetch(entry)) for entry in batch]
            results = await asyncio.gather(*tasks)
            results.sort(key=lambda result: result[0].url)

            for entry, page, skipped in results:
                if skipped:
                    skipped_count += 1
                    continue
                if page is None:
                    continue
                if page.error is not None:
                    error_count += 1
                if len(pages) >= config.max_pages:
                    continue
                pages.append(page)

                if page.error is not None or entry.depth >= config.max_depth:
                    continue
                for link in page.internal_links:
                    normalized = normalize_url(link, entry.url)
                    if (
                        normalized
                        and is_same_origin(normalized, root_url)
                        and normalized not in visited
                        and len(frontier) + len(pages)
                        < config.max_pages * FRONTIER_VALVE_FACTOR
                    ):
                        visited.add(normalized)
                        frontier.append(FrontierEntry(normalized, entry.depth + 1))

        pages.sort(key=lambda page: page.url)
        logger.info(
            "Crawl of %s finished: %d pages, %d errors, %d skipped",
            root_url,
            len(pages),
            error_count,
            skipped_count,
        )
        return CrawlResult(
            pages=pages, error_count=error_count, skipped_count=skipped_count
        )

    async def _fetch_entry(
        self, client: HttpPageClient, entry: FrontierEntry
    ) -> tuple[FrontierEntry, ExtractedPage | None, bool]:
        """Fetch and extract one frontier entry.

        Returns:
            (entry, page, skipped). ``skipped`` is True when the URL failed the
            pre-request SSRF check, in which case no page is produced.
        """
        # Frontier entries may be stale by the time they are dispatched
        check = await is_request_safe_async(entry.url)
        if not check.safe:
            logger.warning("Skipping %s: %s", entry.url, check.reason)
            return entry, None, True

        outcome = await client.fetch_page(entry.url)
        if not outcome.success:
            if outcome.ssrf_rejected:
                logger.warning(
                    "Redirect from %s to %s rejected: %s",
                    entry.url,
                    outcome.final_url,
                    outcome.error,
                )
            else:
                logger.warning("Fetch failed for %s: %s", entry.url, outcome.error)
            return entry, ExtractedPage.errored(entry.url, outcome.error or ""), False

        return entry, extract_page_data(outcome.html, entry.url, outcome.status_code), False

    async def close(self) -> None:
        """Close the injected HTTP client, if any."""
        if self._client is not None:
            await self._client.close()

    async def __aenter__(self) -> CrawlerService:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager and close the client."""
        await self.close()
