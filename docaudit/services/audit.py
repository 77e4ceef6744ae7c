"""Audit service running the crawl-extract-chunk-score pipeline."""

from __future__ import annotations

import logging
import time

from docaudit.core.config import AuditConfig
from docaudit.core.models import AuditMeta, AuditResult
from docaudit.processing.chunker import PageChunker
from docaudit.processing.extractor import detect_js_rendered
from docaudit.scoring.scorer import score_all
from docaudit.services.crawler import CrawlerService
from docaudit.services.discovery import DiscoveryService

logger = logging.getLogger(__name__)


class AuditService:
    """Orchestrates one audit run end to end.

    Collaborators are injectable so tests can substitute stubs for the
    network-facing services.

    Example:
        >>> service = AuditService()
        >>> result = await service.run_audit(AuditConfig(url="https://docs.example.com"))
        >>> result.score
        64
    """

    def __init__(
        self,
        crawler: CrawlerService | None = None,
        discovery: DiscoveryService | None = None,
        chunker: PageChunker | None = None,
    ) -> None:
        self._crawler = crawler or CrawlerService()
        self._discovery = discovery or DiscoveryService()
        self._chunker = chunker or PageChunker()

    async def run_audit(self, config: AuditConfig) -> AuditResult:
        """Run one audit.

        Args:
            config: Validated audit configuration

        Returns:
            AuditResult for the crawled site

        Raises:
            UnsafeUrlError: If the root URL is unparsable or fails the SSRF check
        """
        started = time.perf_counter()

        crawl = await self._crawler.crawl(config)
        chunks = self._chunker.chunk_all(crawl.pages)
        js_rendered = detect_js_rendered(crawl.pages)
        ai_files = await self._discovery.fetch(config, len(crawl.pages))
        scores = score_all(crawl.pages, chunks, ai_files, js_rendered)

        duration_ms = round((time.perf_counter() - started) * 1000)
        logger.info(
            "Audit of %s complete: score=%d pages=%d chunks=%d duration=%dms",
            config.url,
            scores.overall_score,
            len(crawl.pages),
            len(chunks),
            duration_ms,
        )

        return AuditResult(
            root_url=config.url,
            crawled_pages=len(crawl.pages),
            score=scores.overall_score,
            categories=scores.categories,
            top_findings=scores.top_findings,
            meta=AuditMeta(
                chunk_count=len(chunks),
                duration_ms=duration_ms,
                error_count=crawl.error_count,
                skipped_pages=crawl.skipped_count,
                js_rendered_warning=js_rendered,
            ),
        )
