"""Data models for one audit run.

Every record here is created once and never mutated: pages come out of the
extractor (or the crawler, for failed fetches), chunks out of the chunker,
findings and category results out of the scorer, and the audit result out of
the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Priority tier of a finding."""

    PASS = "pass"
    LOW = "low"
    MED = "med"
    HIGH = "high"


# Sort rank for prioritized findings; PASS never reaches the sorted list
SEVERITY_RANK = {Severity.HIGH: 0, Severity.MED: 1, Severity.LOW: 2, Severity.PASS: 3}


@dataclass(frozen=True)
class PageHeading:
    """A heading element in document order.

    Args:
        level: Heading level 1-6 taken from the tag name
        text: Whitespace-collapsed heading text
    """

    level: int
    text: str


@dataclass(frozen=True)
class CodeBlock:
    """A code block found on a page.

    Args:
        language: Language tag from class or data attribute, if any
        content: Code text
    """

    language: str | None
    content: str


@dataclass(frozen=True)
class FAQItem:
    """A question/answer pair detected in page markup."""

    question: str
    answer: str


@dataclass(frozen=True)
class ExtractedPage:
    """Structural and semantic signals extracted from one fetched URL.

    Pages with ``error`` set carry only the URL, a zero status code and the
    error string; every derived signal keeps its empty default.

    Args:
        url: Normalized URL the page was fetched from
        title: Contents of ``<title>``
        canonical: Canonical link or og:url value
        meta_description: Meta description or og:description value
        headings: Headings h1-h6 in document order
        code_blocks: Code blocks longer than the minimum length
        internal_links: Same-origin normalized links, first-seen order
        main_content: Whitespace-collapsed main text with boilerplate removed
        raw_html: Response body
        status_code: HTTP status code (0 when the fetch failed)
        error: Fetch error message, if the fetch failed
        has_json_ld: Whether any JSON-LD block parsed
        json_ld_types: Deduplicated ``@type`` values across JSON-LD blocks
        has_faq_schema: Whether any JSON-LD type mentions FAQ
        faq_items: Question/answer pairs found in markup (capped)
        has_openapi_link: Whether an OpenAPI/Swagger spec is linked
        openapi_url: First matching OpenAPI/Swagger URL
        has_prerequisites: Whether a prerequisites section was detected
        internal_link_count: Number of unique same-origin links
        external_link_count: Number of unique cross-origin http(s) links
        code_languages: Distinct code languages seen, first-seen order
        script_count: Number of ``<script>`` tags
        html_size: Response body size in bytes
        text_to_html_ratio: Main content length divided by HTML size
    """

    url: str
    title: str | None = None
    canonical: str | None = None
    meta_description: str | None = None
    headings: list[PageHeading] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    internal_links: list[str] = field(default_factory=list)
    main_content: str = ""
    raw_html: str = ""
    status_code: int = 0
    error: str | None = None
    has_json_ld: bool = False
    json_ld_types: list[str] = field(default_factory=list)
    has_faq_schema: bool = False
    faq_items: list[FAQItem] = field(default_factory=list)
    has_openapi_link: bool = False
    openapi_url: str | None = None
    has_prerequisites: bool = False
    internal_link_count: int = 0
    external_link_count: int = 0
    code_languages: list[str] = field(default_factory=list)
    script_count: int = 0
    html_size: int = 0
    text_to_html_ratio: float = 0.0

    @classmethod
    def errored(cls, url: str, error: str) -> ExtractedPage:
        """Build the all-default record for a URL whose fetch failed."""
        return cls(url=url, status_code=0, error=error)


@dataclass(frozen=True)
class ContentChunk:
    """A retrieval-sized span of one page's main content.

    Args:
        page_url: URL of the source page
        content: Trimmed chunk text
        token_estimate: ceil(len(content) / 4)
        heading_context: Nearest heading text, page title, or None
    """

    page_url: str
    content: str
    token_estimate: int
    heading_context: str | None


@dataclass(frozen=True)
class LlmsTxtInfo:
    exists: bool = False
    content: str | None = None
    has_product_description: bool = False
    has_documentation_links: bool = False
    has_use_cases: bool = False


@dataclass(frozen=True)
class RobotsTxtInfo:
    exists: bool = False
    content: str | None = None
    allows_ai_crawlers: bool = False
    blocks_ai_crawlers: bool = False
    mentions_sitemap: bool = False
    ai_crawler_rules: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SitemapInfo:
    exists: bool = False
    url_count: int = 0
    has_lastmod: bool = False
    coverage_ratio: float = 0.0


@dataclass(frozen=True)
class AILandingPageInfo:
    exists: bool = False
    url: str | None = None


@dataclass(frozen=True)
class AIDiscoveryFiles:
    """AI discovery files fetched once per audit, consumed by the scorer."""

    llms_txt: LlmsTxtInfo = field(default_factory=LlmsTxtInfo)
    robots_txt: RobotsTxtInfo = field(default_factory=RobotsTxtInfo)
    sitemap: SitemapInfo = field(default_factory=SitemapInfo)
    ai_landing_page: AILandingPageInfo = field(default_factory=AILandingPageInfo)


@dataclass(frozen=True)
class Finding:
    """A single scored observation.

    Args:
        severity: Priority tier
        message: One-line human-readable summary
        detail: Optional longer explanation
        urls: Affected URLs, capped when the finding is created
    """

    severity: Severity
    message: str
    detail: str | None = None
    urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "severity": self.severity.value,
            "message": self.message,
            "urls": list(self.urls),
        }
        if self.detail is not None:
            data["detail"] = self.detail
        return data


@dataclass(frozen=True)
class CategoryResult:
    name: str
    score: int
    max: int
    findings: list[Finding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "max": self.max,
            "findings": [finding.to_dict() for finding in self.findings],
        }


@dataclass(frozen=True)
class CrawlResult:
    """Output of one crawl.

    Args:
        pages: Pages sorted by URL, at most ``max_pages`` long
        error_count: Fetch failures, including rejected redirect hops
        skipped_count: URLs rejected by the SSRF check before any request
    """

    pages: list[ExtractedPage]
    error_count: int = 0
    skipped_count: int = 0


@dataclass(frozen=True)
class ScoreResult:
    categories: list[CategoryResult]
    overall_score: int
    top_findings: list[Finding]


@dataclass(frozen=True)
class AuditMeta:
    chunk_count: int
    duration_ms: int
    error_count: int
    skipped_pages: int
    js_rendered_warning: bool = False


@dataclass(frozen=True)
class AuditResult:
    """Terminal artifact of one audit run."""

    root_url: str
    crawled_pages: int
    score: int
    categories: list[CategoryResult]
    top_findings: list[Finding]
    meta: AuditMeta

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape consumed by the CLI and exports."""
        meta: dict[str, Any] = {
            "chunkCount": self.meta.chunk_count,
            "durationMs": self.meta.duration_ms,
            "errorCount": self.meta.error_count,
            "skippedPages": self.meta.skipped_pages,
        }
        if self.meta.js_rendered_warning:
            meta["jsRenderedWarning"] = True
        return {
            "rootUrl": self.root_url,
            "crawledPages": self.crawled_pages,
            "score": self.score,
            "categories": [category.to_dict() for category in self.categories],
            "topFindings": [finding.to_dict() for finding in self.top_findings],
            "meta": meta,
        }
