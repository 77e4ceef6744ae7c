"""Category scoring for AI agent discoverability.

Four independent category scorers each start at MAX_CATEGORY_SCORE and apply
deterministic deductions, one finding per deduction. A category without any
deduction explains itself with ``pass`` findings instead. Thresholds and
point values below are policy: changing them changes every historical score.

Example:
    >>> result = score_all(pages, chunks, ai_files, js_rendered=False)
    >>> result.overall_score
    72
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

from docaudit.core.models import (
    SEVERITY_RANK,
    AIDiscoveryFiles,
    CategoryResult,
    ContentChunk,
    ExtractedPage,
    Finding,
    ScoreResult,
    Severity,
)
from docaudit.processing.chunker import LONG_CHUNK_TOKENS, SHORT_CHUNK_TOKENS

MAX_CATEGORY_SCORE = 20
URL_LIMIT = 10
TOP_FINDINGS_LIMIT = 10

AI_CRAWL_ACCESSIBILITY = "AI Crawl Accessibility"
STRUCTURED_DATA = "Structured Data & Machine Readability"
CONTENT_SELF_CONTAINMENT = "Content Self-Containment"
DOCUMENTATION_ARCHITECTURE = "Documentation Architecture"

THIN_CONTENT_CHARS = 300
SCRIPT_HEAVY_COUNT = 30

RICH_JSON_LD_TYPES = re.compile(
    r"TechArticle|HowTo|APIReference|SoftwareSourceCode|FAQPage", re.IGNORECASE
)
API_CONTENT_PATTERN = re.compile(r"api|endpoint|request|response", re.IGNORECASE)
API_URL_PATTERN = re.compile(r"api", re.IGNORECASE)
FRESHNESS_PATTERNS = [
    re.compile(r"last\s*updated", re.IGNORECASE),
    re.compile(r"modified", re.IGNORECASE),
    re.compile(r"datePublished", re.IGNORECASE),
    re.compile(r"<time", re.IGNORECASE),
]
CHANGELOG_PATTERNS = [
    re.compile(r"changelog", re.IGNORECASE),
    re.compile(r"release.?notes", re.IGNORECASE),
    re.compile(r"what'?s.?new", re.IGNORECASE),
]


def create_finding(
    severity: Severity,
    message: str,
    detail: str | None = None,
    urls: Iterable[str] = (),
) -> Finding:
    """Build a finding, capping its URL list at URL_LIMIT."""
    capped: list[str] = []
    for url in urls:
        if len(capped) >= URL_LIMIT:
            break
        capped.append(url)
    return Finding(severity=severity, message=message, detail=detail, urls=capped)


def _unique(urls: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(urls))


def _valid(pages: list[ExtractedPage]) -> list[ExtractedPage]:
    return [page for page in pages if page.error is None]


def _ratio_deduction(ratio: float, multiplier: float, cap: int) -> int:
    return min(cap, math.ceil(ratio * multiplier))


def _finish(
    name: str, score: int, findings: list[Finding], summary: str
) -> CategoryResult:
    """Clamp the score and make sure a perfect category still explains itself."""
    if score >= MAX_CATEGORY_SCORE and not any(
        finding.severity is Severity.PASS for finding in findings
    ):
        findings.append(create_finding(Severity.PASS, summary))
    return CategoryResult(
        name=name,
        score=max(0, min(MAX_CATEGORY_SCORE, score)),
        max=MAX_CATEGORY_SCORE,
        findings=findings,
    )


def _empty(name: str) -> CategoryResult:
    # No fetched pages: nothing to report either way
    return CategoryResult(name=name, score=0, max=MAX_CATEGORY_SCORE, findings=[])


def score_ai_crawl_accessibility(
    ai_files: AIDiscoveryFiles, pages: list[ExtractedPage]
) -> CategoryResult:
    """Score llms.txt, robots.txt, sitemap and AI landing page signals."""
    if not _valid(pages):
        return _empty(AI_CRAWL_ACCESSIBILITY)

    findings: list[Finding] = []
    score = MAX_CATEGORY_SCORE

    llms = ai_files.llms_txt
    if not llms.exists:
        score -= 6
        findings.append(
            create_finding(
                Severity.HIGH,
                "No llms.txt file found.",
                "llms.txt gives AI agents a curated summary of your product and "
                "the documentation sections worth reading first.",
            )
        )
    else:
        if not llms.has_product_description:
            score -= 2
            findings.append(
                create_finding(
                    Severity.MED,
                    "llms.txt exists but lacks a clear product description.",
                    "Start llms.txt with a '# Product' heading and a '>' summary line.",
                )
            )
        if not llms.has_documentation_links:
            score -= 2
            findings.append(
                create_finding(
                    Severity.MED,
                    "llms.txt should include links to key documentation sections.",
                )
            )
        if not llms.has_use_cases:
            score -= 1
            findings.append(
                create_finding(
                    Severity.LOW,
                    "llms.txt should describe common use cases for better AI "
                    "recommendations.",
                )
            )
        if (
            llms.has_product_description
            and llms.has_documentation_links
            and llms.has_use_cases
        ):
            findings.append(
                create_finding(
                    Severity.PASS,
                    "llms.txt describes the product, links key docs and lists use cases.",
                )
            )

    robots = ai_files.robots_txt
    if not robots.exists:
        score -= 3
        findings.append(
            create_finding(
                Severity.MED,
                "No robots.txt file found. AI crawlers need clear access rules.",
            )
        )
    else:
        if robots.blocks_ai_crawlers:
            score -= 4
            findings.append(
                create_finding(
                    Severity.HIGH,
                    "robots.txt blocks AI crawlers (GPTBot, Claude-Web, etc). Your "
                    "content won't be indexed by AI agents.",
                    "Blocked rules: " + "; ".join(robots.ai_crawler_rules)
                    if robots.ai_crawler_rules
                    else None,
                )
            )
        elif not robots.allows_ai_crawlers and not robots.ai_crawler_rules:
            score -= 1
            findings.append(
                create_finding(
                    Severity.LOW,
                    "robots.txt doesn't explicitly allow AI crawlers.",
                    "Consider adding explicit rules for GPTBot, ClaudeBot, "
                    "PerplexityBot and Google-Extended.",
                )
            )
        elif robots.allows_ai_crawlers:
            findings.append(
                create_finding(Severity.PASS, "robots.txt explicitly allows AI crawlers.")
            )
        if not robots.mentions_sitemap:
            score -= 1
            findings.append(
                create_finding(
                    Severity.LOW,
                    "robots.txt should reference your sitemap.xml for better crawl "
                    "discovery.",
                )
            )

    sitemap = ai_files.sitemap
    if not sitemap.exists:
        score -= 4
        findings.append(
            create_finding(
                Severity.HIGH,
                "No sitemap.xml found. AI crawlers rely heavily on sitemaps for page "
                "discovery.",
            )
        )
    else:
        if not sitemap.has_lastmod:
            score -= 1
            findings.append(
                create_finding(
                    Severity.LOW,
                    "Sitemap lacks <lastmod> dates.",
                    "Adding lastmod dates helps AI agents prioritize fresh content.",
                )
            )
        if sitemap.coverage_ratio < 0.5 and len(pages) > 10:
            score -= 1
            findings.append(
                create_finding(
                    Severity.MED,
                    f"Sitemap only covers {round(sitemap.coverage_ratio * 100)}% of "
                    "crawled pages. Many pages may be undiscoverable.",
                )
            )

    landing = ai_files.ai_landing_page
    if not landing.exists:
        score -= 2
        findings.append(
            create_finding(
                Severity.LOW,
                "No dedicated /ai or /llm landing page found.",
                "A curated entry point gives AI agents a stable place to start.",
            )
        )
    else:
        findings.append(
            create_finding(
                Severity.PASS,
                "Dedicated AI landing page found.",
                urls=[landing.url] if landing.url else (),
            )
        )

    return _finish(
        AI_CRAWL_ACCESSIBILITY,
        score,
        findings,
        "llms.txt, robots.txt, sitemap and AI landing page are all in place.",
    )


def score_structured_data(pages: list[ExtractedPage]) -> CategoryResult:
    """Score JSON-LD, OpenAPI links, metadata coverage and markup noise."""
    valid_pages = _valid(pages)
    if not valid_pages:
        return _empty(STRUCTURED_DATA)

    findings: list[Finding] = []
    score = MAX_CATEGORY_SCORE
    total = len(valid_pages)

    with_json_ld = [page for page in valid_pages if page.has_json_ld]
    without_json_ld = [page.url for page in valid_pages if not page.has_json_ld]
    json_ld_ratio = len(with_json_ld) / total
    faq_unmarked = [
        page.url for page in valid_pages if page.faq_items and not page.has_faq_schema
    ]

    if json_ld_ratio < 0.1:
        score -= 6
        if faq_unmarked:
            findings.append(
                create_finding(
                    Severity.HIGH,
                    f"{len(faq_unmarked)} pages have FAQ-style content but no FAQPage "
                    "schema, and almost no pages carry JSON-LD.",
                    "Marking Q&A content up as FAQPage lets AI agents lift answers "
                    "directly.",
                    faq_unmarked,
                )
            )
        else:
            findings.append(
                create_finding(
                    Severity.HIGH,
                    f"Only {len(with_json_ld)}/{total} pages have JSON-LD structured data.",
                    "AI agents use structured data to understand page context.",
                    without_json_ld,
                )
            )
    elif json_ld_ratio < 0.5:
        score -= math.ceil((0.5 - json_ld_ratio) * 8)
        findings.append(
            create_finding(
                Severity.MED,
                f"{round(json_ld_ratio * 100)}% of pages have JSON-LD. Consider "
                "expanding coverage.",
                urls=without_json_ld,
            )
        )
    elif faq_unmarked:
        score -= 1
        findings.append(
            create_finding(
                Severity.LOW,
                f"{len(faq_unmarked)} pages have FAQ-style content without FAQPage schema.",
                urls=faq_unmarked,
            )
        )

    all_types = [kind for page in valid_pages for kind in page.json_ld_types]
    if with_json_ld:
        if any(RICH_JSON_LD_TYPES.search(kind) for kind in all_types):
            findings.append(
                create_finding(
                    Severity.PASS,
                    "JSON-LD uses documentation-specific schema types.",
                )
            )
        else:
            score -= 2
            findings.append(
                create_finding(
                    Severity.LOW,
                    "JSON-LD exists but lacks documentation-specific types.",
                    "Use richer schema types such as TechArticle, HowTo or APIReference.",
                )
            )

    with_openapi = [page for page in valid_pages if page.has_openapi_link]
    if with_openapi:
        findings.append(
            create_finding(
                Severity.PASS,
                "OpenAPI/Swagger spec found at: "
                f"{with_openapi[0].openapi_url or 'linked pages'}",
                urls=[page.url for page in with_openapi],
            )
        )
    elif any(API_CONTENT_PATTERN.search(page.main_content) for page in valid_pages):
        score -= 5
        findings.append(
            create_finding(
                Severity.HIGH,
                "API documentation detected but no OpenAPI/Swagger spec link found.",
                "Machine-readable API specs are critical for AI agents that generate "
                "client code.",
                [page.url for page in valid_pages if API_URL_PATTERN.search(page.url)],
            )
        )

    without_meta = [page.url for page in valid_pages if not page.meta_description]
    if len(without_meta) > total * 0.3:
        score -= _ratio_deduction(len(without_meta) / total, 6, 3)
        findings.append(
            create_finding(
                Severity.MED,
                f"{len(without_meta)} pages lack meta descriptions.",
                "Meta descriptions help AI agents summarize content.",
                without_meta,
            )
        )

    without_title = [page.url for page in valid_pages if not page.title]
    if without_title:
        score -= min(2, len(without_title))
        findings.append(
            create_finding(
                Severity.HIGH if len(without_title) > 5 else Severity.MED,
                f"{len(without_title)} pages are missing title tags.",
                urls=without_title,
            )
        )

    avg_scripts = sum(page.script_count for page in valid_pages) / total
    if avg_scripts > SCRIPT_HEAVY_COUNT:
        score -= 2
        findings.append(
            create_finding(
                Severity.MED,
                f"High JavaScript dependency: average {round(avg_scripts)} scripts per page.",
                "AI crawlers prefer clean, static HTML.",
                [page.url for page in valid_pages if page.script_count > SCRIPT_HEAVY_COUNT],
            )
        )

    avg_text_ratio = sum(page.text_to_html_ratio for page in valid_pages) / total
    if avg_text_ratio < 0.1:
        score -= 2
        findings.append(
            create_finding(
                Severity.MED,
                f"Low text-to-HTML ratio ({avg_text_ratio * 100:.1f}%).",
                "Pages may be overly complex or rendered client-side.",
                [page.url for page in valid_pages if page.text_to_html_ratio < 0.05],
            )
        )

    return _finish(
        STRUCTURED_DATA,
        score,
        findings,
        "Structured data, metadata and markup are machine-friendly.",
    )


def score_content_self_containment(
    pages: list[ExtractedPage], chunks: list[ContentChunk], js_rendered: bool
) -> CategoryResult:
    """Score content depth, Q&A structure, prerequisites and chunk health."""
    valid_pages = _valid(pages)
    if not valid_pages:
        return _empty(CONTENT_SELF_CONTAINMENT)

    findings: list[Finding] = []
    score = MAX_CATEGORY_SCORE
    total = len(valid_pages)

    if js_rendered:
        score -= 10
        findings.append(
            create_finding(
                Severity.HIGH,
                "Site appears to be rendered client-side with JavaScript.",
                "Most pages return almost no text and no headings without running "
                "JavaScript, so AI crawlers see empty pages. Serve pre-rendered HTML.",
                [page.url for page in valid_pages if not page.headings],
            )
        )
    else:
        thin = [
            page.url
            for page in valid_pages
            if 0 < len(page.main_content) < THIN_CONTENT_CHARS
        ]
        if len(thin) > total * 0.2:
            score -= _ratio_deduction(len(thin) / total, 10, 5)
            findings.append(
                create_finding(
                    Severity.HIGH,
                    f"{len(thin)} pages have thin content (<{THIN_CONTENT_CHARS} chars).",
                    "AI agents need substantial, self-contained information.",
                    thin,
                )
            )

    with_faq = [
        page.url for page in valid_pages if page.has_faq_schema or page.faq_items
    ]
    faq_ratio = len(with_faq) / total
    if faq_ratio < 0.05:
        score -= 4
        findings.append(
            create_finding(
                Severity.MED,
                "Few pages use FAQ format.",
                "AI agents perform better with Q&A-structured content that matches "
                "natural queries.",
            )
        )
    elif faq_ratio > 0.1:
        findings.append(
            create_finding(
                Severity.PASS,
                f"{len(with_faq)} pages have FAQ/Q&A content structure.",
                urls=with_faq,
            )
        )

    prereq_ratio = sum(1 for page in valid_pages if page.has_prerequisites) / total
    if prereq_ratio < 0.1 and total > 10:
        score -= 3
        findings.append(
            create_finding(
                Severity.MED,
                "Few pages list prerequisites or requirements.",
                "Self-contained pages should explicitly state what a reader needs "
                "before starting.",
            )
        )

    short_chunks = [chunk for chunk in chunks if chunk.token_estimate < SHORT_CHUNK_TOKENS]
    if chunks and len(short_chunks) > len(chunks) * 0.3:
        score -= _ratio_deduction(len(short_chunks) / len(chunks), 6, 3)
        findings.append(
            create_finding(
                Severity.MED,
                f"{len(short_chunks)} chunks are too short (<{SHORT_CHUNK_TOKENS} tokens).",
                "Content may lack context when retrieved.",
                _unique(chunk.page_url for chunk in short_chunks),
            )
        )

    long_chunks = [chunk for chunk in chunks if chunk.token_estimate > LONG_CHUNK_TOKENS]
    if chunks and len(long_chunks) > len(chunks) * 0.2:
        score -= 2
        findings.append(
            create_finding(
                Severity.LOW,
                f"{len(long_chunks)} chunks exceed {LONG_CHUNK_TOKENS} tokens.",
                "Consider better heading structure for improved chunking.",
                _unique(chunk.page_url for chunk in long_chunks),
            )
        )

    return _finish(
        CONTENT_SELF_CONTAINMENT,
        score,
        findings,
        "Pages are substantial, self-contained and chunk cleanly.",
    )


def _skips_heading_level(page: ExtractedPage) -> bool:
    levels = [heading.level for heading in page.headings]
    return any(later - earlier > 1 for earlier, later in zip(levels, levels[1:]))


def _has_freshness_signal(page: ExtractedPage) -> bool:
    return any(pattern.search(page.raw_html) for pattern in FRESHNESS_PATTERNS)


def score_documentation_architecture(pages: list[ExtractedPage]) -> CategoryResult:
    """Score linking, heading structure, freshness, changelog and error rate."""
    valid_pages = _valid(pages)
    if not valid_pages:
        return _empty(DOCUMENTATION_ARCHITECTURE)

    findings: list[Finding] = []
    score = MAX_CATEGORY_SCORE
    total = len(valid_pages)

    avg_links = sum(page.internal_link_count for page in valid_pages) / total
    if avg_links < 3:
        score -= 5
        findings.append(
            create_finding(
                Severity.HIGH,
                f"Low internal linking: average {avg_links:.1f} links per page.",
                "AI agents use link structure to understand relationships.",
                [page.url for page in valid_pages if page.internal_link_count < 2],
            )
        )
    elif avg_links < 5:
        score -= 2
        findings.append(
            create_finding(
                Severity.MED,
                f"Moderate internal linking: {avg_links:.1f} links per page.",
                "Consider adding more cross-references.",
            )
        )

    bad_h1 = [
        page.url
        for page in valid_pages
        if sum(1 for heading in page.headings if heading.level == 1) != 1
    ]
    if len(bad_h1) > total * 0.2:
        score -= _ratio_deduction(len(bad_h1) / total, 8, 4)
        findings.append(
            create_finding(
                Severity.MED,
                f"{len(bad_h1)} pages have missing or multiple H1 headings.",
                "Each page should have exactly one H1.",
                bad_h1,
            )
        )

    skipped = [page.url for page in valid_pages if _skips_heading_level(page)]
    if len(skipped) > total * 0.3:
        score -= 2
        findings.append(
            create_finding(
                Severity.LOW,
                f"{len(skipped)} pages skip heading levels (e.g., H2 to H4).",
                "Proper hierarchy aids content chunking.",
                skipped,
            )
        )

    stale = [page.url for page in valid_pages if not _has_freshness_signal(page)]
    fresh_count = total - len(stale)
    if fresh_count < total * 0.3:
        score -= 3
        findings.append(
            create_finding(
                Severity.MED,
                f"Only {fresh_count}/{total} pages show freshness signals.",
                "AI agents prioritize recently updated content.",
                stale,
            )
        )

    has_changelog = any(
        pattern.search(page.url) or (page.title and pattern.search(page.title))
        for page in valid_pages
        for pattern in CHANGELOG_PATTERNS
    )
    if not has_changelog:
        score -= 2
        findings.append(
            create_finding(
                Severity.LOW,
                "No changelog or release notes page detected.",
                "Versioning information builds trust with AI agents.",
            )
        )

    error_pages = [
        page.url
        for page in pages
        if page.error is not None or 400 <= page.status_code < 600
    ]
    if len(error_pages) > len(pages) * 0.1:
        score -= 2
        findings.append(
            create_finding(
                Severity.MED,
                f"{len(error_pages)} pages returned errors.",
                "Broken links hurt crawl efficiency.",
                error_pages,
            )
        )

    return _finish(
        DOCUMENTATION_ARCHITECTURE,
        score,
        findings,
        "Documentation is well linked, well structured and visibly maintained.",
    )


def prioritize_findings(categories: list[CategoryResult]) -> list[Finding]:
    """Pool non-pass findings, stable-sort by severity and keep the top N."""
    pooled = [
        finding
        for category in categories
        for finding in category.findings
        if finding.severity is not Severity.PASS
    ]
    pooled.sort(key=lambda finding: SEVERITY_RANK[finding.severity])
    return pooled[:TOP_FINDINGS_LIMIT]


def score_all(
    pages: list[ExtractedPage],
    chunks: list[ContentChunk],
    ai_files: AIDiscoveryFiles,
    js_rendered: bool = False,
) -> ScoreResult:
    """Score every category and aggregate an overall 0-100 score.

    Args:
        pages: All crawled pages, errored ones included
        chunks: Chunks built from the pages fetched without error
        ai_files: Pre-fetched AI discovery files record
        js_rendered: Site-wide client-side rendering signal

    Returns:
        ScoreResult with per-category results, the overall score (rounded half
        up) and at most TOP_FINDINGS_LIMIT prioritized findings
    """
    categories = [
        score_ai_crawl_accessibility(ai_files, pages),
        score_structured_data(pages),
        score_content_self_containment(pages, chunks, js_rendered),
        score_documentation_architecture(pages),
    ]

    total = sum(category.score for category in categories)
    max_total = sum(category.max for category in categories)
    overall = math.floor(100 * total / max_total + 0.5) if max_total else 0

    return ScoreResult(
        categories=categories,
        overall_score=max(0, min(100, overall)),
        top_findings=prioritize_findings(categories),
    )
