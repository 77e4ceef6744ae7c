"""Unit tests for the category scorers and score aggregation."""

from dataclasses import replace

import pytest

from docaudit.core.models import (
    AIDiscoveryFiles,
    AILandingPageInfo,
    ContentChunk,
    ExtractedPage,
    FAQItem,
    LlmsTxtInfo,
    PageHeading,
    RobotsTxtInfo,
    Severity,
    SitemapInfo,
)
from docaudit.scoring.scorer import (
    MAX_CATEGORY_SCORE,
    TOP_FINDINGS_LIMIT,
    URL_LIMIT,
    create_finding,
    score_ai_crawl_accessibility,
    score_all,
    score_content_self_containment,
    score_documentation_architecture,
    score_structured_data,
)
from docaudit.services.discovery import parse_robots_txt

CONTENT = "Follow these steps to configure the project locally. " * 10

COMPLETE_FILES = AIDiscoveryFiles(
    llms_txt=LlmsTxtInfo(
        exists=True,
        content="# Example\n> Example SDK\n- /docs/start",
        has_product_description=True,
        has_documentation_links=True,
        has_use_cases=True,
    ),
    robots_txt=RobotsTxtInfo(
        exists=True,
        content="User-agent: GPTBot\nAllow: /\nSitemap: https://docs.example.com/sitemap.xml",
        allows_ai_crawlers=True,
        mentions_sitemap=True,
        ai_crawler_rules=["GPTBot: Allow /"],
    ),
    sitemap=SitemapInfo(exists=True, url_count=3, has_lastmod=True, coverage_ratio=1.0),
    ai_landing_page=AILandingPageInfo(exists=True, url="https://docs.example.com/ai"),
)


def make_page(url: str = "https://docs.example.com/guide", **overrides) -> ExtractedPage:
    """Build a page that passes every check unless overridden."""
    fields = {
        "url": url,
        "title": "Guide",
        "meta_description": "How to use the guide.",
        "headings": [PageHeading(1, "Guide"), PageHeading(2, "Steps")],
        "main_content": CONTENT,
        "raw_html": "<html><body><p>Last updated 2026-09-01</p></body></html>",
        "status_code": 200,
        "has_json_ld": True,
        "json_ld_types": ["TechArticle", "FAQPage"],
        "has_faq_schema": True,
        "faq_items": [FAQItem("Is it free?", "Yes.")],
        "has_openapi_link": True,
        "openapi_url": "https://docs.example.com/openapi.json",
        "has_prerequisites": True,
        "internal_link_count": 6,
        "script_count": 2,
        "html_size": 2000,
        "text_to_html_ratio": 0.3,
    }
    fields.update(overrides)
    return ExtractedPage(**fields)


def healthy_site() -> list[ExtractedPage]:
    return [
        make_page("https://docs.example.com/"),
        make_page("https://docs.example.com/changelog", title="Changelog"),
        make_page("https://docs.example.com/guide"),
    ]


def chunks_for(pages: list[ExtractedPage], tokens: int = 200) -> list[ContentChunk]:
    return [ContentChunk(page.url, CONTENT, tokens, page.title) for page in pages]


def messages(findings) -> list[str]:
    return [finding.message for finding in findings]


class TestCreateFinding:
    def test_caps_urls_at_creation(self) -> None:
        urls = [f"https://docs.example.com/{i}" for i in range(25)]
        finding = create_finding(Severity.MED, "Many pages", urls=urls)

        assert len(finding.urls) == URL_LIMIT
        assert finding.urls == urls[:URL_LIMIT]
        assert finding.detail is None


class TestHealthySite:
    """A site passing every check scores 100 and explains itself."""

    def test_perfect_score(self) -> None:
        pages = healthy_site()
        result = score_all(pages, chunks_for(pages), COMPLETE_FILES, js_rendered=False)

        assert [category.score for category in result.categories] == [20, 20, 20, 20]
        assert result.overall_score == 100
        assert result.top_findings == []

    def test_every_category_explains_a_perfect_score(self) -> None:
        pages = healthy_site()
        result = score_all(pages, chunks_for(pages), COMPLETE_FILES)

        for category in result.categories:
            assert category.findings
            assert all(f.severity is Severity.PASS for f in category.findings)

    def test_category_order_and_names(self) -> None:
        pages = healthy_site()
        result = score_all(pages, chunks_for(pages), COMPLETE_FILES)

        assert [category.name for category in result.categories] == [
            "AI Crawl Accessibility",
            "Structured Data & Machine Readability",
            "Content Self-Containment",
            "Documentation Architecture",
        ]
        assert all(category.max == MAX_CATEGORY_SCORE for category in result.categories)


class TestAICrawlAccessibility:
    def test_robots_blocking_gptbot(self) -> None:
        robots = parse_robots_txt("User-agent: GPTBot\nDisallow: /")
        files = replace(COMPLETE_FILES, robots_txt=robots)

        result = score_ai_crawl_accessibility(files, healthy_site())

        # -4 for blocking AI crawlers, -1 for the missing Sitemap directive
        assert result.score == 15
        high = [f for f in result.findings if f.severity is Severity.HIGH]
        assert len(high) == 1
        assert "blocks AI crawlers" in high[0].message
        assert high[0].detail == "Blocked rules: GPTBot: Disallow /"

    def test_missing_files(self) -> None:
        result = score_ai_crawl_accessibility(AIDiscoveryFiles(), healthy_site())

        # -6 llms.txt, -3 robots.txt, -4 sitemap, -2 landing page
        assert result.score == 5
        assert [f.severity for f in result.findings] == [
            Severity.HIGH,
            Severity.MED,
            Severity.HIGH,
            Severity.LOW,
        ]

    def test_incomplete_llms_txt(self) -> None:
        files = replace(COMPLETE_FILES, llms_txt=LlmsTxtInfo(exists=True, content="hello"))
        result = score_ai_crawl_accessibility(files, healthy_site())

        assert result.score == 15
        assert "llms.txt exists but lacks a clear product description." in messages(
            result.findings
        )

    def test_robots_without_ai_rules(self) -> None:
        files = replace(
            COMPLETE_FILES,
            robots_txt=RobotsTxtInfo(exists=True, content="Sitemap: x", mentions_sitemap=True),
        )
        result = score_ai_crawl_accessibility(files, healthy_site())

        assert result.score == 19
        assert "robots.txt doesn't explicitly allow AI crawlers." in messages(result.findings)

    def test_low_sitemap_coverage_needs_more_than_ten_pages(self) -> None:
        files = replace(
            COMPLETE_FILES,
            sitemap=SitemapInfo(exists=True, url_count=2, has_lastmod=True, coverage_ratio=0.2),
        )
        few = healthy_site()
        many = [make_page(f"https://docs.example.com/p{i}") for i in range(11)]

        assert score_ai_crawl_accessibility(files, few).score == 20
        assert score_ai_crawl_accessibility(files, many).score == 19

    def test_no_valid_pages(self) -> None:
        errored = [ExtractedPage.errored("https://docs.example.com/", "Request timeout")]
        result = score_ai_crawl_accessibility(COMPLETE_FILES, errored)

        assert result.score == 0
        assert result.findings == []


class TestStructuredData:
    def test_partial_json_ld_coverage(self) -> None:
        pages = [make_page(f"https://docs.example.com/a{i}") for i in range(3)] + [
            make_page(
                f"https://docs.example.com/b{i}",
                has_json_ld=False,
                json_ld_types=[],
                has_faq_schema=False,
            )
            for i in range(7)
        ]
        result = score_structured_data(pages)

        # ceil((0.5 - 0.3) * 8) = 2
        assert result.score == 18
        med = [f for f in result.findings if f.severity is Severity.MED]
        assert med[0].message == "30% of pages have JSON-LD. Consider expanding coverage."
        assert len(med[0].urls) == 7

    def test_faq_content_without_schema_and_no_json_ld(self) -> None:
        pages = [
            make_page(
                f"https://docs.example.com/{i}",
                has_json_ld=False,
                json_ld_types=[],
                has_faq_schema=False,
            )
            for i in range(4)
        ]
        result = score_structured_data(pages)

        assert result.score == 14
        assert result.findings[0].severity is Severity.HIGH
        assert "FAQPage" in result.findings[0].message

    def test_generic_json_ld_types(self) -> None:
        pages = [make_page(json_ld_types=["WebPage"], has_faq_schema=False, faq_items=[])]
        result = score_structured_data(pages)

        assert result.score == 18
        assert "JSON-LD exists but lacks documentation-specific types." in messages(
            result.findings
        )

    def test_api_content_without_openapi_link(self) -> None:
        pages = [
            make_page(
                "https://docs.example.com/api/users",
                main_content="Send a request to the users endpoint. " * 10,
                has_openapi_link=False,
                openapi_url=None,
            )
        ]
        result = score_structured_data(pages)

        assert result.score == 15
        finding = result.findings[-1]
        assert finding.severity is Severity.HIGH
        assert finding.urls == ["https://docs.example.com/api/users"]

    def test_api_keywords_match_inside_words(self) -> None:
        pages = [
            make_page(
                "https://docs.example.com/projects",
                main_content="Our REST APIs let you manage projects. " * 10,
                has_openapi_link=False,
                openapi_url=None,
            )
        ]
        result = score_structured_data(pages)

        assert result.score == 15
        high = [f for f in result.findings if f.severity is Severity.HIGH]
        assert messages(high) == [
            "API documentation detected but no OpenAPI/Swagger spec link found."
        ]
        assert high[0].urls == []

    def test_missing_titles_and_descriptions(self) -> None:
        pages = [
            make_page(f"https://docs.example.com/{i}", title=None, meta_description=None)
            for i in range(6)
        ]
        result = score_structured_data(pages)

        # -3 descriptions, -2 titles
        assert result.score == 15
        titles = [f for f in result.findings if "title tags" in f.message]
        assert titles[0].severity is Severity.HIGH

    def test_markup_noise(self) -> None:
        pages = [make_page(script_count=45, text_to_html_ratio=0.02)]
        result = score_structured_data(pages)

        assert result.score == 16
        assert "High JavaScript dependency: average 45 scripts per page." in messages(
            result.findings
        )


class TestContentSelfContainment:
    def test_js_rendered_replaces_thin_check(self) -> None:
        pages = [make_page(f"https://docs.example.com/{i}", main_content="Loading") for i in range(3)]
        result = score_content_self_containment(pages, [], js_rendered=True)

        assert result.score == 10
        assert result.findings[0].severity is Severity.HIGH
        assert not any("thin content" in m for m in messages(result.findings))

    def test_thin_pages(self) -> None:
        pages = [make_page(f"https://docs.example.com/{i}", main_content="Short page.") for i in range(4)]
        result = score_content_self_containment(pages, chunks_for(pages), js_rendered=False)

        assert result.score == 15
        assert result.findings[0].message == "4 pages have thin content (<300 chars)."

    def test_chunk_health(self) -> None:
        pages = healthy_site()
        chunks = chunks_for(pages, tokens=20) + chunks_for(pages, tokens=900)
        result = score_content_self_containment(pages, chunks, js_rendered=False)

        # short 3/6 -> -3, long 3/6 -> -2
        assert result.score == 15

    def test_missing_faq_and_prerequisites(self) -> None:
        pages = [
            make_page(
                f"https://docs.example.com/{i}",
                faq_items=[],
                has_faq_schema=False,
                has_prerequisites=False,
            )
            for i in range(11)
        ]
        result = score_content_self_containment(pages, chunks_for(pages), js_rendered=False)

        assert result.score == 13


class TestDocumentationArchitecture:
    def test_sparse_linking_and_structure(self) -> None:
        pages = [
            make_page(
                f"https://docs.example.com/{i}",
                internal_link_count=1,
                headings=[PageHeading(2, "Start"), PageHeading(4, "Detail")],
                raw_html="<html></html>",
            )
            for i in range(4)
        ]
        result = score_documentation_architecture(pages)

        # -5 links, -4 H1, -2 skips, -3 freshness, -2 changelog
        assert result.score == 4
        assert result.findings[0].severity is Severity.HIGH

    def test_error_rate_counts_errored_and_4xx_pages(self) -> None:
        pages = healthy_site() + [
            make_page("https://docs.example.com/missing", status_code=404),
            ExtractedPage.errored("https://docs.example.com/slow", "Request timeout"),
        ]
        result = score_documentation_architecture(pages)

        assert result.score == 18
        errors = [f for f in result.findings if "returned errors" in f.message]
        assert errors[0].urls == [
            "https://docs.example.com/missing",
            "https://docs.example.com/slow",
        ]

    def test_moderate_linking(self) -> None:
        pages = [make_page(f"https://docs.example.com/changelog/{i}", internal_link_count=4) for i in range(2)]
        result = score_documentation_architecture(pages)

        assert result.score == 18


class TestAggregation:
    def test_zero_valid_pages(self) -> None:
        pages = [ExtractedPage.errored("https://docs.example.com/", "Request timeout")]
        result = score_all(pages, [], COMPLETE_FILES, js_rendered=False)

        assert [category.score for category in result.categories] == [0, 0, 0, 0]
        assert all(category.findings == [] for category in result.categories)
        assert result.overall_score == 0
        assert result.top_findings == []

    def test_no_pages_at_all(self) -> None:
        result = score_all([], [], AIDiscoveryFiles())
        assert result.overall_score == 0

    def test_overall_rounds_half_up(self) -> None:
        pages = healthy_site()
        files = replace(COMPLETE_FILES, llms_txt=LlmsTxtInfo())
        result = score_all(pages, chunks_for(pages), files)

        # 74 / 80 = 92.5%
        assert sum(category.score for category in result.categories) == 74
        assert result.overall_score == 93

    def test_top_findings_prioritized_and_capped(self) -> None:
        pages = [
            make_page(
                f"https://docs.example.com/{i:02d}",
                title=None,
                meta_description=None,
                headings=[],
                main_content="Short page.",
                raw_html="<html></html>",
                has_json_ld=False,
                json_ld_types=[],
                has_faq_schema=False,
                faq_items=[],
                has_openapi_link=False,
                openapi_url=None,
                has_prerequisites=False,
                internal_link_count=0,
                script_count=40,
                text_to_html_ratio=0.01,
            )
            for i in range(12)
        ]
        result = score_all(pages, [], AIDiscoveryFiles(), js_rendered=False)

        assert [category.score for category in result.categories] == [5, 5, 8, 6]
        assert result.overall_score == 30

        top = result.top_findings
        assert len(top) == TOP_FINDINGS_LIMIT
        assert all(f.severity is not Severity.PASS for f in top)
        assert [f.severity for f in top] == [Severity.HIGH] * 6 + [Severity.MED] * 4
        assert top[0].message == "No llms.txt file found."

    @pytest.mark.parametrize("js_rendered", [True, False])
    def test_scores_stay_in_range(self, js_rendered: bool) -> None:
        pages = [make_page(f"https://docs.example.com/{i}", main_content="x") for i in range(5)]
        result = score_all(pages, chunks_for(pages, tokens=1), AIDiscoveryFiles(), js_rendered)

        for category in result.categories:
            assert 0 <= category.score <= MAX_CATEGORY_SCORE
        assert 0 <= result.overall_score <= 100
