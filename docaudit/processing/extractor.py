"""Page data extraction.

Turns one fetched HTML document into an ``ExtractedPage``: metadata, heading
outline, code blocks, links, boilerplate-free main text, and the derived
signals the scorer consumes (JSON-LD types, FAQ markup, OpenAPI links,
prerequisites, markup-noise ratios).

Extraction is a pure function of ``(html, url, status_code)``: no network
access happens here.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from docaudit.core.models import CodeBlock, ExtractedPage, FAQItem, PageHeading
from docaudit.core.url_validation import is_same_origin, normalize_url

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

BOILERPLATE_SELECTORS = [
    "nav",
    "header",
    "footer",
    "aside",
    ".sidebar",
    ".navigation",
    ".nav",
    ".menu",
    ".header",
    ".footer",
    ".breadcrumb",
    ".toc",
    ".table-of-contents",
    "#toc",
    "[role='navigation']",
    "[role='banner']",
    "[role='contentinfo']",
    "[role='complementary']",
    "script",
    "style",
    "noscript",
    "iframe",
    "svg",
]

MAIN_CONTENT_SELECTORS = [
    "main",
    "article",
    "[role='main']",
    ".content",
    ".main",
    "#content",
    "#main",
]

MIN_CODE_BLOCK_LENGTH = 10
MAX_FAQ_ITEMS = 50
PREREQUISITE_SCAN_CHARS = 2000
MAX_JSON_LD_DEPTH = 20
JS_RENDERED_CONTENT_THRESHOLD = 100
JS_RENDERED_PAGE_RATIO = 0.5

JSON_LD_PATTERN = re.compile(
    r"<script[^>]*\btype\s*=\s*[\"']?application/ld\+json[\"']?[^>]*>(.*?)</script\s*>",
    re.IGNORECASE | re.DOTALL,
)

OPENAPI_PATTERN = re.compile(
    r"(?:openapi|swagger)\.(?:json|ya?ml)|api-spec|api\.json", re.IGNORECASE
)

LANGUAGE_CLASS_PATTERN = re.compile(r"^(?:language|lang)-([\w+#.-]+)$", re.IGNORECASE)

PREREQUISITE_PATTERNS = [
    re.compile(r"\bprerequisites?\b", re.IGNORECASE),
    re.compile(r"\brequirements\b", re.IGNORECASE),
    re.compile(r"\bbefore you (?:begin|start)\b", re.IGNORECASE),
    re.compile(r"\bwhat you(?:'ll| will)? need\b", re.IGNORECASE),
    re.compile(r"\byou(?:'ll| will) need\b", re.IGNORECASE),
]

FAQ_QUESTION_SELECTORS = (
    "[class*='faq-question'], [class*='faq__question'], "
    "[class*='faq'] dt, [class*='accordion-header'], [class*='accordion-title']"
)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _text(element: Tag) -> str:
    return _collapse(element.get_text(" "))


def _attr(element: Tag | None, name: str) -> str | None:
    if element is None:
        return None
    value = element.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    return value.strip() or None


def _first_present(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def _extract_headings(soup: BeautifulSoup) -> list[PageHeading]:
    headings: list[PageHeading] = []
    for element in soup.find_all(HEADING_TAGS):
        text = _text(element)
        if text:
            headings.append(PageHeading(level=int(element.name[1]), text=text))
    return headings


def _code_language(element: Tag) -> str | None:
    data_language = _attr(element, "data-language") or _attr(element, "data-lang")
    if data_language:
        return data_language.lower()
    for token in element.get("class") or []:
        match = LANGUAGE_CLASS_PATTERN.match(token)
        if match:
            return match.group(1).lower()
    return None


def _extract_code_blocks(soup: BeautifulSoup) -> list[CodeBlock]:
    blocks: list[CodeBlock] = []
    for pre in soup.find_all("pre"):
        code = pre.find("code")
        target = code if code is not None else pre
        content = target.get_text().strip()
        if len(content) <= MIN_CODE_BLOCK_LENGTH:
            continue
        language = _code_language(target)
        if language is None and code is not None:
            language = _code_language(pre)
        blocks.append(CodeBlock(language=language, content=content))
    return blocks


def _extract_links(soup: BeautifulSoup, url: str) -> tuple[list[str], int]:
    internal: list[str] = []
    seen: set[str] = set()
    external: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        normalized = normalize_url(anchor["href"], url)
        if normalized is None:
            continue
        if is_same_origin(normalized, url):
            if normalized not in seen:
                seen.add(normalized)
                internal.append(normalized)
        elif normalized.startswith(("http://", "https://")):
            external.add(normalized)
    return internal, len(external)


def _extract_main_content(soup: BeautifulSoup) -> str:
    if soup.body is None:
        return ""
    content = copy.copy(soup.body)

    for selector in BOILERPLATE_SELECTORS:
        for element in content.select(selector):
            # Nested matches die with their already-removed ancestor
            if not element.decomposed:
                element.decompose()

    for selector in MAIN_CONTENT_SELECTORS:
        for element in content.select(selector):
            text = _text(element)
            if text:
                return text

    return _text(content)


def _collect_types(node: Any, types: list[str], depth: int = 0) -> None:
    if depth > MAX_JSON_LD_DEPTH:
        return
    if isinstance(node, dict):
        declared = node.get("@type")
        candidates = declared if isinstance(declared, list) else [declared]
        for candidate in candidates:
            if isinstance(candidate, str) and candidate and candidate not in types:
                types.append(candidate)
        for value in node.values():
            _collect_types(value, types, depth + 1)
    elif isinstance(node, list):
        for item in node:
            _collect_types(item, types, depth + 1)


def extract_json_ld_types(html: str) -> tuple[bool, list[str]]:
    """Collect ``@type`` values from every JSON-LD block in raw HTML.

    Objects, arrays and ``@graph`` containers are walked recursively. Blocks
    that fail to parse are skipped.

    Returns:
        Tuple of (any block parsed, deduplicated types in first-seen order)
    """
    found = False
    types: list[str] = []
    for block in JSON_LD_PATTERN.findall(html):
        try:
            data = json.loads(block.strip())
        except (json.JSONDecodeError, RecursionError) as exc:
            logger.debug("Skipping malformed JSON-LD block: %s", exc)
            continue
        found = True
        _collect_types(data, types)
    return found, types


def _extract_faq_items(soup: BeautifulSoup) -> list[FAQItem]:
    items: list[FAQItem] = []
    seen: set[str] = set()

    def add(question: str, answer: str) -> None:
        question, answer = _collapse(question), _collapse(answer)
        key = question.lower()
        if question and answer and key not in seen and len(items) < MAX_FAQ_ITEMS:
            seen.add(key)
            items.append(FAQItem(question=question, answer=answer))

    def next_content(element: Tag) -> Tag | None:
        sibling = element.find_next_sibling()
        if sibling is None or sibling.name in HEADING_TAGS:
            return None
        return sibling

    # schema.org microdata
    for question in soup.select("[itemtype*='schema.org/Question']"):
        name = question.select_one("[itemprop='name']")
        answer = question.select_one("[itemprop='acceptedAnswer']") or question.select_one(
            "[itemprop='text']"
        )
        if name is not None and answer is not None:
            add(_text(name), _text(answer))

    # <details><summary>Question</summary>Answer</details>
    for details in soup.find_all("details"):
        summary = details.find("summary")
        if summary is None:
            continue
        question = _text(summary)
        full = _text(details)
        add(question, full[len(question):] if full.startswith(question) else full)

    # Class-based FAQ and accordion widgets
    for question in soup.select(FAQ_QUESTION_SELECTORS):
        answer = next_content(question)
        if answer is not None:
            add(_text(question), _text(answer))

    # Question-style headings followed by content
    for heading in soup.find_all(HEADING_TAGS[1:]):
        text = _text(heading)
        if text.endswith("?"):
            answer = next_content(heading)
            if answer is not None:
                add(text, _text(answer))

    return items[:MAX_FAQ_ITEMS]


def _resolve_href(url: str, href: str) -> str | None:
    try:
        return urljoin(url, href)
    except ValueError:
        return None


def _find_openapi_url(soup: BeautifulSoup, url: str) -> str | None:
    for element in soup.find_all(["a", "link"], href=True):
        href = element["href"].strip()
        if not href:
            continue
        if element.name == "link":
            rel = [token.lower() for token in element.get("rel") or []]
            link_type = (_attr(element, "type") or "").lower()
            if "api" in rel or "openapi" in link_type or OPENAPI_PATTERN.search(href):
                resolved = _resolve_href(url, href)
                if resolved:
                    return resolved
        elif OPENAPI_PATTERN.search(href):
            resolved = _resolve_href(url, href)
            if resolved:
                return resolved
    return None


def _has_prerequisites(headings: Iterable[PageHeading], main_content: str) -> bool:
    for heading in headings:
        if any(pattern.search(heading.text) for pattern in PREREQUISITE_PATTERNS):
            return True
    head = main_content[:PREREQUISITE_SCAN_CHARS]
    return any(pattern.search(head) for pattern in PREREQUISITE_PATTERNS)


def _unique_languages(blocks: Iterable[CodeBlock]) -> list[str]:
    languages: list[str] = []
    for block in blocks:
        if block.language and block.language not in languages:
            languages.append(block.language)
    return languages


def extract_page_data(html: str, url: str, status_code: int) -> ExtractedPage:
    """Extract structural and semantic signals from one HTML page.

    Args:
        html: Response body
        url: Resolved page URL, used to resolve and classify links
        status_code: HTTP status code of the response

    Returns:
        ExtractedPage with every signal populated

    Example:
        >>> page = extract_page_data("<title>Docs</title><h1>Intro</h1>", url, 200)
        >>> page.headings[0].text
        'Intro'
    """
    soup = BeautifulSoup(html, "lxml")

    title_element = soup.select_one("head > title") or soup.find("title")
    title = _text(title_element) if title_element is not None else ""

    canonical = _first_present(
        _attr(soup.select_one("link[rel~='canonical']"), "href"),
        _attr(soup.select_one("meta[property='og:url']"), "content"),
    )
    meta_description = _first_present(
        _attr(soup.select_one("meta[name='description']"), "content"),
        _attr(soup.select_one("meta[property='og:description']"), "content"),
    )

    headings = _extract_headings(soup)
    code_blocks = _extract_code_blocks(soup)
    internal_links, external_link_count = _extract_links(soup, url)
    main_content = _extract_main_content(soup)

    has_json_ld, json_ld_types = extract_json_ld_types(html)
    openapi_url = _find_openapi_url(soup, url)
    html_size = len(html.encode("utf-8"))

    return ExtractedPage(
        url=url,
        title=title or None,
        canonical=canonical,
        meta_description=meta_description,
        headings=headings,
        code_blocks=code_blocks,
        internal_links=internal_links,
        main_content=main_content,
        raw_html=html,
        status_code=status_code,
        has_json_ld=has_json_ld,
        json_ld_types=json_ld_types,
        has_faq_schema=any("faq" in kind.lower() for kind in json_ld_types),
        faq_items=_extract_faq_items(soup),
        has_openapi_link=openapi_url is not None,
        openapi_url=openapi_url,
        has_prerequisites=_has_prerequisites(headings, main_content),
        internal_link_count=len(internal_links),
        external_link_count=external_link_count,
        code_languages=_unique_languages(code_blocks),
        script_count=len(soup.find_all("script")),
        html_size=html_size,
        text_to_html_ratio=len(main_content) / html_size if html_size else 0.0,
    )


def detect_js_rendered(pages: list[ExtractedPage]) -> bool:
    """Detect a client-side rendered site.

    A page looks unrendered when it has under 100 characters of main content
    and no headings. Errored pages have neither, so they count as unrendered.

    Returns:
        True when more than half of the crawled pages look unrendered
    """
    if not pages:
        return False
    empty = sum(
        1
        for page in pages
        if len(page.main_content) < JS_RENDERED_CONTENT_THRESHOLD and not page.headings
    )
    return empty / len(pages) > JS_RENDERED_PAGE_RATIO
