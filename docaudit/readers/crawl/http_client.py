"""HTTP client for fetching documentation pages."""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urljoin

import httpx

from docaudit.core.config import DEFAULT_USER_AGENT
from docaudit.core.url_validation import is_request_safe_async
from docaudit.readers.crawl.models import FetchOutcome

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5

HTML_ACCEPT = "text/html,application/xhtml+xml"

HTML_CONTENT_TYPES = ("text/html", "application/xhtml")


class HttpPageClient:
    """HTTP client that fetches HTML pages with SSRF-checked redirects.

    Redirects are never followed by httpx itself: each ``Location`` is
    resolved and passed through the SSRF check before the next hop, so a
    public URL cannot bounce the crawler onto a private address.

    Args:
        timeout: Per-fetch timeout in seconds, covering the whole redirect chain
        user_agent: User-Agent header sent with every request
        client: Optional pre-built httpx.AsyncClient (closed by ``close``)
    """

    def __init__(
        self,
        timeout: float = 12.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client or httpx.AsyncClient(
            timeout=timeout, follow_redirects=False
        )

    async def fetch_page(self, url: str) -> FetchOutcome:
        """Fetch an HTML page, following up to MAX_REDIRECTS redirects.

        Args:
            url: URL to fetch

        Returns:
            FetchOutcome with the body on success, or with an error for
            timeouts, network failures, unsafe redirects, redirect loops and
            non-HTML content types
        """
        try:
            return await asyncio.wait_for(self._fetch_html(url), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return FetchOutcome(url=url, error="Request timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return FetchOutcome(url=url, error=str(exc) or type(exc).__name__)

    async def fetch_text(self, url: str) -> str | None:
        """Fetch a small text resource (robots.txt, llms.txt, sitemaps).

        Redirects are followed with the same SSRF checks as pages, but any
        content type is accepted.

        Returns:
            Response body for a 2xx response, otherwise None
        """
        try:
            outcome = await asyncio.wait_for(
                self._fetch_html(url, require_html=False), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Fetch of %s failed: %s", url, exc)
            return None
        if not outcome.success or not 200 <= outcome.status_code < 300:
            return None
        return outcome.html

    async def _fetch_html(self, url: str, require_html: bool = True) -> FetchOutcome:
        headers = {"User-Agent": self.user_agent}
        if require_html:
            headers["Accept"] = HTML_ACCEPT

        current_url = url
        for _ in range(MAX_REDIRECTS + 1):
            check = await is_request_safe_async(current_url)
            if not check.safe:
                logger.warning("SSRF protection rejected %s: %s", current_url, check.reason)
                return FetchOutcome(
                    url=url,
                    final_url=current_url,
                    error=f"SSRF protection: {check.reason}",
                    ssrf_rejected=True,
                )

            async with self._client.stream(
                "GET", current_url, headers=headers
            ) as response:
                if 300 <= response.status_code < 400:
                    location = response.headers.get("location")
                    if not location:
                        return FetchOutcome(
                            url=url,
                            final_url=current_url,
                            status_code=response.status_code,
                            error="Redirect without location header",
                        )
                    try:
                        current_url = urljoin(current_url, location)
                    except ValueError:
                        return FetchOutcome(
                            url=url,
                            final_url=current_url,
                            status_code=response.status_code,
                            error=f"Invalid redirect location: {location}",
                        )
                    continue

                content_type = response.headers.get("content-type", "")
                if require_html and not any(
                    kind in content_type.lower() for kind in HTML_CONTENT_TYPES
                ):
                    return FetchOutcome(
                        url=url,
                        final_url=current_url,
                        status_code=response.status_code,
                        error=f"Non-HTML content type: {content_type or 'unknown'}",
                    )

                await response.aread()
                return FetchOutcome(
                    url=url,
                    final_url=current_url,
                    html=response.text,
                    status_code=response.status_code,
                )

        return FetchOutcome(url=url, final_url=current_url, error="Too many redirects")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> HttpPageClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
