"""Data models for HTTP fetches."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FetchOutcome:
    """Result of fetching a single URL.

    Attributes:
        url: URL originally requested
        final_url: URL the body was served from after redirects
        html: Response body (empty on failure)
        status_code: HTTP status code (0 on failure)
        error: Error message if the fetch failed
        ssrf_rejected: Whether the failure was an SSRF rejection on a
            redirect hop
    """

    url: str
    final_url: str | None = None
    html: str = ""
    status_code: int = 0
    error: str | None = None
    ssrf_rejected: bool = False

    @property
    def success(self) -> bool:
        return self.error is None
