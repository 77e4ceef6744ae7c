"""Configuration for an audit run.

Provides a Pydantic settings model whose defaults can be overridden through
``DOCAUDIT_*`` environment variables or a ``.env`` file. Explicit keyword
arguments always win over the environment.

Example:
    >>> from docaudit.core.config import AuditConfig
    >>> config = AuditConfig(url="https://docs.example.com")
    >>> config.max_pages
    150
"""

from urllib.parse import urlsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "docs-ai-audit/1.0"


class AuditConfig(BaseSettings):
    """Immutable parameters for one audit run.

    Attributes:
        url: Root URL of the documentation site (required)
        max_pages: Page budget for the crawl
        max_depth: Maximum link depth followed from the root
        concurrency: Maximum simultaneous in-flight page fetches
        timeout_ms: Per-request timeout in milliseconds
        user_agent: User-Agent header sent with every request
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValidationError: If the URL is not http(s) or a numeric field is not
            positive

    Example:
        >>> config = AuditConfig(url="https://docs.example.com", max_pages=20)
        >>> config.timeout_seconds
        12.0
    """

    url: str

    max_pages: int = 150
    max_depth: int = 3
    concurrency: int = 8
    timeout_ms: int = 12000
    user_agent: str = DEFAULT_USER_AGENT

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DOCAUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
        frozen=True,
    )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @field_validator("url")
    @classmethod
    def validate_url(cls: type["AuditConfig"], v: str) -> str:
        """Validate the root URL is an absolute http(s) URL with a host.

        Raises:
            ValueError: If the scheme is not http/https or the host is missing
        """
        v = v.strip()
        try:
            parsed = urlsplit(v)
            hostname = parsed.hostname
        except ValueError as exc:
            raise ValueError(f"url is not a valid URL: {v}") from exc
        if parsed.scheme.lower() not in ("http", "https") or not hostname:
            raise ValueError(f"url must be an absolute http(s) URL: {v}")
        return v

    @field_validator("max_pages", "max_depth", "concurrency", "timeout_ms")
    @classmethod
    def validate_positive(cls: type["AuditConfig"], v: int) -> int:
        """Reject zero and negative limits.

        Raises:
            ValueError: If the value is not positive
        """
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls: type["AuditConfig"], v: str) -> str:
        if not v.strip():
            raise ValueError("user_agent must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls: type["AuditConfig"], v: str) -> str:
        """Validate log level is a standard logging level name.

        Raises:
            ValueError: If the level is not DEBUG, INFO, WARNING, ERROR or
                CRITICAL
        """
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a valid logging level, got {v}")
        return level
