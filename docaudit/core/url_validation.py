"""URL safety and normalization utilities.

This module provides the SSRF check used before every outbound request, plus
the normalization helpers used as dedup keys during crawling. Nothing in this
module raises for bad input: callers get ``None`` or an unsafe
``SafetyCheck`` back, because these functions run inside per-link loops.
"""

from __future__ import annotations

import asyncio
import ipaddress
import re
import socket
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


class UnsafeUrlError(ValueError):
    """Raised when the root URL of an audit is unparsable or fails SSRF checks."""

    pass


# Blocked hostnames (case-insensitive); any ".local" suffix is blocked too
BLOCKED_HOSTNAMES = {
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "::1",
    "metadata.google.internal",
    "metadata",
}

ALLOWED_SCHEMES = {"http", "https"}

DEFAULT_PORTS = {"http": 80, "https": 443}

# Query parameters stripped during normalization (plus any utm_* key)
TRACKING_PARAMS = {"ref", "source"}

SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap/sitemap.xml")

# Decimal: 2130706433, hex: 0x7f000001, octal: 0177.0.0.1
_ALT_IP_NOTATION = re.compile(r"^(0x[0-9a-fA-F]+|\d{8,}|0[0-7]+(\.|$))")


@dataclass(frozen=True)
class SafetyCheck:
    """Outcome of an SSRF check.

    Attributes:
        safe: Whether the URL may be requested
        reason: Why the URL was rejected (None when safe)
    """

    safe: bool
    reason: str | None = None


def _is_non_public(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    # ::ffff:127.0.0.1 must be judged as the IPv4 address it wraps
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def is_blocked_host(hostname: str) -> bool:
    """Return True for hostnames that are never fetched."""
    lower = hostname.lower().strip("[]")
    return lower in BLOCKED_HOSTNAMES or lower.endswith(".local")


def resolve_host(hostname: str) -> list[str]:
    """Resolve a hostname to its IP addresses.

    Returns:
        List of address strings, empty when resolution fails.
    """
    try:
        addr_info = socket.getaddrinfo(hostname, None)
    except (socket.gaierror, UnicodeError, OSError):
        return []
    return [str(addr[4][0]) for addr in addr_info]


def is_request_safe(url: str) -> SafetyCheck:
    """Check that a URL is safe to request (SSRF prevention).

    Must be called before the initial request and again before following any
    redirect target. Rejects:
    - Non-HTTP(S) schemes (file://, ftp://, gopher://)
    - Blocked hostnames (localhost, loopback literals, *.local, metadata hosts)
    - IP literals in private, loopback, link-local or reserved ranges
    - IP addresses in alternate notations (decimal, hex, octal)
    - Hostnames that resolve to any non-public address (DNS rebinding)

    Args:
        url: URL to check.

    Returns:
        SafetyCheck with ``safe=False`` and a reason when the URL is rejected.

    Examples:
        >>> is_request_safe("http://169.254.169.254/").safe
        False
        >>> is_request_safe("ftp://example.com/").reason
        'Blocked protocol: ftp'
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
    except ValueError as exc:
        return SafetyCheck(safe=False, reason=f"Invalid URL: {exc}")

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return SafetyCheck(safe=False, reason=f"Blocked protocol: {scheme or '(none)'}")

    if not hostname:
        return SafetyCheck(safe=False, reason="Invalid URL: missing hostname")

    if is_blocked_host(hostname):
        return SafetyCheck(safe=False, reason=f"Blocked host: {hostname}")

    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        ip = None

    if ip is not None:
        if _is_non_public(ip):
            return SafetyCheck(safe=False, reason=f"Private IP blocked: {hostname}")
        return SafetyCheck(safe=True)

    if _ALT_IP_NOTATION.match(hostname):
        return SafetyCheck(
            safe=False, reason=f"IP address in alternate notation: {hostname}"
        )

    addresses = resolve_host(hostname)
    if not addresses:
        return SafetyCheck(safe=False, reason=f"Could not resolve host: {hostname}")

    for address in addresses:
        try:
            resolved = ipaddress.ip_address(address.split("%", 1)[0])
        except ValueError:
            continue
        if _is_non_public(resolved):
            return SafetyCheck(
                safe=False, reason=f"Hostname resolves to private IP: {address}"
            )

    return SafetyCheck(safe=True)


async def is_request_safe_async(url: str) -> SafetyCheck:
    """Run ``is_request_safe`` without blocking the event loop.

    Hostname resolution happens in a worker thread, so a slow resolver only
    delays the caller awaiting this check and an enclosing
    ``asyncio.wait_for`` can still time it out.
    """
    return await asyncio.to_thread(is_request_safe, url)


def _netloc(scheme: str, hostname: str, port: int | None) -> str:
    host = f"[{hostname}]" if ":" in hostname else hostname
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return host


def _is_tracking_param(key: str) -> bool:
    return key in TRACKING_PARAMS or key.startswith("utm_")


def normalize_url(url: str, base: str | None = None) -> str | None:
    """Normalize a URL for dedup and same-origin comparison.

    Resolves ``url`` against ``base``, lowercases scheme and host, drops the
    default port, strips the fragment and tracking query parameters, and
    removes trailing slashes from the path (the root path stays ``/``).

    Args:
        url: Absolute or relative URL.
        base: Optional base URL used to resolve relative input.

    Returns:
        Normalized absolute URL, or None when the input cannot be parsed.

    Examples:
        >>> normalize_url("/guide/?utm_source=x#intro", "https://Docs.Example.com")
        'https://docs.example.com/guide'
    """
    try:
        absolute = urljoin(base, url.strip()) if base else url.strip()
        parsed = urlsplit(absolute)
        hostname = parsed.hostname
        port = parsed.port
    except (ValueError, TypeError, AttributeError):
        return None

    scheme = parsed.scheme.lower()
    if not scheme or not hostname:
        return None

    path = parsed.path.rstrip("/") or "/"

    query = parsed.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        kept = [(key, value) for key, value in pairs if not _is_tracking_param(key)]
        if len(kept) != len(pairs):
            query = urlencode(kept)

    return urlunsplit((scheme, _netloc(scheme, hostname, port), path, query, ""))


def _origin(url: str) -> tuple[str, str, int | None] | None:
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
        port = parsed.port
    except (ValueError, TypeError, AttributeError):
        return None
    if not parsed.scheme or not hostname:
        return None
    scheme = parsed.scheme.lower()
    return scheme, hostname, port if port is not None else DEFAULT_PORTS.get(scheme)


def is_same_origin(first: str, second: str) -> bool:
    """Return True when both URLs share scheme, host and port."""
    first_origin = _origin(first)
    return first_origin is not None and first_origin == _origin(second)


def get_path_depth(url: str, root_url: str) -> int:
    """Count path segments of ``url`` beyond those of ``root_url``."""
    try:
        url_segments = [s for s in urlsplit(url).path.split("/") if s]
        root_segments = [s for s in urlsplit(root_url).path.split("/") if s]
    except ValueError:
        return 0
    return max(0, len(url_segments) - len(root_segments))


def _base(root_url: str) -> str | None:
    try:
        parsed = urlsplit(root_url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def get_sitemap_urls(root_url: str) -> list[str]:
    """Return the sitemap candidates for a site, in the order they are tried."""
    base = _base(root_url)
    if base is None:
        return []
    return [f"{base}{path}" for path in SITEMAP_PATHS]


def get_robots_url(root_url: str) -> str | None:
    """Return the robots.txt URL for a site."""
    base = _base(root_url)
    return f"{base}/robots.txt" if base else None
