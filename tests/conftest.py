"""Shared pytest fixtures.

Every test runs with a fake resolver so SSRF checks never touch real DNS.
Hostnames resolve to a public address unless a test overrides them through
the ``fake_dns`` mapping (an IP string, or None to fail resolution).
"""

import socket

import pytest

PUBLIC_IP = "93.184.216.34"


@pytest.fixture(autouse=True)
def fake_dns(monkeypatch: pytest.MonkeyPatch) -> dict[str, str | None]:
    """Patch socket.getaddrinfo with a deterministic resolver."""
    overrides: dict[str, str | None] = {}

    def _getaddrinfo(host, port, *args, **kwargs):
        ip = overrides.get(host, PUBLIC_IP)
        if ip is None:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        family = socket.AF_INET6 if ":" in ip else socket.AF_INET
        return [(family, socket.SOCK_STREAM, 6, "", (ip, port or 0))]

    monkeypatch.setattr(socket, "getaddrinfo", _getaddrinfo)
    return overrides
