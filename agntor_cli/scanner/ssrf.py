"""SSRF target classification and URL extraction.

``validate_url()`` returns None for a URL an agent may fetch and raises
``SsrfError(reason)`` otherwise. Raising is the expected "unsafe" signal, not a
failure of the check.

Blocked:
  - any scheme other than http/https, missing host, embedded credentials
  - localhost names and internal/metadata hostnames
  - IP literals in any notation (dotted, short, octal, integer, hex) that are
    not globally routable: loopback, RFC 1918, link-local (169.254/16 metadata),
    carrier-grade NAT, multicast, reserved, unspecified
  - hostnames resolving to any such address (when DNS resolution is enabled)

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
from typing import Optional, Union

import httpx
import re2  # noqa: F401 — google-re2. NEVER: import re

from agntor_cli.utils.logger import get_logger

logger = get_logger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

#: Candidate URL rule: maximal ``http(s)://`` runs of non-whitespace, non-quote chars.
URL_PATTERN = re2.compile(r'''https?://[^\s"']+''')

_ALLOWED_SCHEMES = frozenset({"http", "https"})
_BLOCKED_HOSTNAMES = frozenset({
    "localhost",
    "metadata",
    "metadata.google.internal",
    "instance-data",
})
_BLOCKED_SUFFIXES = (".localhost", ".internal", ".local")
_LEGACY_IP_PATTERN = re2.compile(r'[0-9a-fA-Fx.]+')


class SsrfError(Exception):
    """Raised when a URL must not be fetched. ``reason`` is operator-facing."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def extract_urls(text: str) -> list[str]:
    """All candidate URLs in ``text``, in order of appearance (duplicates kept)."""
    return [m.group(0) for m in URL_PATTERN.finditer(text)]


def _parse_ip_literal(host: str) -> Optional[IPAddress]:
    """Parse ``host`` as an IP literal, including legacy inet_aton notations.

    Returns None when ``host`` is a hostname rather than an address.
    """
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    if _LEGACY_IP_PATTERN.fullmatch(host) and any(c.isdigit() for c in host):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None
    return None


def _is_forbidden_address(ip: IPAddress) -> bool:
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return not ip.is_global or ip.is_multicast


async def _resolve(host: str, port: int) -> list[IPAddress]:
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise SsrfError(f"Unable to resolve host {host}") from exc
    except (UnicodeError, ValueError) as exc:
        # IDNA encoding rejects empty labels and labels over 63 characters
        raise SsrfError(f"Invalid hostname {host}") from exc
    addresses: list[IPAddress] = []
    for _family, _type, _proto, _canon, sockaddr in infos:
        # Strip IPv6 zone index ("fe80::1%eth0")
        addresses.append(ipaddress.ip_address(str(sockaddr[0]).split("%", 1)[0]))
    return addresses


async def validate_url(url: str, resolve_dns: bool = True) -> None:
    """Validate ``url`` as a safe fetch target.

    Args:
        url:         The URL to check.
        resolve_dns: Also resolve hostnames and check every resolved address.

    Raises:
        SsrfError: If the URL is malformed or targets a non-public endpoint.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError, TypeError) as exc:
        raise SsrfError(f"Invalid URL: {exc}") from exc

    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise SsrfError(f"Blocked scheme '{parsed.scheme or 'none'}' — only http and https are allowed")

    host = parsed.host.lower().rstrip(".")
    if not host:
        raise SsrfError("URL has no host")

    if parsed.userinfo:
        raise SsrfError("URL contains embedded credentials")

    if host in _BLOCKED_HOSTNAMES or host.endswith(_BLOCKED_SUFFIXES):
        raise SsrfError(f"Blocked internal hostname '{host}'")

    ip = _parse_ip_literal(host)
    if ip is not None:
        if _is_forbidden_address(ip):
            raise SsrfError(f"Blocked non-public address {ip}")
        return

    if not resolve_dns:
        return

    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    for address in await _resolve(host, port):
        if _is_forbidden_address(address):
            raise SsrfError(f"Host '{host}' resolves to non-public address {address}")
    logger.debug("URL validated", host=host)
