"""
URL safety helpers for links, images and embeds.

Key behaviors:
- Blocks forbidden protocols (javascript:, data:)
- Builds the rel attribute for published links
- Normalizes user-typed URLs before they enter the document
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlsplit, urlunsplit

DEFAULT_FORBIDDEN_PROTOCOLS = frozenset(["javascript:", "data:"])
DEFAULT_REL = ("noopener", "noreferrer")

# Browsers ignore control characters and whitespace inside the scheme
_SCHEME_NOISE = re.compile(r"[\x00-\x20]")
_HAS_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def is_safe_url(url: str, forbidden_protocols: Iterable[str] = DEFAULT_FORBIDDEN_PROTOCOLS) -> bool:
    """
    Check if URL is safe (no forbidden protocols).

    Returns True if URL is safe, False if it uses a forbidden protocol.
    """
    if not url:
        return True

    url_lower = _SCHEME_NOISE.sub("", url).lower()
    return not any(url_lower.startswith(protocol) for protocol in forbidden_protocols)


def sanitize_url(
    url: str,
    forbidden_protocols: Iterable[str] = DEFAULT_FORBIDDEN_PROTOCOLS,
) -> str | None:
    """Stripped URL, or None if it uses a forbidden protocol."""
    if not is_safe_url(url, forbidden_protocols):
        return None
    return url.strip()


def build_link_rel(rel: Iterable[str] = DEFAULT_REL) -> str:
    """Build rel attribute value for links."""
    return " ".join(part for part in rel if part)


def normalize_url(raw: str | None) -> str | None:
    """
    Normalize a URL typed by the user.

    - Adds https:// when no scheme is given
    - Lowercases scheme and host, drops a leading "www."
    - Drops default ports and a trailing slash

    Returns None for empty input. Non-http schemes (mailto:, javascript:)
    are returned stripped but otherwise untouched.
    """
    if raw is None:
        return None
    url = raw.strip()
    if not url:
        return None

    if url.startswith("//"):
        url = "https:" + url
    elif not _HAS_SCHEME.match(url) or re.match(r"^[^:/]+:\d+", url):
        url = "https://" + url

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        return url

    host = (parts.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    netloc = host
    if parts.port and parts.port != _DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{parts.port}"
    if parts.username:
        credentials = parts.username + (f":{parts.password}" if parts.password else "")
        netloc = f"{credentials}@{netloc}"

    path = parts.path.rstrip("/")
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))
