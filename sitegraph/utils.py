"""
Utility Functions
URL canonicalization, href resolution, origin checks and file naming.
"""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit, parse_qsl, urlencode

logger = logging.getLogger(__name__)

_UNSAFE_FILE_CHARS = re.compile(r'[^a-z0-9\-]+', re.IGNORECASE)


def canonicalize_url(raw: str) -> str:
    """
    Canonical form used as the unique key for a page node.

    - Fragment removed
    - Trailing slash removed, except for the root path ``/``
    - Scheme and host lower-cased, empty path becomes ``/``

    Unparseable input is returned unchanged, so the function is
    idempotent for every string.
    """
    if not raw:
        return raw
    raw = raw.strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw
    if not parts.scheme or not parts.netloc:
        return raw

    path = parts.path or '/'
    if path != '/' and path.endswith('/'):
        path = path.rstrip('/') or '/'

    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        path,
        parts.query,
        '',
    ))


def resolve_href(base_url: str, href: Optional[str]) -> Optional[str]:
    """Resolve *href* against *base_url*; only http(s) results are kept."""
    if not href:
        return None
    try:
        absolute = urljoin(base_url, href.strip())
        scheme = urlsplit(absolute).scheme
    except ValueError:
        return None
    if scheme not in ('http', 'https'):
        return None
    return absolute


def origin_of(url: str) -> Optional[str]:
    """``scheme://host[:port]`` of *url*, default ports dropped."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if port and not ((scheme == 'http' and port == 80) or (scheme == 'https' and port == 443)):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def is_same_origin(url: str, origin: Optional[str]) -> bool:
    """True if *url* belongs to *origin*. A missing origin accepts everything."""
    if origin is None:
        return True
    return origin_of(url) == origin


def sorted_query_url(raw: str) -> str:
    """
    Canonical form used when reading exported graphs back: origin + path
    + query parameters sorted by key. Fragment dropped, path kept as is.
    """
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw
    if not parts.scheme or not parts.netloc:
        return raw
    params = sorted(parse_qsl(parts.query, keep_blank_values=True), key=lambda kv: kv[0])
    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path or '/',
        urlencode(params),
        '',
    ))


def safe_file_name(url: str, suffix: str = '.png') -> str:
    """Deterministic, filesystem-safe file name derived from a URL."""
    try:
        parts = urlsplit(url)
        if parts.hostname:
            base = parts.hostname + parts.path + (f"?{parts.query}" if parts.query else '')
        else:
            base = url
    except ValueError:
        base = url
    return _UNSAFE_FILE_CHARS.sub('_', base)[:200] + suffix


def truncate(text: str, limit: int = 120) -> str:
    """Cap *text* at *limit* characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit - 3] + '…'
