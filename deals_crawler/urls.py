"""URL resolution and host helpers shared by the crawler components."""

import re
from typing import Optional
from urllib.parse import urljoin, urlparse

from .errors import MalformedUrlError

PAGINATION_PATH_RE = re.compile(r"/page/\d+")

# Paths that probably lead to product or deal pages
PRODUCT_PATH_RE = re.compile(r"product|prod|item|sku|shop|sale|clear|outlet", re.I)

_SKIP_PREFIXES = ('javascript:', '#', 'tel:', 'mailto:', 'data:')


def resolve_url(href: Optional[str], base: str) -> str:
    """
    Resolve href against base and return an absolute http(s) URL.

    Raises MalformedUrlError when the pair cannot form such a URL.
    """
    if href is None:
        raise MalformedUrlError("", base)
    href = href.strip()
    if not href or href.startswith(_SKIP_PREFIXES):
        raise MalformedUrlError(href, base)
    try:
        absolute = urljoin(base, href)
        parsed = urlparse(absolute)
        # Accessing port validates it
        parsed.port
    except ValueError as e:
        raise MalformedUrlError(href, base) from e
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise MalformedUrlError(href, base)
    return absolute


def try_resolve_url(href: Optional[str], base: str) -> str:
    """Resolve href against base, returning an empty string on failure."""
    try:
        return resolve_url(href, base)
    except MalformedUrlError:
        return ""


def host_of(url: str) -> str:
    """Return the lowercase host of a URL, or an empty string."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def merchant_of(url: str) -> str:
    """Host of the URL with a leading 'www.' removed."""
    return re.sub(r'^www\.', '', host_of(url))


def origin_of(url: str) -> str:
    """Extract the scheme://netloc origin from a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_same_host(url: str, other: str) -> bool:
    host = host_of(url)
    return bool(host) and host == host_of(other)


def looks_like_pagination(url: str, current: str) -> bool:
    """Pagination test for successor links: page query, /page/<n>, or any different URL."""
    return "page=" in url or bool(PAGINATION_PATH_RE.search(url)) or url != current


def is_product_like(url: Optional[str]) -> bool:
    """Whether the path or query of url uses product vocabulary; the host is ignored."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(PRODUCT_PATH_RE.search(f"{parsed.path}?{parsed.query}"))


def name_from_url(url: str) -> str:
    """Derive a readable name from the last path segment of a URL."""
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    segments = [s for s in path.split('/') if s]
    if not segments:
        return ""
    slug = re.sub(r'\.\w+$', '', segments[-1])
    words = re.sub(r'[-_]+', ' ', slug).strip()
    return words.title()
