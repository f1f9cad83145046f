"""Errors raised while fetching and parsing pages."""


class CrawlError(Exception):
    """Base class for every recoverable crawl failure."""


class HttpError(CrawlError):
    def __init__(self, status: int, url: str):
        super().__init__(f"HTTP {status} {url}")
        self.status = status
        self.url = url


class FetchError(CrawlError):
    """Network-level failure (connection refused, reset, TLS, ...)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Error fetching {url}: {reason}")
        self.url = url


class FetchTimeoutError(FetchError):
    def __init__(self, url: str):
        super().__init__(url, "request timed out")


class DecompressionError(CrawlError):
    def __init__(self, encoding: str, reason: str):
        super().__init__(f"Could not decode {encoding} body: {reason}")
        self.encoding = encoding


class ParseError(CrawlError):
    """A structured-data block or sitemap document could not be parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to parse {source}: {reason}")
        self.source = source


class MalformedUrlError(CrawlError):
    def __init__(self, href: str, base: str = ""):
        super().__init__(f"Cannot resolve {href!r} against {base!r}")
        self.href = href
        self.base = base
