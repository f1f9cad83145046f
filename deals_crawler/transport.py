"""
HTTP transport for the crawler.

Requests go out with a desktop browser header set after a short random delay.
Response bodies are read raw and decompressed here according to the declared
Content-Encoding, falling back to plain UTF-8 text when that fails.
"""

import asyncio
import gzip
import logging
import os
import random
import re
import zlib
from typing import Dict, Optional, Tuple

import aiohttp
import brotli
from curl_cffi import CurlError
from curl_cffi import requests as curl_requests

from .config import (DEBUG_MIN_CHARS, DEBUG_SAMPLE_CHARS, REQUEST_DELAY, REQUEST_TIMEOUT,
                     USER_AGENT)
from .errors import DecompressionError, FetchError, FetchTimeoutError, HttpError
from .urls import host_of

logger = logging.getLogger(__name__)

BROWSER_PROFILE = "chrome120"


def browser_headers(user_agent: str = USER_AGENT) -> Dict[str, str]:
    """Header set of a desktop browser performing a top-level navigation."""
    return {
        'User-Agent': user_agent,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
        'Accept-Encoding': 'gzip, deflate, br',
        'DNT': '1',
        'Connection': 'keep-alive',
        'Upgrade-Insecure-Requests': '1',
        'Sec-Fetch-Dest': 'document',
        'Sec-Fetch-Mode': 'navigate',
        'Sec-Fetch-Site': 'none',
        'Cache-Control': 'max-age=0',
    }


def _inflate(body: bytes) -> bytes:
    try:
        return zlib.decompress(body)
    except zlib.error:
        # Some servers send raw deflate without the zlib wrapper
        return zlib.decompress(body, -zlib.MAX_WBITS)


def decompress(body: bytes, encoding: str) -> bytes:
    """Decompress body for a gzip, deflate or br Content-Encoding."""
    try:
        if encoding in ('gzip', 'x-gzip'):
            return gzip.decompress(body)
        if encoding == 'deflate':
            return _inflate(body)
        if encoding == 'br':
            return brotli.decompress(body)
    except (OSError, EOFError, zlib.error, brotli.error) as e:
        raise DecompressionError(encoding, str(e)) from e
    return body


def decode_body(body: bytes, content_encoding: Optional[str]) -> str:
    """
    Decode a raw response body to text.

    Unknown or missing encodings are decoded directly. A body that fails to
    decompress is decoded as-is rather than dropped.
    """
    encoding = (content_encoding or "").strip().lower()
    try:
        data = decompress(body, encoding)
    except DecompressionError as e:
        logger.warning(f"Decompression failed, treating as plain text: {e}")
        data = body
    return data.decode('utf-8', errors='replace')


class Transport:
    """
    Fetches pages as text.

    Args:
        user_agent: User agent to use for requests
        timeout: Request timeout in seconds
        request_delay: Range of the random delay awaited before each request
        impersonate_hosts: Hosts fetched with curl_cffi browser impersonation
        debug_dir: Directory receiving a sample of each host's HTML
    """

    def __init__(self,
                 user_agent: str = USER_AGENT,
                 timeout: float = REQUEST_TIMEOUT,
                 request_delay: Tuple[float, float] = REQUEST_DELAY,
                 impersonate_hosts: Tuple[str, ...] = (),
                 debug_dir: Optional[str] = None):
        self.user_agent = user_agent
        self.timeout = timeout
        self.request_delay = request_delay
        self.impersonate_hosts = tuple(h.lower() for h in impersonate_hosts)
        self.debug_dir = debug_dir
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "Transport":
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            # Bodies are decompressed by decode_body, not by aiohttp
            self.session = aiohttp.ClientSession(
                headers=browser_headers(self.user_agent),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                auto_decompress=False,
            )
        return self.session

    async def close(self):
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None

    async def _polite_delay(self):
        lo, hi = self.request_delay
        if hi > 0:
            await asyncio.sleep(random.uniform(lo, hi))

    def _use_impersonation(self, url: str) -> bool:
        host = host_of(url)
        return any(host == h or host.endswith("." + h) for h in self.impersonate_hosts)

    async def fetch(self, url: str) -> str:
        """
        Fetch url and return the decoded body text.

        Raises HttpError for 4xx/5xx responses, FetchTimeoutError when the
        request exceeds the timeout and FetchError for other network failures.
        """
        logger.info(f"Fetching: {url}")
        await self._polite_delay()

        if self._use_impersonation(url):
            text = await self._fetch_impersonated(url)
        else:
            text = await self._fetch_aiohttp(url)

        logger.info(f"Retrieved {round(len(text) / 1024)}KB from {host_of(url)}")
        if self.debug_dir and len(text) > DEBUG_MIN_CHARS:
            self._save_debug_sample(url, text)
        return text

    def _save_debug_sample(self, url: str, text: str):
        sample = text[:DEBUG_SAMPLE_CHARS]
        host = re.sub(r'[^a-zA-Z0-9]', '_', host_of(url))
        path = os.path.join(self.debug_dir, f"{host}_sample.html")
        try:
            os.makedirs(self.debug_dir, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(sample)
        except OSError as e:
            logger.warning(f"Could not save debug sample for {url}: {e}")
            return
        logger.debug(f"Saved sample HTML to {path}")
        lowered = sample.lower()
        if '<!doctype html' not in lowered and '<html' not in lowered:
            logger.debug(f"Content from {url} does not look like HTML: {sample[:200]!r}")

    async def _fetch_aiohttp(self, url: str) -> str:
        session = self._ensure_session()
        try:
            async with session.get(url, allow_redirects=True) as response:
                if response.status >= 400:
                    logger.warning(f"HTTP {response.status} for {url}")
                    raise HttpError(response.status, url)
                body = await response.read()
                content_encoding = response.headers.get('Content-Encoding')
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout while fetching {url}")
            raise FetchTimeoutError(url) from e
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching {url}: {str(e)}")
            raise FetchError(url, str(e)) from e

        logger.debug(f"Content-Encoding for {url}: {content_encoding or 'none'}")
        return decode_body(body, content_encoding)

    async def _fetch_impersonated(self, url: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            # Execute the curl_cffi request in a thread pool to avoid blocking the event loop
            response = await loop.run_in_executor(
                None,
                lambda: curl_requests.get(
                    url,
                    impersonate=BROWSER_PROFILE,
                    timeout=self.timeout,
                    headers={'User-Agent': self.user_agent},
                ),
            )
        except CurlError as e:
            logger.error(f"Error fetching {url}: {str(e)}")
            raise FetchError(url, str(e)) from e

        if response.status_code >= 400:
            logger.warning(f"HTTP {response.status_code} for {url}")
            raise HttpError(response.status_code, url)
        # libcurl has already decompressed the body
        return response.content.decode('utf-8', errors='replace')
