"""
Sitemap-based product URL discovery.

Probes the usual sitemap locations of an origin (and the Sitemap: lines of its
robots.txt), expands sitemap indexes one level, keeps product-like URLs and
optionally scrapes each of them.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .config import CONCURRENCY, MAX_SITEMAP_URLS_PER_DOMAIN
from .errors import CrawlError, ParseError
from .extraction import PageExtractor
from .models import RawProduct
from .urls import is_product_like, origin_of, try_resolve_url

logger = logging.getLogger(__name__)

SITEMAP_PATHS = [
    '/sitemap.xml',
    '/sitemap_index.xml',
    '/sitemap-index.xml',
    '/siteindex.xml',
    '/robots.txt',
]

# Child sitemaps fetched from a single index
MAX_INDEX_CHILDREN = 200

FetchFn = Callable[[str], Awaitable[str]]
ExtractFn = Callable[[str, str], List[RawProduct]]


def unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates and empties, keeping first-seen order."""
    return list(OrderedDict.fromkeys(i for i in items if i))


def is_xml_document(text: str) -> bool:
    return text.lstrip('\ufeff').strip().startswith('<')


def _local_name(tag) -> str:
    return tag.rsplit('}', 1)[-1].lower() if isinstance(tag, str) else ""


def parse_sitemap_xml(xml: str) -> Tuple[str, List[str]]:
    """
    Parse a sitemap document.

    Returns ("urlset", page URLs) or ("sitemapindex", child sitemap URLs);
    any other root yields ("", []). Raises ParseError for malformed XML.
    """
    try:
        root = ET.fromstring(xml.lstrip('\ufeff').strip())
    except ET.ParseError as e:
        raise ParseError("XML sitemap", str(e)) from e

    kind = _local_name(root.tag)
    if kind == 'urlset':
        entry = 'url'
    elif kind == 'sitemapindex':
        entry = 'sitemap'
    else:
        return "", []

    locs = []
    for child in root:
        if _local_name(child.tag) != entry:
            continue
        for sub in child:
            if _local_name(sub.tag) == 'loc' and sub.text and sub.text.strip():
                locs.append(sub.text.strip())
    return kind, locs


def sitemaps_from_robots(text: str, base: str) -> List[str]:
    """Sitemap URLs declared in a robots.txt."""
    found = []
    for line in text.splitlines():
        key, _, value = line.partition(':')
        if key.strip().lower() == 'sitemap' and value.strip():
            resolved = try_resolve_url(value.strip(), base)
            if resolved:
                found.append(resolved)
    return unique(found)


def links_from_html_sitemap(html: str, base: str) -> List[str]:
    """Product-like links of an HTML sitemap page."""
    soup = BeautifulSoup(html, 'html.parser')
    links = [try_resolve_url(a['href'], base) for a in soup.find_all('a', href=True)]
    filtered = [u for u in unique(links) if is_product_like(u)]
    logger.info(f"Found {len(filtered)} product links from HTML sitemap at {base}")
    return filtered


def group_by_origin(urls: Iterable[str]) -> Dict[str, List[str]]:
    """Group sitemap URLs by scheme://host, skipping invalid ones."""
    groups: Dict[str, List[str]] = OrderedDict()
    for url in urls:
        resolved = try_resolve_url(url, url)
        if not resolved:
            logger.warning(f"Invalid sitemap URL: {url}")
            continue
        groups.setdefault(origin_of(resolved), []).append(resolved)
    return groups


class SitemapDiscoverer:
    """
    Finds product pages through sitemaps.

    Args:
        fetch: Coroutine returning the text of a URL
        extract: Callable turning a product page's (html, url) into RawProducts
        concurrency: Maximum in-flight fetches
        max_urls: Maximum product URLs kept per origin
    """

    def __init__(self,
                 fetch: FetchFn,
                 extract: Optional[ExtractFn] = None,
                 concurrency: int = CONCURRENCY,
                 max_urls: int = MAX_SITEMAP_URLS_PER_DOMAIN):
        self.fetch = fetch
        self.extract = extract or PageExtractor().extract_product_page
        self.concurrency = concurrency
        self.max_urls = max_urls
        self.semaphore = asyncio.Semaphore(concurrency)

    async def _limited_fetch(self, url: str) -> Optional[str]:
        async with self.semaphore:
            try:
                return await self.fetch(url)
            except CrawlError as e:
                logger.debug(f"Failed to fetch sitemap resource {url}: {e}")
                return None

    async def _child_locs(self, url: str) -> List[str]:
        text = await self._limited_fetch(url)
        if not text or not is_xml_document(text):
            return []
        try:
            _, locs = parse_sitemap_xml(text)
        except ParseError as e:
            logger.warning(str(e))
            return []
        return locs

    async def gather_from_sitemap(self, sitemap_url: str) -> List[str]:
        """Product-like page URLs reachable from one sitemap (XML or HTML)."""
        logger.info(f"Gathering product pages from sitemap: {sitemap_url}")
        text = await self._limited_fetch(sitemap_url)
        if not text:
            return []

        if not is_xml_document(text):
            return links_from_html_sitemap(text, sitemap_url)

        try:
            kind, first_level = parse_sitemap_xml(text)
        except ParseError as e:
            logger.warning(f"{e} ({sitemap_url})")
            return []

        leaves: List[str] = []
        if kind == 'sitemapindex':
            children = first_level[:MAX_INDEX_CHILDREN]
            logger.info(f"Processing {len(children)} child sitemaps concurrently")
            results = await asyncio.gather(*(self._child_locs(u) for u in children))
            for locs in results:
                leaves.extend(locs)

        filtered = [u for u in unique(leaves or first_level) if is_product_like(u)]
        logger.info(f"Found {len(filtered)} product page URLs from sitemap {sitemap_url}")
        return filtered

    async def _probe(self, probe_url: str) -> List[str]:
        if not probe_url.endswith('/robots.txt'):
            return await self.gather_from_sitemap(probe_url)
        text = await self._limited_fetch(probe_url)
        if not text or is_xml_document(text):
            return []
        declared = sitemaps_from_robots(text, probe_url)
        results = await asyncio.gather(*(self.gather_from_sitemap(u) for u in declared))
        return [u for urls in results for u in urls]

    async def discover_product_urls(self, origin: str) -> List[str]:
        """Probe the well-known sitemap locations of origin for product URLs."""
        logger.info(f"Checking sitemaps for {origin}")
        probes = [urljoin(origin, path) for path in SITEMAP_PATHS]
        results = await asyncio.gather(*(self._probe(p) for p in probes))
        urls = unique(u for found in results for u in found)
        picked = urls[:self.max_urls]
        logger.info(f"Discovered {len(urls)} product-like URLs for {origin}, keeping {len(picked)}")
        return picked

    async def _products_from_url(self, url: str) -> List[RawProduct]:
        html = await self._limited_fetch(url)
        if not html:
            return []
        try:
            return list(self.extract(html, url))
        except Exception as e:
            logger.error(f"Error extracting products from {url}: {str(e)}")
            return []

    async def fetch_products(self, urls: List[str]) -> List[RawProduct]:
        """Scrape each product URL; failures contribute nothing."""
        picked = urls[:self.max_urls]
        logger.info(f"Fetching products from {len(picked)} URLs")
        results = await asyncio.gather(*(self._products_from_url(u) for u in picked))
        products = [p for batch in results for p in batch]
        logger.info(f"Extracted {len(products)} products from sitemap URLs")
        return products

    async def discover_and_fetch(self, origin: str) -> List[RawProduct]:
        return await self.fetch_products(await self.discover_product_urls(origin))

    async def crawl_sitemap_urls(self, sitemap_urls: Iterable[str]) -> List[RawProduct]:
        """Scrape products from explicitly listed sitemaps, one origin at a time."""
        by_origin = group_by_origin(sitemap_urls)
        logger.info(f"Processing {len(by_origin)} domains with sitemaps")

        products: List[RawProduct] = []
        for index, (origin, sitemaps) in enumerate(by_origin.items(), 1):
            logger.info(f"Domain {index}/{len(by_origin)}: {origin} ({len(sitemaps)} sitemaps)")
            results = await asyncio.gather(*(self.gather_from_sitemap(u) for u in sitemaps))
            pages = unique(u for found in results for u in found)
            logger.info(f"Total unique product pages found for {origin}: {len(pages)}")
            products.extend(await self.fetch_products(pages))
        return products
