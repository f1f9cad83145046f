"""
Bounded breadth-first crawl over one seed's listing pages.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Iterable, List, Optional, Set

import tqdm
from bs4 import BeautifulSoup

from .config import MAX_PAGES_PER_DOMAIN, PAGE_PAUSE
from .errors import CrawlError
from .extraction import PageExtractor
from .models import PageOutcome, RawProduct
from .urls import is_same_host, looks_like_pagination, try_resolve_url

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Awaitable[str]]
ExtractFn = Callable[[str, str], List[RawProduct]]


@dataclass
class Frontier:
    """Pending queue and visited set owned by a single crawl."""
    max_pages: int = MAX_PAGES_PER_DOMAIN
    queue: Deque[str] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)

    @classmethod
    def seeded(cls, seed_url: str, max_pages: int = MAX_PAGES_PER_DOMAIN) -> "Frontier":
        return cls(max_pages=max_pages, queue=deque([seed_url]))

    def has_capacity(self) -> bool:
        return bool(self.queue) and len(self.visited) < self.max_pages

    def next_url(self) -> Optional[str]:
        """Pop the next URL; None when it is empty or already visited."""
        url = self.queue.popleft()
        if not url or url in self.visited:
            return None
        self.visited.add(url)
        return url

    def extend(self, urls: Iterable[str]):
        self.queue.extend(urls)


@dataclass
class CrawlReport:
    seed_url: str
    records: List[RawProduct] = field(default_factory=list)
    outcomes: List[PageOutcome] = field(default_factory=list)

    @property
    def pages_fetched(self) -> int:
        return len(self.outcomes)

    @property
    def pages_failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)


def discover_successors(html: str, current_url: str, seed_url: str) -> List[str]:
    """
    Candidate next pages: rel=next plus every anchor, kept when they stay on
    the seed's host and look like pagination.
    """
    soup = BeautifulSoup(html, 'html.parser')
    hrefs = []
    next_link = soup.find('link', rel='next', href=True)
    if next_link:
        hrefs.append(next_link['href'])
    hrefs.extend(a['href'] for a in soup.find_all('a', href=True))

    successors = []
    seen = set()
    for href in hrefs:
        absolute = try_resolve_url(href, current_url)
        if not absolute or absolute in seen:
            continue
        seen.add(absolute)
        if looks_like_pagination(absolute, current_url) and is_same_host(absolute, seed_url):
            successors.append(absolute)
    return successors


class FrontierWalker:
    """
    Crawls listing pages starting from a seed.

    Args:
        fetch: Coroutine returning the text of a URL
        extract: Callable turning (html, url) into RawProducts
        max_pages: Maximum number of pages fetched per seed
        page_pause: Pause in seconds after each page
        show_progress: Display a tqdm progress bar per seed
    """

    def __init__(self,
                 fetch: FetchFn,
                 extract: Optional[ExtractFn] = None,
                 max_pages: int = MAX_PAGES_PER_DOMAIN,
                 page_pause: float = PAGE_PAUSE,
                 show_progress: bool = True):
        self.fetch = fetch
        self.extract = extract or PageExtractor()
        self.max_pages = max_pages
        self.page_pause = page_pause
        self.show_progress = show_progress

    async def crawl_listing(self, seed_url: str) -> List[RawProduct]:
        report = await self.walk(seed_url)
        return report.records

    async def walk(self, seed_url: str, frontier: Optional[Frontier] = None) -> CrawlReport:
        """
        Breadth-first walk from seed_url.

        A pre-seeded frontier may be passed in; its max_pages then bounds the walk.
        """
        logger.info(f"Crawling list starting from: {seed_url}")
        if frontier is None:
            frontier = Frontier.seeded(seed_url, self.max_pages)
        max_pages = frontier.max_pages
        report = CrawlReport(seed_url=seed_url)

        progress = tqdm.tqdm(
            total=max_pages,
            desc=f"Crawling {seed_url}",
            unit="pages",
            disable=not self.show_progress,
        )
        try:
            while frontier.has_capacity():
                url = frontier.next_url()
                if url is None:
                    continue
                logger.info(f"Page {len(frontier.visited)}/{max_pages}: {url}")

                outcome, html = await self._fetch_and_extract(url)
                report.outcomes.append(outcome)
                progress.update(1)

                if not outcome.ok:
                    logger.warning(f"Skipping {url}: {outcome.error}")
                    continue

                report.records.extend(outcome.records)
                frontier.extend(discover_successors(html, url, seed_url))

                # Coarse pause on top of the transport's per-request delay
                if self.page_pause > 0:
                    await asyncio.sleep(self.page_pause)
        finally:
            progress.close()

        logger.info(f"Progress for {seed_url}: Visited {report.pages_fetched} pages, "
                    f"{report.pages_failed} failed, Found {len(report.records)} products, "
                    f"Queue size: {len(frontier.queue)}")
        return report

    async def _fetch_and_extract(self, url: str):
        try:
            html = await self.fetch(url)
        except CrawlError as e:
            return PageOutcome.failed(url, str(e)), None
        try:
            records = self.extract(html, url)
        except Exception as e:
            logger.error(f"Error extracting products from {url}: {str(e)}")
            return PageOutcome.failed(url, f"extraction failed: {e}"), None
        return PageOutcome(url=url, records=tuple(records)), html
