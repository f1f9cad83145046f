"""
Deal crawler run: seeds crawled one after another, optional sitemap scraping,
then normalization into the deals and all-products tables.
"""

import json
import logging
import os
import time
from typing import Dict, List, Optional

from .config import CrawlerSettings
from .extraction import PageExtractor
from .frontier import CrawlReport, FetchFn, FrontierWalker
from .models import RawProduct
from .normalize import FinalizedDeals, finalize
from .output import write_tables
from .sitemap import SitemapDiscoverer
from .transport import Transport
from .urls import origin_of

logger = logging.getLogger(__name__)

STATS_FILE = "run_stats.json"


class DealCrawler:
    """
    Crawls seed listing pages for discounted products.

    Seeds are processed serially so that pages of one site are never fetched
    concurrently; the only parallel fetching happens in sitemap discovery.
    """

    def __init__(self,
                 seeds: List[str],
                 sitemap_urls: Optional[List[str]] = None,
                 settings: Optional[CrawlerSettings] = None,
                 fetch: Optional[FetchFn] = None,
                 extractor: Optional[PageExtractor] = None,
                 show_progress: bool = True):
        """
        Initialize the crawler.

        Args:
            seeds: Listing page URLs, one bounded crawl per seed
            sitemap_urls: Sitemaps scraped when sitemap discovery is enabled
            settings: Crawl tunables, defaults when omitted
            fetch: Coroutine used instead of the HTTP transport
            extractor: Page extraction policy
            show_progress: Display tqdm progress bars
        """
        self.settings = settings or CrawlerSettings()
        self.seeds = [self._normalize_seed(s) for s in seeds if s and s.strip()]
        self.sitemap_urls = list(sitemap_urls or [])
        self.fetch = fetch
        self.extractor = extractor or PageExtractor()
        self.show_progress = show_progress

        self.reports: List[CrawlReport] = []
        self.sitemap_records: List[RawProduct] = []
        self.results: Optional[FinalizedDeals] = None

    @staticmethod
    def _normalize_seed(seed: str) -> str:
        """Ensure the seed carries a scheme."""
        seed = seed.strip()
        if not seed.lower().startswith(('http://', 'https://')):
            seed = 'https://' + seed
        return seed

    def _build_transport(self) -> Transport:
        return Transport(
            user_agent=self.settings.user_agent,
            timeout=self.settings.timeout,
            request_delay=self.settings.request_delay,
            impersonate_hosts=self.settings.impersonate_hosts,
            debug_dir=self.settings.debug_dir,
        )

    async def crawl(self) -> FinalizedDeals:
        """Run the whole pipeline and return the finalized tables."""
        if self.fetch is not None:
            return await self._run(self.fetch)
        async with self._build_transport() as transport:
            return await self._run(transport.fetch)

    async def _run(self, fetch: FetchFn) -> FinalizedDeals:
        start_time = time.time()
        self.reports = []
        self.sitemap_records = []
        seeds = self.seeds[:1] if self.settings.test_mode else self.seeds
        if self.settings.test_mode:
            logger.info("TEST MODE: Only processing first seed for debugging")
        logger.info(f"Starting crawl of {len(seeds)} seed URLs")

        walker = FrontierWalker(
            fetch,
            extract=self.extractor,
            max_pages=self.settings.max_pages_per_domain,
            page_pause=self.settings.page_pause,
            show_progress=self.show_progress,
        )

        collected: List[RawProduct] = []
        for index, seed in enumerate(seeds, 1):
            logger.info(f"Processing seed {index}/{len(seeds)}: {seed}")
            report = await walker.walk(seed)
            self.reports.append(report)
            logger.info(f"Found {len(report.records)} products from seed crawl "
                        f"({report.pages_fetched} pages, {report.pages_failed} failed)")
            collected.extend(report.records)

        if self.settings.enable_sitemap_discovery and not self.settings.test_mode:
            self.sitemap_records = await self._scrape_sitemaps(fetch)
            collected.extend(self.sitemap_records)
        else:
            logger.info("Skipping sitemap processing (only processing seed listing pages)")

        self.results = finalize(collected, self.settings.min_discount)

        elapsed = time.time() - start_time
        logger.info(f"Crawl completed in {elapsed:.2f} seconds")
        return self.results

    async def _scrape_sitemaps(self, fetch: FetchFn) -> List[RawProduct]:
        discoverer = SitemapDiscoverer(
            fetch,
            extract=self.extractor.extract_product_page,
            concurrency=self.settings.concurrency,
            max_urls=self.settings.max_sitemap_urls_per_domain,
        )
        if self.sitemap_urls:
            return await discoverer.crawl_sitemap_urls(self.sitemap_urls)

        records: List[RawProduct] = []
        origins = list(dict.fromkeys(origin_of(s) for s in self.seeds))
        for origin in origins:
            records.extend(await discoverer.discover_and_fetch(origin))
        return records

    def get_stats(self) -> Dict[str, object]:
        results = self.results or FinalizedDeals(deals=(), all_products=())
        return {
            "seeds": len(self.reports),
            "pages_fetched": sum(r.pages_fetched for r in self.reports),
            "pages_failed": sum(r.pages_failed for r in self.reports),
            "raw_records": sum(len(r.records) for r in self.reports) + len(self.sitemap_records),
            "sitemap_records": len(self.sitemap_records),
            "products": len(results.all_products),
            "deals": len(results.deals),
            "per_seed": {
                r.seed_url: {
                    "pages_fetched": r.pages_fetched,
                    "pages_failed": r.pages_failed,
                    "records": len(r.records),
                }
                for r in self.reports
            },
        }

    def save_results(self, output_dir: str) -> Dict[str, str]:
        """
        Write the deals and all-products tables plus run stats.

        Both tables are written even when nothing was found.
        """
        results = self.results or FinalizedDeals(deals=(), all_products=())
        paths = write_tables(output_dir, results.deals, results.all_products)

        stats_file = os.path.join(output_dir, STATS_FILE)
        with open(stats_file, 'w') as f:
            json.dump(self.get_stats(), f, indent=2)
        logger.info(f"Stats saved to {stats_file}")
        paths["stats"] = stats_file
        return paths
