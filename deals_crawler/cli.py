"""Command line entry point for the deal crawler."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import (CONCURRENCY, DEBUG_DIR, MAX_PAGES_PER_DOMAIN, MAX_SITEMAP_URLS_PER_DOMAIN,
                     MIN_DISCOUNT, REQUEST_TIMEOUT, USER_AGENT, CrawlerSettings,
                     configure_logging)
from .pipeline import DealCrawler

logger = logging.getLogger(__name__)


def read_url_list(path: str) -> List[str]:
    """Non-empty, non-comment lines of a URL list file."""
    with open(path, encoding="utf-8") as f:
        lines = [line.strip() for line in f]
    return [line for line in lines if line and not line.startswith('#')]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Discounted product crawler')
    parser.add_argument('--seeds', default='seeds.txt',
                        help='File with one listing page URL per line (default: seeds.txt)')
    parser.add_argument('--sitemaps', default='sitemaps.txt',
                        help='File with sitemap URLs, used with --enable-sitemaps (default: sitemaps.txt)')
    parser.add_argument('--output-dir', default='out',
                        help='Directory for deals.csv and all_products.csv (default: out)')
    parser.add_argument('--max-pages', type=int, default=MAX_PAGES_PER_DOMAIN,
                        help=f'Maximum pages to crawl per seed (default: {MAX_PAGES_PER_DOMAIN})')
    parser.add_argument('--max-sitemap-urls', type=int, default=MAX_SITEMAP_URLS_PER_DOMAIN,
                        help=f'Maximum sitemap product URLs per domain (default: {MAX_SITEMAP_URLS_PER_DOMAIN})')
    parser.add_argument('--concurrency', type=int, default=CONCURRENCY,
                        help=f'Maximum concurrent sitemap requests (default: {CONCURRENCY})')
    parser.add_argument('--min-discount', type=float, default=MIN_DISCOUNT,
                        help=f'Minimum discount for the deals table, 0-1 (default: {MIN_DISCOUNT})')
    parser.add_argument('--timeout', type=float, default=REQUEST_TIMEOUT,
                        help=f'Request timeout in seconds (default: {REQUEST_TIMEOUT})')
    parser.add_argument('--user-agent', default=USER_AGENT,
                        help='User agent to use for requests')
    parser.add_argument('--impersonate', nargs='*', default=[],
                        help='Hosts fetched with browser impersonation')
    parser.add_argument('--enable-sitemaps', action='store_true',
                        help='Also scrape product pages discovered through sitemaps')
    parser.add_argument('--test-mode', action='store_true',
                        help='Only process the first seed')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging and save per-host HTML samples')
    parser.add_argument('--debug-dir', default=DEBUG_DIR,
                        help='Directory for HTML samples saved in debug mode')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the crawler from command line."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        seeds = read_url_list(args.seeds)
    except FileNotFoundError:
        logger.error(f"Seed file not found: {args.seeds}")
        return 1
    logger.info(f"Found {len(seeds)} seed URLs to crawl")

    sitemaps: List[str] = []
    if args.enable_sitemaps:
        try:
            sitemaps = read_url_list(args.sitemaps)
            logger.info(f"Found {len(sitemaps)} sitemap URLs to process")
        except FileNotFoundError:
            logger.warning(f"No {args.sitemaps} file found, probing seed origins for sitemaps")

    settings = CrawlerSettings(
        max_pages_per_domain=args.max_pages,
        max_sitemap_urls_per_domain=args.max_sitemap_urls,
        concurrency=args.concurrency,
        min_discount=args.min_discount,
        timeout=args.timeout,
        user_agent=args.user_agent,
        enable_sitemap_discovery=args.enable_sitemaps,
        test_mode=args.test_mode,
        impersonate_hosts=tuple(args.impersonate),
        debug_dir=args.debug_dir if args.debug else None,
    )

    crawler = DealCrawler(seeds, sitemap_urls=sitemaps, settings=settings)
    asyncio.run(crawler.crawl())
    paths = crawler.save_results(args.output_dir)

    results = crawler.results
    logger.info(f"{paths['deals']}: {len(results.deals)} deals (>= {settings.min_discount * 100:.0f}% off)")
    logger.info(f"{paths['all_products']}: {len(results.all_products)} total products")
    for i, p in enumerate(results.all_products[:3], 1):
        price = p.sale_price or p.list_price or 'N/A'
        off = f"{p.discount_pct * 100:.1f}% off" if p.discount_pct > 0 else "no discount"
        logger.info(f"Sample {i}. {p.name} - ${price} ({off}) from {p.merchant}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
