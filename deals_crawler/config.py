"""
Crawler settings and logging setup.

Module-level constants hold the defaults; CrawlerSettings bundles them for a
single run so the CLI and helper scripts can override any of them.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

MAX_PAGES_PER_DOMAIN = 5
MAX_SITEMAP_URLS_PER_DOMAIN = 400
CONCURRENCY = 6
MIN_DISCOUNT = 0.30  # 30% off
REQUEST_TIMEOUT = 30
REQUEST_DELAY = (0.5, 1.5)
PAGE_PAUSE = 0.4

# Debug mode keeps the head of each fetched page under DEBUG_DIR
DEBUG_DIR = "debug"
DEBUG_SAMPLE_CHARS = 50000
DEBUG_MIN_CHARS = 1000

# Desktop browser user agent sent with every request
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


@dataclass
class CrawlerSettings:
    """
    Tunables for one crawl run.

    Args:
        max_pages_per_domain: Maximum listing pages fetched per seed
        max_sitemap_urls_per_domain: Maximum product URLs taken from one origin's sitemaps
        concurrency: Maximum in-flight fetches during sitemap fan-out
        min_discount: Minimum discount (0-1) for a row to count as a deal
        timeout: Per-request timeout in seconds
        request_delay: Random pre-request delay range in seconds
        page_pause: Fixed pause between listing pages in seconds
        user_agent: User agent to use for requests
        enable_sitemap_discovery: Also scrape product pages found through sitemaps
        test_mode: Only crawl the first seed
        impersonate_hosts: Hosts fetched through curl_cffi browser impersonation
        debug_dir: Directory for per-host HTML samples, None to disable
    """
    max_pages_per_domain: int = MAX_PAGES_PER_DOMAIN
    max_sitemap_urls_per_domain: int = MAX_SITEMAP_URLS_PER_DOMAIN
    concurrency: int = CONCURRENCY
    min_discount: float = MIN_DISCOUNT
    timeout: float = REQUEST_TIMEOUT
    request_delay: Tuple[float, float] = REQUEST_DELAY
    page_pause: float = PAGE_PAUSE
    user_agent: str = USER_AGENT
    enable_sitemap_discovery: bool = False
    test_mode: bool = False
    impersonate_hosts: Tuple[str, ...] = ()
    debug_dir: Optional[str] = None


def configure_logging(debug: bool = False) -> None:
    """Configure root logging in the crawler's format."""
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    if debug:
        logging.getLogger("deals_crawler").setLevel(logging.DEBUG)
