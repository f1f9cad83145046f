"""
Discounted product crawler.

Crawls seed listing pages of e-commerce sites, extracts products from JSON-LD
first and DOM heuristics second, and produces a deduplicated table of deals.
"""

from .config import CrawlerSettings
from .extraction import PageExtractor
from .frontier import FrontierWalker
from .heuristic import HeuristicExtractor
from .models import CanonicalDeal, RawProduct
from .normalize import finalize
from .pipeline import DealCrawler
from .sitemap import SitemapDiscoverer
from .structured import StructuredExtractor
from .transport import Transport

__all__ = [
    "CanonicalDeal",
    "CrawlerSettings",
    "DealCrawler",
    "FrontierWalker",
    "HeuristicExtractor",
    "PageExtractor",
    "RawProduct",
    "SitemapDiscoverer",
    "StructuredExtractor",
    "Transport",
    "finalize",
]
