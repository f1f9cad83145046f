#!/usr/bin/env python3
"""
Helper script to run the deal crawler over a fixed list of listing pages.
"""

import asyncio

from deals_crawler import CrawlerSettings, DealCrawler
from deals_crawler.config import configure_logging

# Sale / clearance listing pages to crawl
SEEDS = [
    "https://www.backcountry.com/rc/outdoor-gear-on-sale",
    "https://www.moosejaw.com/content/sale",
    "https://www.sierra.com/clearance~1/",
    "https://www.campsaver.com/sale",
]


async def main():
    configure_logging()

    crawler = DealCrawler(
        seeds=SEEDS,
        settings=CrawlerSettings(
            max_pages_per_domain=5,     # Keep the crawl gentle
            min_discount=0.30,
            timeout=20,
        ),
    )

    results = await crawler.crawl()
    crawler.save_results("out")

    stats = crawler.get_stats()
    print("\n=== Crawl Summary ===")
    print(f"Seeds crawled: {stats['seeds']}")
    print(f"Pages fetched: {stats['pages_fetched']} ({stats['pages_failed']} failed)")
    print(f"Products: {len(results.all_products)}")
    print(f"Deals: {len(results.deals)}")

    for seed, seed_stats in stats["per_seed"].items():
        print(f"- {seed}: {seed_stats['records']} records from {seed_stats['pages_fetched']} pages")


if __name__ == "__main__":
    asyncio.run(main())
