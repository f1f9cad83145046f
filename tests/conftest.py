import asyncio
import json
from typing import Dict, List, Union

import pytest

from deals_crawler.errors import HttpError

BASE = "https://shop.example.com"


class FakeWeb:
    """In-memory stand-in for Transport.fetch."""

    def __init__(self, pages: Dict[str, Union[str, Exception]], latency: float = 0.0):
        self.pages = pages
        self.latency = latency
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            page = self.pages.get(url)
            if page is None:
                raise HttpError(404, url)
            if isinstance(page, Exception):
                raise page
            return page
        finally:
            self.in_flight -= 1


def product_ld(name, url, offers=None, **extra):
    node = {"@context": "https://schema.org", "@type": "Product", "name": name, "url": url}
    if offers is not None:
        node["offers"] = offers
    node.update(extra)
    return node


def ld_page(*blocks, body=""):
    scripts = "".join(
        f'<script type="application/ld+json">{b if isinstance(b, str) else json.dumps(b)}</script>'
        for b in blocks
    )
    return f"<html><head>{scripts}</head><body>{body}</body></html>"


@pytest.fixture
def make_web():
    return FakeWeb
