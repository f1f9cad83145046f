"""
Heuristic DOM extraction for pages without usable structured data.

Candidate product containers are found through common e-commerce class names
(falling back to any element mentioning sale vocabulary), then name, link,
image and a list/sale price pair are mined from each container.
"""

import logging
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .models import SOURCE_HEURISTIC, RawProduct, coerce_price
from .urls import name_from_url, try_resolve_url

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 400

# Common product container selectors, most specific conventions first
PRODUCT_CONTAINER_SELECTORS = [
    '.product',
    '.product-item',
    '.product-card',
    '.item',
    '.product-tile',
    '[data-product]',
    '[data-item]',
    '.grid-item',
    '.product-grid-item',
]

# Elements scanned when no container selector matches
FALLBACK_CONTAINER_TAGS = ['a', 'article', 'li', 'div']

SALE_VOCABULARY = ['% off', 'sale', 'clearance', 'was', 'reg.', 'compare at']

# Title-like selectors tried in order
NAME_SELECTORS = [
    'h3',
    'h2',
    '.product-title',
    '.title',
    '.product-name',
    '[data-title]',
    '.card-title',
    '.product-item__title',
    '.product-card__title',
    "a[href*='/products/']",
]

PRICE_GROUP_SELECTORS = ".price, .product-price, .money, [class*='price']"
SALE_MARKUP_SELECTORS = ".product-label--on-sale, [class*='sale']"

# Narrower selectors used when the grouped price text yields nothing
CURRENT_PRICE_SELECTORS = ['.price', '.sale', '.discount', '.now', '.current-price', '[data-price]', '.money']
WAS_PRICE_SELECTORS = ['.was', '.compare-at', '.list-price', '.original-price', '.compare-price']

DOLLAR_AMOUNT_RE = re.compile(r'\$[\d,]+\.?\d*')
LOOSE_AMOUNT_RE = re.compile(r'\$?\d[\d,]*\.?\d*')


def _clean_text(s: Optional[str]) -> str:
    return re.sub(r'\s+', ' ', s).strip() if s else ""


def _outermost(nodes: List[Tag]) -> List[Tag]:
    """Drop nodes nested inside another node of the same list."""
    ids = {id(n) for n in nodes}
    return [n for n in nodes if not any(id(p) in ids for p in n.parents)]


def dollar_amounts(text: str) -> List[float]:
    """Every $ amount in text, as floats."""
    amounts = []
    for token in DOLLAR_AMOUNT_RE.findall(text or ""):
        value = coerce_price(token.replace('$', ''))
        if value is not None:
            amounts.append(value)
    return amounts


def _first_amount(text: str) -> Optional[float]:
    match = LOOSE_AMOUNT_RE.search(text or "")
    return coerce_price(match.group(0).replace('$', '')) if match else None


def _has_sale_class(el: Tag) -> bool:
    classes = el.get('class') or []
    return any('sale' in c.lower() for c in classes)


class HeuristicExtractor:
    """Extraction strategy mining product cards out of listing markup."""

    name = SOURCE_HEURISTIC

    def __init__(self, max_candidates: int = MAX_CANDIDATES):
        self.max_candidates = max_candidates

    def find_candidates(self, soup: BeautifulSoup) -> List[Tag]:
        """
        Select candidate product containers.

        The union of all container selectors is used when any of them match;
        otherwise generic elements whose text carries sale vocabulary.
        """
        candidates = soup.select(", ".join(PRODUCT_CONTAINER_SELECTORS))
        if candidates:
            logger.debug(f"Found {len(candidates)} elements with product container selectors")
        else:
            candidates = [
                el for el in soup.find_all(FALLBACK_CONTAINER_TAGS)
                if any(word in el.get_text(" ").lower() for word in SALE_VOCABULARY)
            ]
            if candidates:
                logger.debug(f"Using text-based fallback, found {len(candidates)} elements")
        return candidates[:self.max_candidates]

    def extract(self, html: str, base_url: str) -> List[RawProduct]:
        soup = BeautifulSoup(html, 'html.parser')
        candidates = self.find_candidates(soup)
        logger.info(f"Found {len(candidates)} potential product elements via heuristic on {base_url}")

        items = []
        for el in candidates:
            record = self.extract_candidate(el, base_url)
            if record is not None:
                items.append(record)

        logger.info(f"Extracted {len(items)} products from heuristic on {base_url}")
        return items

    def extract_candidate(self, el: Tag, base_url: str) -> Optional[RawProduct]:
        url = self._candidate_url(el, base_url)
        name = self._candidate_name(el) or name_from_url(url)
        sale_price, list_price = self._candidate_prices(el)

        if not (name and url and (sale_price or list_price)):
            return None

        return RawProduct(
            name=name,
            url=url,
            image=self._candidate_image(el, base_url),
            currency="USD",
            list_price=list_price,
            sale_price=sale_price,
            source=SOURCE_HEURISTIC,
        )

    @staticmethod
    def _candidate_url(el: Tag, base_url: str) -> str:
        link = el.find('a', href=True)
        href = link['href'] if link else el.get('href')
        return try_resolve_url(href, base_url) if href else ""

    @staticmethod
    def _candidate_name(el: Tag) -> str:
        for selector in NAME_SELECTORS:
            found = el.select_one(selector)
            if not found:
                continue
            name = _clean_text(found.get_text(" ")) or _clean_text(found.get('title')) \
                or _clean_text(found.get('data-title'))
            if name:
                return name
        return ""

    @staticmethod
    def _candidate_image(el: Tag, base_url: str) -> str:
        img = el.find('img')
        if not img:
            return ""
        src = img.get('src') or img.get('data-src')
        return try_resolve_url(src, base_url) if src else ""

    def _candidate_prices(self, el: Tag) -> Tuple[Optional[float], Optional[float]]:
        """Return (sale_price, list_price) for a candidate container."""
        sale_price = list_price = None

        price_nodes = _outermost(el.select(PRICE_GROUP_SELECTORS))
        price_text = " ".join(n.get_text(" ") for n in price_nodes)
        amounts = dollar_amounts(price_text)

        if len(amounts) >= 2:
            # Two prices shown: the lower one is the markdown
            sale_price, list_price = min(amounts), max(amounts)
        elif len(amounts) == 1:
            on_sale = 'sale' in price_text.lower() or _has_sale_class(el) \
                or el.select_one(SALE_MARKUP_SELECTORS) is not None
            if on_sale:
                sale_price = amounts[0]
            else:
                list_price = amounts[0]

        if not sale_price and not list_price:
            sale_price = _first_amount(self._first_text(el, CURRENT_PRICE_SELECTORS))
            list_price = _first_amount(self._first_text(el, WAS_PRICE_SELECTORS))

        return sale_price, list_price

    @staticmethod
    def _first_text(el: Tag, selectors: List[str]) -> str:
        for selector in selectors:
            found = el.select_one(selector)
            text = _clean_text(found.get_text(" ")) if found else ""
            if text:
                return text
        return ""
