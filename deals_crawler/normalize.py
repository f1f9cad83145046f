"""
Normalization, deduplication and discount filtering of scraped records.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .config import MIN_DISCOUNT
from .models import CanonicalDeal, RawProduct
from .urls import merchant_of

logger = logging.getLogger(__name__)


def _positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def discount_pct(list_price: Optional[float], sale_price: Optional[float]) -> float:
    """
    Fraction off the list price, rounded to 4 decimals.

    0 when either price is missing or non-positive, or when the sale price
    exceeds the list price.
    """
    if not (_positive(list_price) and _positive(sale_price)) or sale_price > list_price:
        return 0.0
    return round(1 - sale_price / list_price, 4)


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def to_canonical(raw: RawProduct) -> CanonicalDeal:
    """Map a RawProduct to an output row. A malformed URL only empties `merchant`."""
    url = _clean(raw.url)
    return CanonicalDeal(
        merchant=merchant_of(url),
        name=_clean(raw.name),
        brand=_clean(raw.brand),
        url=url,
        image=_clean(raw.image),
        currency=_clean(raw.currency),
        list_price=raw.list_price,
        sale_price=raw.sale_price,
        discount_pct=discount_pct(raw.list_price, raw.sale_price),
        availability=_clean(raw.availability),
        source=_clean(raw.source) or "unknown",
    )


def dedupe(rows: Iterable[CanonicalDeal]) -> List[CanonicalDeal]:
    """Keep the first row for each (merchant, name, url) key."""
    seen = set()
    out = []
    for row in rows:
        if row.key in seen:
            continue
        seen.add(row.key)
        out.append(row)
    return out


def is_listed(row: CanonicalDeal) -> bool:
    return bool(row.name) and bool(row.url)


def is_deal(row: CanonicalDeal, min_discount: float = MIN_DISCOUNT) -> bool:
    return is_listed(row) and row.discount_pct >= min_discount


@dataclass(frozen=True)
class FinalizedDeals:
    deals: Tuple[CanonicalDeal, ...]
    all_products: Tuple[CanonicalDeal, ...]


def finalize(raw_products: Iterable[RawProduct], min_discount: float = MIN_DISCOUNT) -> FinalizedDeals:
    """Normalize, deduplicate and split records into deals and all products."""
    raw_products = list(raw_products)
    logger.info(f"Processing {len(raw_products)} total products found...")

    unique_rows = dedupe(to_canonical(p) for p in raw_products)
    logger.info(f"After deduplication: {len(unique_rows)} unique products")

    all_products = tuple(r for r in unique_rows if is_listed(r))
    deals = tuple(r for r in all_products if is_deal(r, min_discount))
    logger.info(f"{len(deals)} deals (>= {min_discount * 100:.0f}% off) out of {len(all_products)} products")
    return FinalizedDeals(deals=deals, all_products=all_products)
