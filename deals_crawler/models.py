"""
Record types passed between the extractors, the crawl loop and the normalizer.
"""

import math
import re
from dataclasses import dataclass, field, fields
from typing import Any, Optional, Tuple

SOURCE_STRUCTURED = "structured"
SOURCE_HEURISTIC = "heuristic"

_NUMBER_RE = re.compile(r"-?\d[\d,]*\.?\d*|-?\.\d+")


def coerce_price(value: Any) -> Optional[float]:
    """
    Turn a scraped price value into a finite positive float, or None when unknown.

    Accepts numbers and strings such as "89.99", "$1,299.00" or "USD 45".
    Zero, negatives, NaN and infinities all become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if not match:
            return None
        try:
            number = float(match.group(0).replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


@dataclass(frozen=True)
class RawProduct:
    """One offer found on a page by either extraction strategy."""
    name: str = ""
    brand: str = ""
    url: str = ""
    image: str = ""
    currency: str = ""
    list_price: Optional[float] = None
    sale_price: Optional[float] = None
    availability: str = ""
    source: str = SOURCE_STRUCTURED

    def __post_init__(self):
        # Prices are either finite positive numbers or None, never NaN
        object.__setattr__(self, "list_price", coerce_price(self.list_price))
        object.__setattr__(self, "sale_price", coerce_price(self.sale_price))


@dataclass(frozen=True)
class CanonicalDeal:
    """A normalized output row. Field order is the CSV column order."""
    merchant: str
    name: str
    brand: str
    url: str
    image: str
    currency: str
    list_price: Optional[float]
    sale_price: Optional[float]
    discount_pct: float
    availability: str
    source: str

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.merchant, self.name, self.url)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass(frozen=True)
class PageOutcome:
    """Result of one fetch-and-extract step: records on success, a reason on failure."""
    url: str
    records: Tuple[RawProduct, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, url: str, reason: str) -> "PageOutcome":
        return cls(url=url, error=reason)
