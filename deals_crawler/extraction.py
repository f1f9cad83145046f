"""
Composition of the two extraction strategies.

Structured data is always read; the heuristic miner only runs when a page
yields fewer than THIN_RESULT_THRESHOLD structured records.
"""

from typing import List, Optional, Protocol

from .heuristic import HeuristicExtractor
from .models import RawProduct
from .structured import StructuredExtractor

THIN_RESULT_THRESHOLD = 10


class ExtractionStrategy(Protocol):
    name: str

    def extract(self, html: str, base_url: str) -> List[RawProduct]:
        ...


def is_thin(records: List[RawProduct], threshold: int = THIN_RESULT_THRESHOLD) -> bool:
    return len(records) < threshold


class PageExtractor:
    """
    Runs structured extraction and applies the thin-result fallback.

    Args:
        structured: Strategy run on every page
        heuristic: Strategy run when the structured result is thin
        threshold: Structured record count below which the heuristic runs
    """

    def __init__(self,
                 structured: Optional[ExtractionStrategy] = None,
                 heuristic: Optional[ExtractionStrategy] = None,
                 threshold: int = THIN_RESULT_THRESHOLD):
        self.structured = structured or StructuredExtractor()
        self.heuristic = heuristic or HeuristicExtractor()
        self.threshold = threshold

    def __call__(self, html: str, base_url: str) -> List[RawProduct]:
        return self.extract_page(html, base_url)

    def extract_page(self, html: str, base_url: str) -> List[RawProduct]:
        """Listing pages: structured records plus heuristic records when thin."""
        records = list(self.structured.extract(html, base_url))
        if is_thin(records, self.threshold):
            records.extend(self.heuristic.extract(html, base_url))
        return records

    def extract_product_page(self, html: str, base_url: str) -> List[RawProduct]:
        """Single product pages: structured records, or heuristic ones when there are none."""
        records = list(self.structured.extract(html, base_url))
        if records:
            return records
        return list(self.heuristic.extract(html, base_url))
