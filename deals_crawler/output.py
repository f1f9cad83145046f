"""CSV tables written at the end of a run."""

import csv
import logging
import os
from typing import Dict, Iterable, List, Optional

from .models import CanonicalDeal

logger = logging.getLogger(__name__)

DEALS_FILE = "deals.csv"
ALL_PRODUCTS_FILE = "all_products.csv"


def _ensure_dir(path: str) -> None:
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def _cell(value) -> str:
    return "" if value is None else value


def export_deals_csv(path: str, rows: Iterable[CanonicalDeal]) -> int:
    """Write rows with a header, every field quoted. Returns the row count."""
    fieldnames = CanonicalDeal.field_names()
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, quoting=csv.QUOTE_ALL)
        w.writerow(fieldnames)
        for row in rows:
            w.writerow([_cell(getattr(row, name)) for name in fieldnames])
            count += 1
    return count


def write_tables(output_dir: str, deals: Iterable[CanonicalDeal],
                 all_products: Iterable[CanonicalDeal]) -> Dict[str, str]:
    """Write deals.csv and all_products.csv under output_dir and return their paths."""
    _ensure_dir(output_dir)
    deals_path = os.path.join(output_dir, DEALS_FILE)
    all_path = os.path.join(output_dir, ALL_PRODUCTS_FILE)

    n_deals = export_deals_csv(deals_path, deals)
    n_all = export_deals_csv(all_path, all_products)
    logger.info(f"Results saved: {deals_path} ({n_deals} deals), {all_path} ({n_all} products)")
    return {"deals": deals_path, "all_products": all_path}


def read_deals_csv(path: str) -> List[Dict[str, Optional[str]]]:
    """Load a table written by export_deals_csv as a list of dicts."""
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))
