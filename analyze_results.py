#!/usr/bin/env python3
"""
Helper script to summarize a deals table written by the crawler.
"""

import argparse
from collections import Counter, defaultdict
from typing import Dict, List, Optional

from deals_crawler.output import read_deals_csv


def _as_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


def summarize_deals(rows: List[Dict[str, Optional[str]]], top: int = 5) -> Dict[str, object]:
    """Per-merchant counts and average discount, plus the deepest discounts."""
    merchant_counts = Counter(r.get("merchant") or "(unknown)" for r in rows)
    discounts = defaultdict(list)
    for r in rows:
        pct = _as_float(r.get("discount_pct"))
        if pct is not None:
            discounts[r.get("merchant") or "(unknown)"].append(pct)

    avg_discount = {
        merchant: round(sum(values) / len(values), 4)
        for merchant, values in discounts.items() if values
    }
    top_deals = sorted(rows, key=lambda r: _as_float(r.get("discount_pct")) or 0.0, reverse=True)[:top]
    return {
        "total": len(rows),
        "merchants": dict(merchant_counts.most_common()),
        "avg_discount": avg_discount,
        "top_deals": top_deals,
    }


def analyze_results(file_path: str):
    """Print a summary of the deals table."""
    rows = read_deals_csv(file_path)
    summary = summarize_deals(rows)

    print("=== Deal Analysis ===\n")
    print(f"Total deals: {summary['total']}")
    print(f"Merchants: {len(summary['merchants'])}\n")

    for merchant, count in summary["merchants"].items():
        avg = summary["avg_discount"].get(merchant, 0.0)
        print(f"  {merchant}: {count} deals, average {avg * 100:.1f}% off")

    if summary["top_deals"]:
        print("\nDeepest discounts:")
        for r in summary["top_deals"]:
            pct = _as_float(r.get("discount_pct")) or 0.0
            print(f"  {pct * 100:.1f}% off  {r.get('name')}  ({r.get('merchant')})")
            print(f"    {r.get('url')}")

    print("\n" + "-"*50)


def main():
    parser = argparse.ArgumentParser(description='Analyze crawler results')
    parser.add_argument('--file', default='out/deals.csv',
                      help='Path to deals table (default: out/deals.csv)')

    args = parser.parse_args()
    analyze_results(args.file)

if __name__ == "__main__":
    main()
