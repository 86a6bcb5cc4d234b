"""
Fetch every sheet once and save normalised records to cache/ so the API starts instantly
and keeps working when the sheet is unreachable.
Run:  python scripts/build_cache.py
"""
import os
import sys
import json
import logging
from typing import Any, Dict, List, Optional

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from config.settings import CACHE_DIR
from src.models.data_loader import CACHE_FILES, DataLoader, StorefrontData
from src.services.catalog_service import available_events
from src.services.discount_matcher import matches
from src.services.price_resolver import resolve_catalog


def compute_summary(data: StorefrontData) -> Dict[str, Any]:
    """Counts shown at startup and used to sanity-check a sheet edit."""
    priced = resolve_catalog(data.products, data.discounts)
    active = [d for d in data.discounts if d.is_active]
    matched = {p.discount_event for p in priced if p.is_discounted}
    return {
        "products": len(data.products),
        "categories": len(data.categories),
        "events": len(data.events),
        "discounts": len(data.discounts),
        "active_discounts": len(active),
        "discounted_products": sum(1 for p in priced if p.is_discounted),
        "discount_events": available_events(priced),
        "unmatched_discounts": [
            d.product_name for d in active if not any(matches(p.name, d.product_name) for p in data.products)
        ],
        "events_without_products": sorted({d.event for d in active if d.event} - matched),
    }


def serialize(data: StorefrontData) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "categories": [c.to_dict() for c in data.categories],
        "products": [p.to_dict() for p in data.products],
        "discounts": [d.to_dict() for d in data.discounts],
        "events": [e.to_dict() for e in data.events],
    }


def write_cache(data: StorefrontData, cache_dir: str) -> Dict[str, Any]:
    os.makedirs(cache_dir, exist_ok=True)
    for key, records in serialize(data).items():
        with open(os.path.join(cache_dir, CACHE_FILES[key]), "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
    summary = compute_summary(data)
    with open(os.path.join(cache_dir, "summary.json"), "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    return summary


def build_cache(cache_dir: Optional[str] = None, loader: Optional[DataLoader] = None) -> Dict[str, Any]:
    """Always fetches live (an existing cache is never read back into itself)."""
    cache_dir = cache_dir or CACHE_DIR
    loader = loader or DataLoader(cache_dir=cache_dir, use_cache=False)
    data = loader.load()
    return write_cache(data, cache_dir)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    summary = build_cache()
    print("Cache written to", CACHE_DIR)
    for key, value in summary.items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
