"""
Loads the storefront data (categories, products, discounts, events).
If cache/ exists (from scripts/build_cache.py), loads from cache for fast startup.
Otherwise fetches the Google Sheet tabs through opensheet.
Rows are normalised into strict records; malformed rows are skipped, never fatal.
"""

import os
import json
import logging
import requests
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from src.models.records import Category, DiscountRule, Event, OptionChoice, Product
from src.utils.helpers import (
    category_id, clean_text, is_blank, normalize_column, normalize_row, round_money, to_int, to_number,
)

logger = logging.getLogger(__name__)

PRODUCT_ALIASES = {
    "product_name": "name",
    "product_id": "id",
    "image_url": "image",
    "name_khmer": "name_kh",
    "category_khmer": "category_kh",
    "description_khmer": "description_kh",
}
DISCOUNT_ALIASES = {
    "id": "discount_id",
    "product_name": "discount_name",
    "discount_%": "discount_percent",
    "discount_percentage": "discount_percent",
    "discounted_price": "price",
}
CATEGORY_ALIASES = {
    "name": "category",
    "image": "image_url",
}
EVENT_ALIASES = {
    "event_id": "id",
    "event_name": "name",
    "event_abbreviation": "abbreviation",
    "poster_image_url": "poster",
    "poster_url": "poster",
}

CACHE_FILES = {
    "categories": "categories.json",
    "products": "products.json",
    "discounts": "discounts.json",
    "events": "events.json",
}


def is_header_repeat(row: Dict[str, Any], columns: Sequence[str]) -> bool:
    """A data row whose cell repeats its own column label (sheet artifact)."""
    return any(
        not is_blank(row.get(col)) and normalize_column(row.get(col)) == col
        for col in columns
    )


def fetch_sheet(sheet_name: str, sheet_id: Optional[str] = None, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
    """Rows of one sheet tab as dicts. Network, HTTP and JSON errors yield []."""
    from config.settings import OPENSHEET_BASE, SHEET_ID, SHEET_TIMEOUT
    url = f"{OPENSHEET_BASE}/{sheet_id or SHEET_ID}/{sheet_name}"
    try:
        r = requests.get(url, timeout=timeout or SHEET_TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except requests.RequestException as e:
        logger.warning("Could not fetch sheet %s: %s", sheet_name, e)
        return []
    except ValueError as e:
        logger.warning("Sheet %s did not return JSON: %s", sheet_name, e)
        return []
    if not isinstance(data, list):
        logger.warning("Sheet %s returned %s, expected a list of rows", sheet_name, type(data).__name__)
        return []
    rows = [row for row in data if isinstance(row, dict)]
    logger.info("Fetched %d rows from %s", len(rows), sheet_name)
    return rows


# ----- Categories -----

def process_categories(rows: Sequence[Dict[str, Any]]) -> List[Category]:
    """Category sheet rows -> Category records, stable-sorted by display order."""
    from config.settings import DEFAULT_DISPLAY_ORDER
    out = []
    for raw in rows or []:
        row = normalize_row(raw, CATEGORY_ALIASES)
        name = clean_text(row.get("category"))
        if not name or is_header_repeat(row, ("category",)):
            continue
        out.append(Category(
            category=name,
            category_kh=clean_text(row.get("category_kh"), name),
            image_url=clean_text(row.get("image_url")),
            display_order=to_int(row.get("display_order"), DEFAULT_DISPLAY_ORDER),
            description=clean_text(row.get("description")),
            description_kh=clean_text(row.get("description_kh")),
        ))
    return sorted(out, key=lambda c: c.display_order)


# ----- Products -----

def _split_list(text: str) -> List[str]:
    return [part.strip() for part in text.split(",")]


def parse_options(row: Dict[str, Any]) -> Dict[str, List[OptionChoice]]:
    """
    Option groups from either a pre-parsed 'options' mapping
    ({group: [{label|name, price_delta|price}]}) or 'Option N - Name/Choices/Prices' columns.
    Group keys are lower-cased; missing or unparsable prices are 0.
    """
    from config.settings import MAX_OPTION_GROUPS
    groups: Dict[str, List[OptionChoice]] = {}

    raw = row.get("options")
    if isinstance(raw, str) and raw.strip().startswith("{"):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unparsable options cell for %s", row.get("name"))
            raw = None
    if isinstance(raw, dict):
        for group, choices in raw.items():
            if not isinstance(choices, list):
                continue
            parsed = [
                OptionChoice(
                    label=clean_text(c.get("label", c.get("name"))),
                    price_delta=to_number(c.get("price_delta", c.get("price"))),
                )
                for c in choices if isinstance(c, dict)
            ]
            parsed = [c for c in parsed if c.label]
            if parsed:
                groups[clean_text(group).lower()] = parsed

    for i in range(1, MAX_OPTION_GROUPS + 1):
        group = clean_text(row.get(f"option_{i}_name"))
        choices = clean_text(row.get(f"option_{i}_choices"))
        if not group or not choices:
            continue
        labels = _split_list(choices)
        prices = [to_number(p) for p in _split_list(clean_text(row.get(f"option_{i}_prices")))]
        groups[group.lower()] = [
            OptionChoice(label=label, price_delta=prices[idx] if idx < len(prices) else 0.0)
            for idx, label in enumerate(labels) if label
        ]
    return groups


def process_products(
    rows: Sequence[Dict[str, Any]],
    categories: Optional[Sequence[Category]] = None,
) -> List[Product]:
    """
    Product sheet rows -> Product records. Rows sharing a name merge into the first
    (their option groups accumulate). Sorted by category display order, stable.
    """
    from config.settings import DEFAULT_DISPLAY_ORDER, PLACEHOLDER_IMAGE
    categories_map = {category_id(c.category): c for c in categories or []}
    merged: Dict[str, Dict[str, Any]] = {}

    for index, raw in enumerate(rows or []):
        row = normalize_row(raw, PRODUCT_ALIASES)
        name = clean_text(row.get("name"))
        if not name or is_header_repeat(row, ("name", "price")):
            continue

        if name not in merged:
            category = clean_text(row.get("category"), "Uncategorized")
            cat = categories_map.get(category_id(category))
            description = clean_text(row.get("description"))
            product_id = to_int(row.get("id"), 0)
            merged[name] = {
                "id": product_id if product_id > 0 else index + 1,
                "name": name,
                "name_kh": clean_text(row.get("name_kh"), name),
                "price": max(0.0, to_number(row.get("price"))),
                "category": category,
                "category_kh": clean_text(row.get("category_kh")) or (cat.category_kh if cat else "") or category,
                "description": description,
                "description_kh": clean_text(row.get("description_kh"), description),
                "image": clean_text(row.get("image"), PLACEHOLDER_IMAGE),
                "display_order": to_int(
                    row.get("display_order"), cat.display_order if cat else DEFAULT_DISPLAY_ORDER
                ),
                "options": {},
            }
        merged[name]["options"].update(parse_options(row))

    products = [Product(**fields) for fields in merged.values()]
    return sorted(products, key=lambda p: p.display_order)


# ----- Discounts -----

def process_discounts(rows: Sequence[Dict[str, Any]]) -> List[DiscountRule]:
    """
    Discount sheet rows -> DiscountRule records, sheet order preserved.
    Active = duplicate check "OK", percent > 0 and discounted price > 0.
    Percent >= 100 cannot be reversed into an original price and is dropped.
    """
    records = {i: normalize_row(r, DISCOUNT_ALIASES) for i, r in enumerate(rows or []) if r}
    if not records:
        return []
    df = pd.DataFrame.from_dict(records, orient="index")
    for col in ("discount_id", "discount_name", "duplicate_check", "discount_percent", "price", "event"):
        if col not in df.columns:
            df[col] = None

    header = df.apply(lambda r: is_header_repeat(r, ("discount_id", "discount_name", "event")), axis=1)
    df = df[~header].copy()
    df["discount_name"] = df["discount_name"].map(clean_text)
    missing = df["discount_name"] == ""
    if missing.any():
        logger.warning("Skipping %d discount rows without a product name", int(missing.sum()))
    df = df[~missing].copy()

    df["discount_percent"] = df["discount_percent"].map(to_number)
    df["price"] = df["price"].map(to_number)
    invalid = df["discount_percent"] >= 100
    for name in df.loc[invalid, "discount_name"]:
        logger.warning("Skipping discount %r: percent must be below 100", name)
    df = df[~invalid]

    rules = []
    for index, row in df.iterrows():
        percent = float(row["discount_percent"])
        discounted = float(row["price"])
        duplicate_check = clean_text(row["duplicate_check"])
        raw_id = records[index].get("discount_id")
        discount_id = clean_text(raw_id) if isinstance(raw_id, str) else raw_id
        if is_blank(discount_id):
            discount_id = int(index) + 1
        rules.append(DiscountRule(
            id=discount_id,
            product_name=row["discount_name"],
            discount_percent=percent,
            discounted_price=round_money(discounted),
            original_price=round_money(discounted / (1 - percent / 100)),
            duplicate_check=duplicate_check,
            is_active=duplicate_check.upper() == "OK" and percent > 0 and discounted > 0,
            event=clean_text(row["event"]),
        ))
    logger.info("Processed %d discounts (%d active)", len(rules), sum(1 for r in rules if r.is_active))
    return rules


# ----- Events -----

def process_events(rows: Sequence[Dict[str, Any]]) -> List[Event]:
    from config.settings import PLACEHOLDER_IMAGE
    out = []
    for index, raw in enumerate(rows or []):
        row = normalize_row(raw, EVENT_ALIASES)
        if is_header_repeat(row, ("id", "name")):
            continue
        name = clean_text(row.get("name"))
        if not name:
            logger.warning("Skipping event without a name at row %d", index + 1)
            continue
        out.append(Event(
            id=row.get("id") if not is_blank(row.get("id")) else index + 1,
            name=name,
            abbreviation=clean_text(row.get("abbreviation"), name),
            poster=clean_text(row.get("poster"), PLACEHOLDER_IMAGE),
        ))
    return out


@dataclass
class StorefrontData:
    categories: List[Category] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    discounts: List[DiscountRule] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)


class DataLoader:
    """
    Loads categories, products, discounts and events. Prefers cache/ if present; else fetches the sheets.
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        sheet_id: Optional[str] = None,
        fetch: Optional[Callable[..., List[Dict[str, Any]]]] = None,
        use_cache: bool = True,
    ):
        if cache_dir is None:
            from config.settings import CACHE_DIR
            cache_dir = CACHE_DIR
        self.cache_dir = cache_dir
        self.sheet_id = sheet_id
        self._fetch = fetch or fetch_sheet
        self.use_cache = use_cache
        self._data: Optional[StorefrontData] = None

    def _cache_path(self, key: str) -> str:
        return os.path.join(self.cache_dir, CACHE_FILES[key])

    def _read_cache(self, key: str) -> Optional[List[Dict[str, Any]]]:
        path = self._cache_path(key)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", path, e)
            return None
        return rows if isinstance(rows, list) else None

    def _rows(self, key: str, sheet_names: Sequence[str]) -> List[Dict[str, Any]]:
        """Cached rows for key, else the first non-empty sheet among sheet_names."""
        cached = self._read_cache(key) if self.use_cache else None
        if cached is not None:
            return cached
        for sheet in sheet_names:
            rows = self._fetch(sheet, sheet_id=self.sheet_id)
            if rows:
                logger.info("Found %s in sheet: %s", key, sheet)
                return rows
        logger.warning("No %s found in any of the sheets %s", key, list(sheet_names))
        return []

    def load_raw(self) -> Dict[str, List[Dict[str, Any]]]:
        from config.settings import SHEET_CATEGORIES, SHEET_DISCOUNTS, SHEET_EVENTS, SHEET_PRODUCTS
        return {
            "categories": self._rows("categories", [SHEET_CATEGORIES]),
            "products": self._rows("products", SHEET_PRODUCTS),
            "discounts": self._rows("discounts", [SHEET_DISCOUNTS]),
            "events": self._rows("events", [SHEET_EVENTS]),
        }

    def load(self) -> StorefrontData:
        if self._data is not None:
            return self._data
        raw = self.load_raw()
        categories = process_categories(raw["categories"])
        self._data = StorefrontData(
            categories=categories,
            products=process_products(raw["products"], categories),
            discounts=process_discounts(raw["discounts"]),
            events=process_events(raw["events"]),
        )
        logger.info(
            "Loaded %d products, %d discounts, %d categories, %d events",
            len(self._data.products), len(self._data.discounts),
            len(self._data.categories), len(self._data.events),
        )
        return self._data

    def reload(self) -> StorefrontData:
        self._data = None
        return self.load()
