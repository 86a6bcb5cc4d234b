"""
Catalog aggregation: search, category and event filters, category grouping and the
"hot deals" view. Every function is a pure function of its arguments; the hosting
app passes language / selected category / selected event explicitly.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from src.models.records import Category, DiscountRule, Event, Product
from src.services.price_resolver import resolve_catalog
from src.utils.helpers import category_id, first_seen

logger = logging.getLogger(__name__)

ALL = "all"
ALL_LABELS = {"en": "All", "kh": "ទាំងអស់"}


def is_all(selection: Optional[str]) -> bool:
    return selection is None or category_id(selection) in ("", ALL)


def localized(record: Any, attr: str, language: str = "en") -> str:
    """record.<attr>_kh for Khmer when present, else record.<attr>."""
    default = getattr(record, attr, "") or ""
    if language == "kh":
        return getattr(record, f"{attr}_kh", "") or default
    return default


def display_name(product: Product, language: str = "en") -> str:
    return localized(product, "name", language)


def search_products(products: Iterable[Product], query: Optional[str]) -> List[Product]:
    """Case-insensitive substring match on name, description and their Khmer variants."""
    q = (query or "").strip().casefold()
    if not q:
        return list(products)
    return [
        p for p in products
        if any(q in (text or "").casefold() for text in (p.name, p.name_kh, p.description, p.description_kh))
    ]


def filter_by_category(products: Iterable[Product], category: Optional[str]) -> List[Product]:
    if is_all(category):
        return list(products)
    wanted = category_id(category)
    return [p for p in products if category_id(p.category) == wanted]


def hot_deals(products: Iterable[Product], event: Optional[str] = None) -> List[Product]:
    """Discounted products, restricted to one event unless event is 'all'/unset."""
    discounted = [p for p in products if p.is_discounted]
    if event is None or event.strip() == "" or event.strip().lower() == ALL:
        return discounted
    wanted = event.strip()
    return [p for p in discounted if (p.discount_event or "").strip() == wanted]


def available_events(products: Iterable[Product]) -> List[str]:
    return first_seen(p.discount_event for p in products if p.is_discounted and p.discount_event)


def event_counts(products: Sequence[Product]) -> Dict[str, int]:
    """Per event: how many discounted products it covers, plus the 'all' total."""
    counts = {ALL: len(hot_deals(products))}
    for event in available_events(products):
        counts[event] = len(hot_deals(products, event))
    return counts


def group_by_category(products: Iterable[Product], category: Optional[str] = None) -> Dict[str, List[Product]]:
    """
    {category id: products}. With no specific category, buckets follow first-seen order;
    with one selected, a single bucket (possibly empty).
    """
    if not is_all(category):
        return {category_id(category): filter_by_category(products, category)}
    grouped: Dict[str, List[Product]] = {}
    for p in products:
        grouped.setdefault(category_id(p.category), []).append(p)
    return grouped


def visible_categories(
    products: Sequence[Product],
    categories: Sequence[Category] = (),
    language: str = "en",
) -> List[Dict[str, Any]]:
    """
    'all' first, then sheet categories (display order) that have at least one product,
    then categories only present on products.
    """
    counts: Dict[str, int] = {}
    labels: Dict[str, Product] = {}
    for p in products:
        cid = category_id(p.category)
        counts[cid] = counts.get(cid, 0) + 1
        labels.setdefault(cid, p)

    out = [{"id": ALL, "name": ALL_LABELS.get(language, ALL_LABELS["en"]), "image_url": "", "count": len(products)}]
    listed = set()
    for c in categories:
        cid = category_id(c.category)
        if cid not in counts or cid in listed:
            continue
        listed.add(cid)
        out.append({"id": cid, "name": localized(c, "category", language), "image_url": c.image_url, "count": counts[cid]})
    for cid, p in labels.items():
        if cid in listed:
            continue
        out.append({"id": cid, "name": localized(p, "category", language), "image_url": "", "count": counts[cid]})
    return out


@dataclass(frozen=True)
class CatalogView:
    """Everything the menu renders for one (search, category, event) selection."""
    search: str
    category: str
    event: str
    groups: Dict[str, List[Product]] = field(default_factory=dict)
    hot_deals: List[Product] = field(default_factory=list)
    event_counts: Dict[str, int] = field(default_factory=dict)
    total: int = 0

    def to_dict(self, language: str = "en") -> Dict[str, Any]:
        def _product(p: Product) -> Dict[str, Any]:
            out = p.to_dict()
            out["display_name"] = display_name(p, language)
            out["display_description"] = localized(p, "description", language)
            return out
        return {
            "search": self.search,
            "category": self.category,
            "event": self.event,
            "groups": [
                {"category": cid, "products": [_product(p) for p in items]}
                for cid, items in self.groups.items() if items
            ],
            "hot_deals": [_product(p) for p in self.hot_deals],
            "event_counts": self.event_counts,
            "total": self.total,
        }


def aggregate(
    priced: Sequence[Product],
    search: Optional[str] = None,
    category: Optional[str] = None,
    event: Optional[str] = None,
) -> CatalogView:
    """Pure: identical inputs give value-equal views."""
    matched = search_products(priced, search)
    groups = group_by_category(matched, category)
    return CatalogView(
        search=(search or "").strip(),
        category=ALL if is_all(category) else category_id(category),
        event=(event or ALL).strip() or ALL,
        groups=groups,
        hot_deals=hot_deals(matched, event),
        event_counts=event_counts(matched),
        total=sum(len(items) for items in groups.values()),
    )


class CatalogService:
    """
    Holds one priced snapshot of the catalog (products after discount resolution)
    and answers menu queries over it.
    """

    def __init__(
        self,
        products: Sequence[Product],
        discounts: Sequence[DiscountRule] = (),
        categories: Sequence[Category] = (),
        events: Sequence[Event] = (),
    ):
        self.categories = list(categories)
        self.discounts = list(discounts)
        self.events = list(events)
        self.products = resolve_catalog(products, self.discounts)
        self._by_id: Dict[Any, Product] = {}
        for p in self.products:
            if p.id in self._by_id:
                logger.warning(
                    "Duplicate product id %s (%r and %r); keeping the first",
                    p.id, self._by_id[p.id].name, p.name,
                )
                continue
            self._by_id[p.id] = p

    def get_product(self, product_id: Any) -> Optional[Product]:
        try:
            return self._by_id.get(int(product_id))
        except (TypeError, ValueError):
            return None

    def aggregate(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        event: Optional[str] = None,
    ) -> CatalogView:
        return aggregate(self.products, search, category, event)

    def get_categories(self, language: str = "en") -> List[Dict[str, Any]]:
        return visible_categories(self.products, self.categories, language)

    def get_events(self) -> Dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "discount_events": available_events(self.products),
            "event_counts": event_counts(self.products),
        }
