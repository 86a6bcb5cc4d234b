"""
Applies the Discount sheet to the catalog.
First active rule that matches wins (sheet order), never the largest discount.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from src.models.records import DiscountRule, Product
from src.services.discount_matcher import matches

logger = logging.getLogger(__name__)


def active_rules(rules: Iterable[DiscountRule]) -> List[DiscountRule]:
    return [r for r in rules if r.is_active]


def find_rule(product: Product, rules: Sequence[DiscountRule]) -> Optional[DiscountRule]:
    """Earliest-declared active rule whose target matches the product name."""
    for rule in rules:
        if rule.is_active and matches(product.name, rule.product_name):
            return rule
    return None


def clear_discount(product: Product) -> Product:
    if not product.is_discounted:
        return product
    return replace(
        product,
        price=product.original_price if product.original_price is not None else product.price,
        original_price=None,
        discount_percent=None,
        is_discounted=False,
        discount_event=None,
    )


def resolve_product(product: Product, rules: Sequence[DiscountRule]) -> Product:
    """Priced copy of product; derived discount fields are recomputed from scratch."""
    base = clear_discount(product)
    rule = find_rule(base, rules)
    if rule is None:
        return base
    return replace(
        base,
        price=rule.discounted_price,
        original_price=rule.original_price,
        discount_percent=rule.discount_percent,
        is_discounted=True,
        discount_event=rule.event,
    )


def resolve_catalog(products: Iterable[Product], rules: Iterable[DiscountRule]) -> List[Product]:
    rules = active_rules(rules)
    priced = [resolve_product(p, rules) for p in products]
    logger.info(
        "Priced %d products against %d active discounts (%d discounted)",
        len(priced), len(rules), sum(1 for p in priced if p.is_discounted),
    )
    return priced
