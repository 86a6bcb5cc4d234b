"""
Decides whether a loosely typed discount name targets a catalog product.
Three rules only: exact, whole-word containment, or equality after
known spelling variants are folded. No edit-distance scoring.
"""

import re
from typing import Dict, List

# Spelling variants seen in the Discount sheet -> catalog spelling
LEXICAL_VARIANTS: Dict[str, str] = {
    "green tea": "matcha",
    "capuccino": "cappuccino",
    "cappucino": "cappuccino",
    "american": "americano",
    "maccha": "matcha",
    "choco": "chocolate",
    "late": "latte",
    "ice": "iced",
}

# Longest variants first so "green tea" is consumed before any single-word entry
_VARIANT_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in sorted(LEXICAL_VARIANTS, key=len, reverse=True)) + r")\b"
)


def normalize_name(name: str) -> str:
    """Casefold, trim and collapse inner whitespace."""
    return " ".join(str(name or "").casefold().split())


def tokens(name: str) -> List[str]:
    return normalize_name(name).split()


def apply_variants(name: str) -> str:
    """Whole-word replacement of known variants, single pass (replacements are not re-expanded)."""
    return _VARIANT_PATTERN.sub(lambda m: LEXICAL_VARIANTS[m.group(1)], normalize_name(name))


def matches(product_name: str, discount_target_name: str) -> bool:
    product = normalize_name(product_name)
    target = normalize_name(discount_target_name)
    if not product or not target:
        return False

    if product == target:
        return True

    product_tokens = set(product.split())
    if all(tok in product_tokens for tok in target.split()):
        return True

    return apply_variants(product) == apply_variants(target)
