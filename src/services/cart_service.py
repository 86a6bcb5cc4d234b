"""
Cart ledger and its local snapshot store.
A line's price is locked when it is added: later catalog price changes never touch it,
and quantity changes rescale it by new/old quantity.
"""

import os
import json
import uuid
import logging
from typing import Any, Callable, Dict, List, Optional

from src.models.records import CartLine, Product
from src.services.catalog_service import display_name

logger = logging.getLogger(__name__)


def new_line_id(product_id: Any) -> str:
    """Unique per add, not per product: '<product id>-<random suffix>'."""
    return f"{product_id}-{uuid.uuid4().hex[:12]}"


def clamp_quantity(value: Any) -> Optional[int]:
    """Quantity clamped to >= 1; None when it is not a number at all."""
    try:
        return max(1, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None


def build_cart_line(
    product: Product,
    quantity: int = 1,
    selections: Optional[Dict[str, str]] = None,
    line_id: Optional[str] = None,
) -> CartLine:
    """
    Cart line for a product with chosen options. Each option group defaults to its first
    choice; a label that is not offered falls back to that default.
    price = (product price + chosen option deltas) x quantity.
    """
    quantity = clamp_quantity(quantity) or 1
    selections ={str(k).lower(): v for k, v in (selections or {}).items()}
    options: Dict[str, str] = {}
    pricing: Dict[str, float] = {}
    for group, choices in product.options.items():
        if not choices:
            continue
        chosen = next((c for c in choices if c.label == selections.get(group)), choices[0])
        options[group] = chosen.label
        pricing[group] = chosen.price_delta

    unit = product.price + sum(pricing.values())
    return CartLine(
        id=line_id or new_line_id(product.id),
        product_id=product.id,
        name=display_name(product, "en"),
        name_kh=display_name(product, "kh"),
        price=unit * quantity,
        quantity=quantity,
        options=options,
        options_pricing=pricing,
    )


class CartStore:
    """
    JSON key-value file standing in for the browser's localStorage.
    Best effort: unreadable or malformed data reads as an empty cart.
    """

    def __init__(self, path: Optional[str] = None, key: Optional[str] = None):
        if path is None:
            from config.settings import LOCAL_STORAGE_FILE
            path = LOCAL_STORAGE_FILE
        if key is None:
            from config.settings import CART_STORAGE_KEY
            key = CART_STORAGE_KEY
        self.path = path
        self.key = key

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Error reading cart storage %s: %s. Starting with an empty cart.", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> List[CartLine]:
        value = self._read_all().get(self.key)
        if isinstance(value, str):
            # stored the way localStorage does: a JSON string under the key
            try:
                value = json.loads(value)
            except ValueError as e:
                logger.error("Malformed cart snapshot under %s: %s", self.key, e)
                return []
        if isinstance(value, dict):
            value = value.get("lines")
        if not isinstance(value, list):
            return []
        lines = []
        for item in value:
            try:
                lines.append(CartLine.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping malformed cart line %r: %s", item, e)
        return lines

    def save(self, snapshot: Dict[str, Any]) -> None:
        data = self._read_all()
        data[self.key] = snapshot
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error("Error saving cart to %s: %s", self.path, e)


class CartLedger:
    """Ordered cart lines. The only writer of CartLine records."""

    def __init__(
        self,
        lines: Optional[List[CartLine]] = None,
        on_change: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        self._lines: List[CartLine] = list(lines or [])
        self._on_change = on_change

    @classmethod
    def from_store(cls, store: CartStore) -> "CartLedger":
        """Read once at startup; every later mutation is written back to the store."""
        return cls(store.load(), on_change=store.save)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self._lines if line.id == line_id), None)

    def add(self, line: CartLine) -> CartLine:
        """Append as a new line; identical product/options are not merged."""
        self._lines.append(line)
        self._changed()
        return line

    def update_quantity(self, line_id: str, quantity: int) -> Optional[CartLine]:
        """
        Clamp to >= 1 and rescale the line price by new/old quantity.
        A non-numeric quantity leaves the line as it is.
        """
        line = self.get(line_id)
        if line is None:
            return None
        quantity = clamp_quantity(quantity)
        if quantity is None:
            logger.warning("Ignoring non-numeric quantity for cart line %s", line_id)
            return line
        if quantity == line.quantity:
            return line
        line.price = line.price / line.quantity * quantity
        line.quantity = quantity
        self._changed()
        return line

    def remove(self, line_id: str) -> bool:
        before = len(self._lines)
        self._lines = [line for line in self._lines if line.id != line_id]
        if len(self._lines) == before:
            return False
        self._changed()
        return True

    def clear(self) -> None:
        if not self._lines:
            return
        self._lines = []
        self._changed()

    def total(self) -> float:
        return sum(line.price for line in self._lines)

    def display_total(self, rate: Optional[float] = None) -> float:
        """Total in the secondary currency. Presentational only, never stored."""
        if rate is None:
            from config.settings import KHR_PER_USD
            rate = KHR_PER_USD
        return self.total() * rate

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def snapshot(self) -> Dict[str, Any]:
        return {"lines": [line.to_dict() for line in self._lines]}

    def summary(self, rate: Optional[float] = None) -> Dict[str, Any]:
        out = self.snapshot()
        out.update({
            "total": round(self.total(), 2),
            "display_total": round(self.display_total(rate)),
            "item_count": self.item_count(),
        })
        return out
