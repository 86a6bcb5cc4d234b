"""
Strict internal record types. Loose sheet rows are normalised into these by the data loader;
the services only ever see these shapes.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class OptionChoice:
    label: str
    price_delta: float = 0.0


@dataclass(frozen=True)
class Product:
    """
    A catalog product. original_price / discount_percent / is_discounted / discount_event are
    derived by the price resolver and never persisted; price is always the applicable price.
    """
    id: int
    name: str
    price: float
    category: str = "Uncategorized"
    name_kh: str = ""
    category_kh: str = ""
    description: str = ""
    description_kh: str = ""
    image: str = ""
    options: Dict[str, List[OptionChoice]] = field(default_factory=dict)
    display_order: int = 999
    original_price: Optional[float] = None
    discount_percent: Optional[float] = None
    is_discounted: bool = False
    discount_event: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["options"] = {
            group: [{"label": c.label, "price_delta": c.price_delta} for c in choices]
            for group, choices in self.options.items()
        }
        return out


@dataclass(frozen=True)
class DiscountRule:
    """One row of the Discount sheet. original_price = discounted_price / (1 - percent/100), 2 dp."""
    id: Any
    product_name: str
    discount_percent: float
    discounted_price: float
    original_price: float
    duplicate_check: str = ""
    is_active: bool = False
    event: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Category:
    category: str
    category_kh: str = ""
    image_url: str = ""
    display_order: int = 999
    description: str = ""
    description_kh: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Event:
    """A promotional banner entry (Events sheet)."""
    id: Any
    name: str
    abbreviation: str = ""
    poster: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CartLine:
    """
    One cart line. price is the options-inclusive total for the current quantity,
    locked when the line was added.
    """
    id: str
    product_id: int
    name: str
    price: float
    quantity: int = 1
    name_kh: str = ""
    options: Dict[str, str] = field(default_factory=dict)
    options_pricing: Dict[str, float] = field(default_factory=dict)

    @property
    def unit_price(self) -> float:
        return self.price / self.quantity if self.quantity else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLine":
        """Accepts snake_case and the storefront's camelCase keys (productId, optionsPricing)."""
        quantity = int(data.get("quantity", 1))
        if quantity < 1:
            raise ValueError(f"invalid quantity {quantity!r}")
        return cls(
            id=str(data["id"]),
            product_id=int(data.get("product_id", data.get("productId"))),
            name=str(data.get("name", "")),
            price=float(data["price"]),
            quantity=quantity,
            name_kh=str(data.get("name_kh", "") or ""),
            options={str(k): str(v) for k, v in (data.get("options") or {}).items()},
            options_pricing={
                str(k): float(v)
                for k, v in (data.get("options_pricing", data.get("optionsPricing")) or {}).items()
            },
        )
