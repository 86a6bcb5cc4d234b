"""
Wires the loaded sheet data into the catalog, cart, banner carousel and order dispatcher
for one storefront session.
"""

import logging
from typing import Any, Dict, Optional

from src.models.data_loader import DataLoader, StorefrontData
from src.services.carousel import PromotionCarousel
from src.services.cart_service import CartLedger, CartStore, build_cart_line
from src.services.catalog_service import CatalogService
from src.services.order_service import OrderDispatcher

logger = logging.getLogger(__name__)


class StorefrontService:

    def __init__(
        self,
        data: StorefrontData,
        cart: Optional[CartLedger] = None,
        dispatcher: Optional[OrderDispatcher] = None,
        carousel: Optional[PromotionCarousel] = None,
    ):
        self.catalog = CatalogService(data.products, data.discounts, data.categories, data.events)
        self.cart = cart if cart is not None else CartLedger()
        self.dispatcher = dispatcher or OrderDispatcher()
        self.carousel = carousel or PromotionCarousel(data.events)

    @classmethod
    def from_loader(cls, loader: Optional[DataLoader] = None, store: Optional[CartStore] = None) -> "StorefrontService":
        loader = loader or DataLoader()
        store = store or CartStore()
        return cls(loader.load(), cart=CartLedger.from_store(store))

    def add_to_cart(self, product_id: Any, quantity: int = 1, options: Optional[Dict[str, str]] = None):
        """Line priced from the current priced catalog; None for an unknown product."""
        product = self.catalog.get_product(product_id)
        if product is None:
            return None
        return self.cart.add(build_cart_line(product, quantity, options))

    def checkout(self, pickup: str = "now", custom_minutes: Any = None, language: str = "en") -> Dict[str, Any]:
        return self.dispatcher.dispatch(self.cart, pickup=pickup, custom_minutes=custom_minutes, language=language)
