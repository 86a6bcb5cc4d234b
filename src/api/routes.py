"""
API endpoints for the Daros Coffee storefront: menu, categories, events, cart, checkout, banners.
"""

from flask import Flask, request, jsonify
from typing import Any, Optional

# Lazy-loaded storefront (set by main/tests or on first use)
_storefront: Optional[Any] = None


def get_storefront():
    """Create and cache the StorefrontService from cache/ or the live sheets (lazy load)."""
    global _storefront
    if _storefront is not None:
        return _storefront
    from src.services.storefront_service import StorefrontService
    _storefront = StorefrontService.from_loader()
    return _storefront


def set_storefront(storefront: Any) -> None:
    """Inject storefront (e.g. from tests with fixture data)."""
    global _storefront
    _storefront = storefront


def _language() -> str:
    lang = (request.args.get("lang") or "en").lower()
    return lang if lang in ("en", "kh") else "en"


def create_app() -> Flask:
    app = Flask(__name__)
    app.json.ensure_ascii = False

    @app.route("/api/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok", "message": "Daros Coffee storefront API is running"})

    # ===== Catalog =====

    @app.route("/api/catalog", methods=["GET"])
    def catalog() -> tuple:
        """Menu view. Query: search, category (default all), event (default all), lang (en|kh)."""
        try:
            svc = get_storefront()
            view = svc.catalog.aggregate(
                search=request.args.get("search"),
                category=request.args.get("category"),
                event=request.args.get("event"),
            )
            return jsonify(view.to_dict(language=_language())), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/products/<product_id>", methods=["GET"])
    def product(product_id: str) -> tuple:
        try:
            p = get_storefront().catalog.get_product(product_id)
            if p is None:
                return jsonify({"error": f"Unknown product {product_id}"}), 404
            return jsonify(p.to_dict()), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/categories", methods=["GET"])
    def categories() -> tuple:
        """Categories that currently have products, 'all' first. Query: lang."""
        try:
            return jsonify({"categories": get_storefront().catalog.get_categories(_language())}), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/events", methods=["GET"])
    def events() -> tuple:
        """Banner events plus the discount events present on priced products, with counts."""
        try:
            return jsonify(get_storefront().catalog.get_events()), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    # ===== Cart =====

    @app.route("/api/cart", methods=["GET"])
    def cart() -> tuple:
        try:
            return jsonify(get_storefront().cart.summary()), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/cart/items", methods=["POST"])
    def add_cart_item() -> tuple:
        """
        Add a line. Body: { "product_id": 3, "quantity": 2, "options": {"size": "Large"} }
        Price is locked at the product's current (possibly discounted) price.
        """
        try:
            data = request.get_json(silent=True) or {}
            product_id = data.get("product_id")
            if product_id is None:
                return jsonify({"error": "product_id is required"}), 400
            try:
                quantity = int(data.get("quantity", 1))
            except (TypeError, ValueError):
                return jsonify({"error": "quantity must be an integer"}), 400
            svc = get_storefront()
            line = svc.add_to_cart(product_id, quantity, data.get("options") or {})
            if line is None:
                return jsonify({"error": f"Unknown product {product_id}"}), 404
            return jsonify({"line": line.to_dict(), "cart": svc.cart.summary()}), 201
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/cart/items/<line_id>", methods=["PATCH"])
    def update_cart_item(line_id: str) -> tuple:
        """Body: { "quantity": 3 }. Quantities below 1 are clamped to 1."""
        try:
            data = request.get_json(silent=True) or {}
            try:
                quantity = int(data["quantity"])
            except (KeyError, TypeError, ValueError):
                return jsonify({"error": "quantity (integer) is required"}), 400
            svc = get_storefront()
            line = svc.cart.update_quantity(line_id, quantity)
            if line is None:
                return jsonify({"error": f"Unknown cart line {line_id}"}), 404
            return jsonify({"line": line.to_dict(), "cart": svc.cart.summary()}), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/cart/items/<line_id>", methods=["DELETE"])
    def remove_cart_item(line_id: str) -> tuple:
        try:
            svc = get_storefront()
            removed = svc.cart.remove(line_id)
            return jsonify({"removed": removed, "cart": svc.cart.summary()}), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/cart/checkout", methods=["POST"])
    def checkout() -> tuple:
        """
        Send the order. Body: { "pickup": "now"|"15"|"30"|"45"|"60"|"other", "custom_minutes": 20, "language": "en" }
        On failure the cart is kept so the customer can retry.
        """
        try:
            data = request.get_json(silent=True) or {}
            svc = get_storefront()
            result = svc.checkout(
                pickup=data.get("pickup", "now"),
                custom_minutes=data.get("custom_minutes"),
                language=data.get("language", "en"),
            )
            if result["reason"] == "empty_cart":
                return jsonify(result), 400
            status = 200 if result["dispatched"] else 502
            result["cart"] = svc.cart.summary()
            return jsonify(result), status
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    # ===== Promotion banners =====

    @app.route("/api/banners", methods=["GET"])
    def banners() -> tuple:
        """Carousel state; a due autoplay tick is applied before answering."""
        try:
            carousel = get_storefront().carousel
            carousel.poll()
            return jsonify(carousel.to_dict()), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/banners/advance", methods=["POST"])
    def advance_banner() -> tuple:
        """Body: { "direction": "next"|"prev" }. Ignored while a transition is in flight."""
        try:
            data = request.get_json(silent=True) or {}
            direction = data.get("direction", "next")
            if direction not in ("next", "prev"):
                return jsonify({"error": "direction must be 'next' or 'prev'"}), 400
            carousel = get_storefront().carousel
            moved = carousel.advance(direction)
            return jsonify({"moved": moved, **carousel.to_dict()}), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/api/banners/goto", methods=["POST"])
    def goto_banner() -> tuple:
        """Body: { "index": 2 }."""
        try:
            data = request.get_json(silent=True) or {}
            try:
                index = int(data["index"])
            except (KeyError, TypeError, ValueError):
                return jsonify({"error": "index (integer) is required"}), 400
            carousel = get_storefront().carousel
            moved = carousel.goto_index(index)
            return jsonify({"moved": moved, **carousel.to_dict()}), 200
        except Exception as e:
            return jsonify({"error": str(e)}), 500

    return app


# For running this file directly (Flask dev server)
if __name__ == "__main__":
    create_app().run(debug=True, host="0.0.0.0", port=5000)
