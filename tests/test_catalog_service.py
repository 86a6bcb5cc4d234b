"""
Tests for catalog aggregation (search, category, hot deals, events).
Run from project root: pytest tests/test_catalog_service.py -v
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.services.catalog_service import (
    CatalogService,
    aggregate,
    event_counts,
    filter_by_category,
    group_by_category,
    hot_deals,
    search_products,
    visible_categories,
)
from src.services.price_resolver import resolve_catalog


@pytest.fixture
def priced(products, discounts):
    return resolve_catalog(products, discounts)


class TestSearch:
    """Test free-text search."""

    def test_empty_query_returns_all(self, priced):
        assert len(search_products(priced, "")) == len(priced)
        assert len(search_products(priced, None)) == len(priced)

    def test_name_case_insensitive(self, priced):
        names = [p.name for p in search_products(priced, "LATTE")]
        assert names == ["Iced Latte", "Matcha Latte"]

    def test_description(self, priced):
        assert len(search_products(priced, "milk")) == 3

    def test_khmer_name(self, priced):
        assert [p.id for p in search_products(priced, "ឡាតេ")] == [1]

    def test_no_match(self, priced):
        assert search_products(priced, "pizza") == []


class TestCategories:
    """Test category filtering and grouping."""

    def test_filter_normalizes_label(self, priced):
        ids = [p.id for p in filter_by_category(priced, " COFFEE ")]
        assert ids == [1, 2, 5]

    def test_group_all_first_seen_order(self, priced):
        groups = group_by_category(priced, "all")
        assert list(groups) == ["coffee", "tea", "pastries"]
        assert [p.id for p in groups["coffee"]] == [1, 2, 5]

    def test_group_selected_category(self, priced):
        groups = group_by_category(priced, "Tea")
        assert list(groups) == ["tea"]

    def test_visible_categories(self, priced, categories):
        cats = visible_categories(priced, categories)
        assert [c["id"] for c in cats] == ["all", "tea", "coffee", "pastries"]
        assert cats[0]["count"] == 5
        assert next(c for c in cats if c["id"] == "coffee")["count"] == 3

    def test_visible_categories_khmer(self, priced, categories):
        cats = visible_categories(priced, categories, language="kh")
        assert cats[0]["name"] == "ទាំងអស់"
        assert next(c for c in cats if c["id"] == "tea")["name"] == "តែ"


class TestHotDeals:
    """Test hot deals and event counts."""

    def test_all_discounted(self, priced):
        assert [p.id for p in hot_deals(priced)] == [1, 3]
        assert [p.id for p in hot_deals(priced, "all")] == [1, 3]

    def test_by_event(self, priced):
        assert [p.id for p in hot_deals(priced, "Weekend")] == [1]
        assert hot_deals(priced, "Happy Hour") == []

    def test_event_selection_is_trimmed(self, priced):
        assert [p.id for p in hot_deals(priced, " Weekend ")] == [1]
        assert [p.id for p in aggregate(priced, event="Tea Week  ").hot_deals] == [3]

    def test_event_counts(self, priced):
        assert event_counts(priced) == {"all": 2, "Weekend": 1, "Tea Week": 1}


class TestAggregate:
    """Test the full menu view."""

    def test_default_view(self, priced):
        view = aggregate(priced)
        assert view.category == "all"
        assert view.event == "all"
        assert view.total == 5
        assert len(view.hot_deals) == 2

    def test_search_and_category(self, priced):
        view = aggregate(priced, search="latte", category="Coffee")
        assert view.total == 1
        assert [p.id for p in view.groups["coffee"]] == [1]

    def test_hot_deals_follow_search(self, priced):
        view = aggregate(priced, search="matcha")
        assert [p.id for p in view.hot_deals] == [3]
        assert view.event_counts == {"all": 1, "Tea Week": 1}

    def test_empty_category_has_no_groups(self, priced):
        view = aggregate(priced, category="Noodles")
        assert view.total == 0
        assert view.to_dict()["groups"] == []

    def test_pure(self, priced):
        assert aggregate(priced, "latte", "all", "Weekend") == aggregate(priced, "latte", "all", "Weekend")

    def test_to_dict_language(self, priced):
        data = aggregate(priced, category="coffee").to_dict(language="kh")
        products = data["groups"][0]["products"]
        assert products[0]["display_name"] == "ឡាតេទឹកកក"
        assert products[1]["display_name"] == "Americano"
        assert products[0]["options"]["size"][1] == {"label": "Large", "price_delta": 0.5}


class TestCatalogService:
    """Test the service wrapper."""

    @pytest.fixture
    def service(self, products, discounts, categories, events):
        return CatalogService(products, discounts, categories, events)

    def test_products_are_priced(self, service):
        assert service.get_product(1).price == pytest.approx(3.20)

    def test_get_product_by_string_id(self, service):
        assert service.get_product("3").name == "Matcha Latte"
        assert service.get_product("abc") is None
        assert service.get_product(99) is None

    def test_get_events(self, service):
        events = service.get_events()
        assert len(events["events"]) == 4
        assert events["discount_events"] == ["Weekend", "Tea Week"]
        assert events["event_counts"]["all"] == 2

    def test_duplicate_ids_keep_first(self, products, caplog):
        from dataclasses import replace
        clash = replace(products[1], name="Cold Brew")
        with caplog.at_level("WARNING"):
            service = CatalogService(products + [clash])
        assert service.get_product(2).name == "Americano"
        assert "Duplicate product id 2" in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
