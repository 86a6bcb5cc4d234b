"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.models.records import Category, DiscountRule, Event, OptionChoice, Product


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture
def products():
    """A small priced-to-be catalog across three categories."""
    return [
        Product(
            id=1, name="Iced Latte", name_kh="ឡាតេទឹកកក", price=4.00, category="Coffee",
            description="Espresso over milk and ice", description_kh="កាហ្វេទឹកដោះគោទឹកកក",
            options={
                "size": [OptionChoice("Regular", 0.0), OptionChoice("Large", 0.5)],
                "sugar": [OptionChoice("100%", 0.0), OptionChoice("50%", 0.0)],
            },
        ),
        Product(id=2, name="Americano", price=3.00, category="Coffee", description="Black coffee"),
        Product(id=3, name="Matcha Latte", price=4.50, category="Tea", description="Green tea with milk"),
        Product(id=4, name="Butter Croissant", price=2.50, category="Pastries ", description="Flaky"),
        Product(id=5, name="Hot Chocolate", price=3.50, category="coffee", description="Cocoa and milk"),
    ]


@pytest.fixture
def discounts():
    return [
        DiscountRule(id="D1", product_name="ice latte", discount_percent=20, discounted_price=3.20,
                     original_price=4.00, duplicate_check="OK", is_active=True, event="Weekend"),
        DiscountRule(id="D2", product_name="green tea latte", discount_percent=10, discounted_price=4.05,
                     original_price=4.50, duplicate_check="OK", is_active=True, event="Tea Week"),
        DiscountRule(id="D3", product_name="americano", discount_percent=50, discounted_price=1.50,
                     original_price=3.00, duplicate_check="DUPLICATE", is_active=False, event="Weekend"),
        DiscountRule(id="D4", product_name="choco", discount_percent=25, discounted_price=2.63,
                     original_price=3.51, duplicate_check="OK", is_active=True, event="Weekend"),
    ]


@pytest.fixture
def categories():
    return [
        Category(category="Tea", category_kh="តែ", display_order=2),
        Category(category="Coffee", category_kh="កាហ្វេ", display_order=1),
        Category(category="Noodles", category_kh="មី", display_order=3),
    ]


@pytest.fixture
def events():
    return [
        Event(id=1, name="Weekend Special", abbreviation="Weekend", poster="/weekend.png"),
        Event(id=2, name="Tea Week", abbreviation="Tea", poster="/tea.png"),
        Event(id=3, name="Happy Hour", abbreviation="HH", poster="/hh.png"),
        Event(id=4, name="Grand Opening", abbreviation="GO", poster="/go.png"),
    ]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
