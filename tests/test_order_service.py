"""
Tests for pickup time, order summary and dispatch.
Run from project root: pytest tests/test_order_service.py -v
"""

import pytest
import sys
import os
import threading
import time
from datetime import datetime
from urllib.parse import unquote

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.services.cart_service import CartLedger, build_cart_line
from src.services.order_service import (
    OrderDispatcher,
    build_dispatch_url,
    build_order_summary,
    clamp_pickup_minutes,
    pickup_minutes,
    pickup_time_label,
)

NOW = datetime(2024, 3, 9, 10, 0, 0)


@pytest.fixture
def cart(products):
    ledger = CartLedger()
    ledger.add(build_cart_line(products[0], quantity=2, selections={"size": "Large"}))
    ledger.add(build_cart_line(products[1]))
    return ledger


class TestPickupTime:
    """Test pickup option handling."""

    @pytest.mark.parametrize("value, expected", [(0, 1), (-5, 1), (20, 20), (180, 180), (500, 180), ("abc", 1), (None, 1)])
    def test_clamp(self, value, expected):
        assert clamp_pickup_minutes(value) == expected

    def test_fixed_options(self):
        assert pickup_minutes("now") == 0
        assert pickup_minutes("45") == 45
        assert pickup_minutes("other", 250) == 180
        assert pickup_minutes("tomorrow") == 0

    def test_label(self):
        assert pickup_time_label("now", now=NOW) == "Now"
        assert pickup_time_label("now", now=NOW, language="kh") == "ឥឡូវនេះ"
        assert pickup_time_label("15", now=NOW) == "10:15:00"
        assert pickup_time_label("other", 0, now=NOW) == "10:01:00"


class TestOrderSummary:
    """Test the order text."""

    def test_summary_lines(self, cart):
        summary = build_order_summary(cart.lines, pickup="30", now=NOW, rate=4000)
        assert summary[:3] == ["Order", "Time: 09/03/2024, 10:00:00", ""]
        assert summary[3] == "Item 1: 2 × Iced Latte"
        assert summary[4] == "   Price: $9.00 / KHR 36,000"
        assert "   Size: Large" in summary
        assert "   Sugar: 100%" in summary
        assert "Item 2: 1 × Americano" in summary
        assert summary[-3] == "Pick up time: 10:30:00"
        assert summary[-2] == "Total: $12.00 / KHR 48,000"
        assert summary[-1] == "Thank you!"

    def test_summary_khmer_names(self, cart):
        summary = build_order_summary(cart.lines, now=NOW, language="kh", rate=4000)
        assert "Item 1: 2 × ឡាតេទឹកកក" in summary
        assert "Item 2: 1 × Americano" in summary

    def test_dispatch_url(self):
        url = build_dispatch_url("Order\nTotal: $1.00", handle="shop")
        assert url.startswith("https://t.me/shop?text=")
        assert "\n" not in url
        assert unquote(url.split("text=", 1)[1]) == "Order\nTotal: $1.00"


class TestDispatch:
    """Test dispatch outcomes and cart handling."""

    def test_empty_cart(self):
        sent = []
        result = OrderDispatcher(channels=[lambda url, text: sent.append(url) or True]).dispatch(CartLedger())
        assert result["dispatched"] is False
        assert result["reason"] == "empty_cart"
        assert sent == []

    def test_success_clears_cart(self, cart):
        def deep_link(url, text):
            return True
        result = OrderDispatcher(channels=[deep_link], handle="shop").dispatch(cart, pickup="15", now=NOW)
        assert result["dispatched"] is True
        assert result["channel"] == "deep_link"
        assert len(cart) == 0

    def test_fallback_channel(self, cart):
        def broken(url, text):
            raise OSError("no browser")

        def bot_api(url, text):
            return True
        result = OrderDispatcher(channels=[broken, bot_api]).dispatch(cart, now=NOW)
        assert result["channel"] == "bot_api"
        assert len(cart) == 0

    def test_concurrent_checkouts_send_once(self, cart):
        """Two checkouts racing on the same cart send a single order."""
        sent = []

        def slow_link(url, text):
            time.sleep(0.2)
            sent.append(text)
            return True

        dispatcher = OrderDispatcher(channels=[slow_link], handle="shop")
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(dispatcher.dispatch(cart, now=NOW)))
            for _ in range(2)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(sent) == 1
        assert sorted(r["dispatched"] for r in results) == [False, True]
        assert [r["reason"] for r in results if not r["dispatched"]] == ["empty_cart"]
        assert len(cart) == 0

    def test_total_failure_keeps_cart(self, cart):
        def refused(url, text):
            return False

        def broken(url, text):
            raise RuntimeError("down")
        before = cart.snapshot()
        result = OrderDispatcher(channels=[refused, broken], handle="shop").dispatch(cart, now=NOW)
        assert result["dispatched"] is False
        assert result["reason"] == "dispatch_failed"
        assert result["url"].startswith("https://t.me/shop?text=")
        assert cart.snapshot() == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
