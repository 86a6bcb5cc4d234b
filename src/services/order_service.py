"""
Order hand-off: pickup time, the plain-text order summary, and dispatch to the shop's
Telegram chat. Dispatch tries the deep link first and the Bot API second; if both fail
the cart is left untouched so the customer can retry.
"""

import logging
import webbrowser
import threading
import requests
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

from src.models.records import CartLine
from src.services.cart_service import CartLedger
from src.utils.helpers import format_khr, format_usd

logger = logging.getLogger(__name__)

PICKUP_NOW_LABEL = {"en": "Now", "kh": "ឥឡូវនេះ"}


def clamp_pickup_minutes(minutes: Any) -> int:
    from config.settings import PICKUP_MAX_MINUTES, PICKUP_MIN_MINUTES
    try:
        value = int(float(minutes))
    except (TypeError, ValueError):
        return PICKUP_MIN_MINUTES
    return min(PICKUP_MAX_MINUTES, max(PICKUP_MIN_MINUTES, value))


def pickup_minutes(option: Optional[str], custom_minutes: Any = None) -> int:
    """Minutes from now; 0 means 'now'. Unknown options fall back to 'now'."""
    from config.settings import PICKUP_OPTIONS
    option = str(option or "now").strip().lower()
    if option not in PICKUP_OPTIONS or option == "now":
        return 0
    if option == "other":
        return clamp_pickup_minutes(custom_minutes)
    return int(option)


def pickup_time_label(
    option: Optional[str],
    custom_minutes: Any = None,
    now: Optional[datetime] = None,
    language: str = "en",
) -> str:
    minutes = pickup_minutes(option, custom_minutes)
    if minutes == 0:
        return PICKUP_NOW_LABEL.get(language, PICKUP_NOW_LABEL["en"])
    now = now or datetime.now()
    return (now + timedelta(minutes=minutes)).strftime("%H:%M:%S")


def format_options(options: Dict[str, str]) -> str:
    return ", ".join(f"{group}: {label}" for group, label in options.items())


def build_order_summary(
    lines: Sequence[CartLine],
    pickup: Optional[str] = "now",
    custom_minutes: Any = None,
    now: Optional[datetime] = None,
    language: str = "en",
    rate: Optional[float] = None,
) -> List[str]:
    """
    Ordered text lines of the order: header, one block per cart line
    ('<qty> × <name>', price in USD and KHR, chosen options), pickup time and grand total.
    """
    if rate is None:
        from config.settings import KHR_PER_USD
        rate = KHR_PER_USD
    now = now or datetime.now()
    out = ["Order", f"Time: {now.strftime('%d/%m/%Y')}, {now.strftime('%H:%M:%S')}", ""]
    for index, line in enumerate(lines, 1):
        name = (line.name_kh or line.name) if language == "kh" else line.name
        out.append(f"Item {index}: {line.quantity} × {name}")
        out.append(f"   Price: {format_usd(line.price)} / {format_khr(line.price, rate)}")
        for group, label in line.options.items():
            out.append(f"   {group[:1].upper()}{group[1:]}: {label}")
        out.append("")
    total = sum(line.price for line in lines)
    out.append(f"Pick up time: {pickup_time_label(pickup, custom_minutes, now, language)}")
    out.append(f"Total: {format_usd(total)} / {format_khr(total, rate)}")
    out.append("Thank you!")
    return out


def build_dispatch_url(text: str, handle: Optional[str] = None) -> str:
    if handle is None:
        from config.settings import TELEGRAM_HANDLE
        handle = TELEGRAM_HANDLE
    return f"https://t.me/{handle}?text={quote(text, safe='')}"


def open_deep_link(url: str, text: str) -> bool:
    """Primary path: hand the t.me link to the user's browser / Telegram client."""
    return bool(webbrowser.open(url, new=2))


def send_via_bot_api(url: str, text: str) -> bool:
    """Fallback path: post the order to the shop chat through the Bot API, when configured."""
    from config.settings import TELEGRAM_API_BASE, TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID
    if not TELEGRAM_BOT_TOKEN or not TELEGRAM_CHAT_ID:
        return False
    r = requests.post(
        f"{TELEGRAM_API_BASE}/bot{TELEGRAM_BOT_TOKEN}/sendMessage",
        json={"chat_id": TELEGRAM_CHAT_ID, "text": text},
        timeout=10,
    )
    r.raise_for_status()
    return bool(r.json().get("ok"))


class OrderDispatcher:
    """
    Sends the cart as an order. Channels are tried in order until one succeeds;
    the ledger is cleared only after a successful dispatch.
    """

    def __init__(self, channels: Optional[List[Callable[[str, str], bool]]] = None, handle: Optional[str] = None):
        self.channels = channels if channels is not None else [open_deep_link, send_via_bot_api]
        self.handle = handle
        self._lock = threading.Lock()

    def _send(self, url: str, text: str) -> Optional[str]:
        for channel in self.channels:
            name = getattr(channel, "__name__", repr(channel))
            try:
                if channel(url, text):
                    return name
                logger.warning("Order channel %s did not accept the order", name)
            except Exception as e:
                logger.warning("Order channel %s failed: %s", name, e)
        return None

    def dispatch(
        self,
        ledger: CartLedger,
        pickup: Optional[str] = "now",
        custom_minutes: Any = None,
        language: str = "en",
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """One order in flight at a time; a caller that waits on another dispatch sees the cleared cart."""
        with self._lock:
            if len(ledger) == 0:
                return {"dispatched": False, "reason": "empty_cart", "url": None, "channel": None}

            summary = build_order_summary(ledger.lines, pickup, custom_minutes, now=now, language=language)
            text = "\n".join(summary)
            url = build_dispatch_url(text, self.handle)
            channel = self._send(url, text)
            if channel is None:
                logger.error("Order dispatch failed on every channel; cart kept for retry")
                return {"dispatched": False, "reason": "dispatch_failed", "url": url, "channel": None, "summary": summary}

            ledger.clear()
            logger.info("Order dispatched via %s", channel)
            return {"dispatched": True, "reason": None, "url": url, "channel": channel, "summary": summary}
