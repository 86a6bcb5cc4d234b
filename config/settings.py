"""
Configuration for the Daros Coffee storefront.
Spreadsheet tabs are read through opensheet; every value can be overridden by environment variables.
"""
import os

# Project root (directory containing src/, config/, cache/, etc.)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Cache folder: normalised sheet snapshots from scripts/build_cache.py (API uses these for fast startup)
CACHE_DIR = os.environ.get("CACHE_DIR", os.path.join(PROJECT_ROOT, "cache"))

# Local key-value store standing in for the browser's localStorage
STATE_DIR = os.environ.get("STATE_DIR", os.path.join(PROJECT_ROOT, "state"))
LOCAL_STORAGE_FILE = os.path.join(STATE_DIR, "local_storage.json")
CART_STORAGE_KEY = "daros-coffee-cart"

# Google Sheet backing the menu
SHEET_ID = os.environ.get("SHEET_ID", "1IxeuobNv6Qk7-EbGn4qzTxT4xRwoMqH_1hT2-pRSpPU")
OPENSHEET_BASE = os.environ.get("OPENSHEET_BASE", "https://opensheet.elk.sh")
SHEET_TIMEOUT = 15  # seconds per sheet request

SHEET_CATEGORIES = "Categories"
SHEET_PRODUCTS = ["Sheet1", "Products", "Menu"]  # first non-empty tab wins
SHEET_DISCOUNTS = "Discount"
SHEET_EVENTS = "Events"

# Products carry up to this many "Option N - ..." column triples
MAX_OPTION_GROUPS = 10
DEFAULT_DISPLAY_ORDER = 999
PLACEHOLDER_IMAGE = "/placeholder.svg"

# Secondary currency shown next to USD prices (Cambodian riel)
KHR_PER_USD = float(os.environ.get("KHR_PER_USD", 4000))

# Promotion carousel timings (seconds)
CAROUSEL_SETTLE_DELAY = 0.7
CAROUSEL_AUTOPLAY_INTERVAL = 5.0

# Pickup time selector
PICKUP_OPTIONS = ["now", "15", "30", "45", "60", "other"]
PICKUP_MIN_MINUTES = 1
PICKUP_MAX_MINUTES = 180

# Order hand-off
TELEGRAM_HANDLE = os.environ.get("TELEGRAM_HANDLE", "Hen_Chandaro")
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID", "")
TELEGRAM_API_BASE = "https://api.telegram.org"

# Languages the storefront renders
LANGUAGES = ["en", "kh"]
