"""
Daros Coffee storefront - Streamlit UI.
Run from project root: python -m streamlit run src/app_streamlit.py
Requires API running: python -m src.main
"""

import os
import sys
import requests

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from src.utils.helpers import is_remote_url

API_BASE = os.environ.get("API_BASE", "http://127.0.0.1:5000")

# First request may fetch every sheet tab when cache/ is missing
DATA_TIMEOUT = 60
HEALTH_TIMEOUT = 10

TEXT = {
    "en": {
        "search": "Search menus...",
        "items_found": "items found",
        "no_items": "No items found matching your search.",
        "hot_deals": "🔥 Hot deals",
        "add": "Add to Cart",
        "quantity": "Quantity",
        "cart": "Your Cart",
        "empty": "Your cart is empty",
        "total": "Total:",
        "pickup": "Pick up time:",
        "minutes": "Minutes",
        "order": "Order via Telegram",
        "order_help": "You will be redirected to Telegram to complete your order",
        "ordered": "Order placed successfully!",
    },
    "kh": {
        "search": "ស្វែងរកម្ហូបអាហារ...",
        "items_found": "ធាតុបានរកឃើញ",
        "no_items": "រកមិនឃើញអ្វីដែលត្រូវនឹងការស្វែងរករបស់អ្នកទេ។",
        "hot_deals": "🔥 ការបញ្ចុះតម្លៃ",
        "add": "បន្ថែមទៅកន្ត្រក",
        "quantity": "បរិមាណ",
        "cart": "កន្ត្រករបស់អ្នក",
        "empty": "កន្ត្រករបស់អ្នកទទេ",
        "total": "សរុប:",
        "pickup": "ពេលយក:",
        "minutes": "នាទី",
        "order": "បញ្ជាទិញតាម Telegram",
        "order_help": "អ្នកនឹងត្រូវបានបញ្ជូនទៅ Telegram ដើម្បីបញ្ចប់ការបញ្ជាទិញ",
        "ordered": "ការកម្មង់ទទួលបានជោគជ័យ!",
    },
}

PICKUP_LABELS = {"now": "Now", "15": "15 min", "30": "30 min", "45": "45 min", "60": "1 hour", "other": "Other"}


def api_get(path: str, timeout: int = None, **kwargs):
    if timeout is None:
        timeout = DATA_TIMEOUT
    r = requests.get(f"{API_BASE}{path}", timeout=timeout, **kwargs)
    r.raise_for_status()
    return r.json()


def api_send(method: str, path: str, json_data: dict = None, timeout: int = None):
    if timeout is None:
        timeout = DATA_TIMEOUT
    r = requests.request(method, f"{API_BASE}{path}", json=json_data or {}, timeout=timeout)
    if r.status_code >= 500:
        r.raise_for_status()
    return r.json()


def run():
    import streamlit as st

    st.set_page_config(page_title="Daros Coffee", page_icon="☕", layout="wide")

    try:
        api_get("/api/health", timeout=HEALTH_TIMEOUT)
    except Exception as e:
        st.error(f"**API not reachable.** Start it first: `python -m src.main` ({e})")
        return

    lang = st.sidebar.radio("Language", ["en", "kh"], format_func=lambda x: "English" if x == "en" else "ខ្មែរ", horizontal=True)
    t = TEXT[lang]

    # ----- Promotion banner -----
    try:
        banner = api_get("/api/banners")
    except Exception as e:
        banner = None
        st.warning(f"Unable to load events: {e}")
    if banner and banner["entries"]:
        event = banner["entries"][banner["current_index"]]
        col_prev, col_img, col_next = st.columns([1, 10, 1])
        with col_img:
            caption = f"{event['name']} · {event.get('abbreviation', '')}"
            if is_remote_url(event.get("poster")):
                st.image(event["poster"], caption=caption, use_container_width=True)
            else:
                st.markdown(f"#### {caption}")
        if len(banner["entries"]) > 1:
            with col_prev:
                if st.button("◀", key="banner_prev"):
                    api_send("POST", "/api/banners/advance", {"direction": "prev"})
                    st.rerun()
            with col_next:
                if st.button("▶", key="banner_next"):
                    api_send("POST", "/api/banners/advance", {"direction": "next"})
                    st.rerun()

    # ----- Filters -----
    categories = api_get("/api/categories", params={"lang": lang}).get("categories", [])
    category = st.radio(
        "Category",
        [c["id"] for c in categories] or ["all"],
        format_func=lambda cid: next((c["name"] for c in categories if c["id"] == cid), cid.upper()),
        horizontal=True,
        label_visibility="collapsed",
    )
    search = st.text_input("Search", placeholder=t["search"], label_visibility="collapsed")
    events = api_get("/api/events")
    counts = events.get("event_counts", {})
    event = st.sidebar.selectbox(
        t["hot_deals"],
        ["all"] + events.get("discount_events", []),
        format_func=lambda e: f"{'All' if e == 'all' else e} ({counts.get(e, 0)})",
    )

    view = api_get("/api/catalog", params={"search": search, "category": category, "event": event, "lang": lang})

    if view["hot_deals"]:
        st.subheader(t["hot_deals"])
        for p in view["hot_deals"]:
            st.markdown(
                f"**{p['display_name']}** · ~~${p['original_price']:.2f}~~ **${p['price']:.2f}** "
                f"(-{p['discount_percent']:g}% · {p['discount_event']})"
            )

    st.caption(f"{view['total']} {t['items_found']}")
    if not view["groups"]:
        st.info(t["no_items"])

    for group in view["groups"]:
        label = next((c["name"] for c in categories if c["id"] == group["category"]), group["category"].upper())
        st.markdown(f"### {label}")
        cols = st.columns(4)
        for i, p in enumerate(group["products"]):
            with cols[i % 4]:
                _product_card(st, p, t)

    _cart_sidebar(st, t, lang)


def _product_card(st, p: dict, t: dict):
    if is_remote_url(p.get("image")):
        st.image(p["image"], use_container_width=True)
    st.markdown(f"**{p['display_name'].upper()}**  \n`ID: {str(p['id']).zfill(4)}`")
    if p["is_discounted"]:
        st.markdown(f"**${p['price']:.2f}** ~~${p['original_price']:.2f}~~ · -{p['discount_percent']:g}% OFF")
    else:
        st.markdown(f"**${p['price']:.2f}**")
    with st.expander(t["add"]):
        st.caption(p.get("display_description", ""))
        selections = {}
        for group, choices in p.get("options", {}).items():
            labels = [c["label"] for c in choices]
            deltas = {c["label"]: c["price_delta"] for c in choices}
            selections[group] = st.radio(
                group.capitalize(),
                labels,
                format_func=lambda x: f"{x} (+${deltas[x]:.2f})" if deltas[x] > 0 else x,
                key=f"opt-{p['id']}-{group}",
            )
        qty = st.number_input(t["quantity"], min_value=1, value=1, step=1, key=f"qty-{p['id']}")
        if st.button(t["add"], key=f"add-{p['id']}", type="primary"):
            api_send("POST", "/api/cart/items", {"product_id": p["id"], "quantity": int(qty), "options": selections})
            st.rerun()


def _cart_sidebar(st, t: dict, lang: str):
    cart = api_get("/api/cart")
    st.sidebar.markdown(f"## 🛒 {t['cart']} ({cart['item_count']})")
    if not cart["lines"]:
        st.sidebar.info(t["empty"])
        return

    for line in cart["lines"]:
        name = (line.get("name_kh") or line["name"]) if lang == "kh" else line["name"]
        st.sidebar.markdown(f"**{line['quantity']} × {name}** · ${line['price']:.2f}")
        if line["options"]:
            st.sidebar.caption(", ".join(f"{k}: {v}" for k, v in line["options"].items()))
        c1, c2, c3 = st.sidebar.columns(3)
        if c1.button("−", key=f"dec-{line['id']}", disabled=line["quantity"] <= 1):
            api_send("PATCH", f"/api/cart/items/{line['id']}", {"quantity": line["quantity"] - 1})
            st.rerun()
        if c2.button("+", key=f"inc-{line['id']}"):
            api_send("PATCH", f"/api/cart/items/{line['id']}", {"quantity": line["quantity"] + 1})
            st.rerun()
        if c3.button("🗑", key=f"del-{line['id']}"):
            api_send("DELETE", f"/api/cart/items/{line['id']}")
            st.rerun()

    st.sidebar.markdown("---")
    pickup = st.sidebar.radio(t["pickup"], list(PICKUP_LABELS), format_func=PICKUP_LABELS.get, horizontal=True)
    custom = None
    if pickup == "other":
        custom = st.sidebar.number_input(t["minutes"], min_value=1, max_value=180, value=5)
    st.sidebar.markdown(f"### {t['total']} ${cart['total']:.2f} · KHR {cart['display_total']:,}")

    if st.sidebar.button(t["order"], type="primary"):
        out = api_send("POST", "/api/cart/checkout", {"pickup": pickup, "custom_minutes": custom, "language": lang})
        if out.get("dispatched"):
            st.sidebar.success(t["ordered"])
        elif out.get("url"):
            st.sidebar.link_button(t["order"], out["url"])
        else:
            st.sidebar.error(out.get("error") or out.get("reason", "Order failed"))
    st.sidebar.caption(t["order_help"])


run()
