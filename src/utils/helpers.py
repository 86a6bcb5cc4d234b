"""
Utility functions shared by the loaders and services.
Handles loose spreadsheet values (numbers, column names) and money formatting.
"""

import re
import pandas as pd
from typing import Any, Dict, Iterable, Optional


def normalize_column(name: Any) -> str:
    """'Discount Name ' / 'discount-name' / 'Discount_Name' -> 'discount_name'."""
    text = str(name).strip().casefold()
    text = re.sub(r"[\s\-]+", "_", text)
    return re.sub(r"_+", "_", text).strip("_")


def normalize_row(row: Dict[str, Any], aliases: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Normalise a raw sheet row's keys and resolve aliases to canonical names.
    The first non-empty value wins when several raw columns map to the same key.
    """
    aliases = aliases or {}
    out: Dict[str, Any] = {}
    for key, value in (row or {}).items():
        col = normalize_column(key)
        col = aliases.get(col, col)
        if col in out and not is_blank(out[col]):
            continue
        out[col] = value
    return out


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and not value.strip()


def clean_text(value: Any, default: str = "") -> str:
    """Trimmed string, or default for None/NaN/blank cells."""
    if is_blank(value):
        return default
    return str(value).strip()


def to_number(value: Any, default: float = 0.0) -> float:
    """Parse a spreadsheet number ('4.50', ' 3 ', '$2', 7). Unparsable -> default."""
    if isinstance(value, str):
        value = value.strip().replace(",", "").lstrip("$").rstrip("%").strip()
    parsed = pd.to_numeric(pd.Series([value]), errors="coerce").iloc[0]
    if pd.isna(parsed):
        return default
    return float(parsed)


def to_int(value: Any, default: int = 0) -> int:
    return int(to_number(value, float(default)))


def round_money(amount: float) -> float:
    """Round to cents (half away from zero, like Math.round on positive prices)."""
    return float(round(amount * 100 + (1e-9 if amount >= 0 else -1e-9))) / 100


def format_usd(amount: float) -> str:
    return f"${amount:,.2f}"


def format_khr(amount: float, rate: float) -> str:
    """USD amount expressed in riel, whole units."""
    return f"KHR {int(round(amount * rate)):,}"


def category_id(label: Any) -> str:
    """Category identifier: the raw label lower-cased and trimmed."""
    return clean_text(label).lower()


def first_seen(values: Iterable[Any]) -> list:
    """Distinct values in first-seen order."""
    seen = set()
    out = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def is_remote_url(value: Any) -> bool:
    """http(s) URL; sheet placeholders like '/placeholder.svg' are browser paths, not files."""
    return clean_text(value).lower().startswith(("http://", "https://"))
