"""Price text normalization."""

from __future__ import annotations

import math
import re

CURRENCY_SYMBOLS_RE = re.compile(r"[₱$€£¥]")
FILLER_RE = re.compile(r"USD|PHP|per\s*pill|each|from", re.IGNORECASE)
NUMBER_RE = re.compile(r"\d+\.?\d*")

MAX_PLAUSIBLE_PRICE = 100000.0


def parse_price(text: str | None) -> float | None:
    """Turn scraped price text such as ``"from $1,234.56 each"`` into a float.

    Returns ``None`` when no number can be recovered.
    """
    if not text:
        return None
    cleaned = CURRENCY_SYMBOLS_RE.sub("", text)
    cleaned = cleaned.replace(",", "")
    cleaned = re.sub(r"\s", "", cleaned)
    # whitespace is already gone, so "per pill" only survives as "perpill"
    cleaned = FILLER_RE.sub("", cleaned).strip()
    match = NUMBER_RE.search(cleaned)
    if not match:
        return None
    try:
        value = float(match.group(0))
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def is_plausible_price(value: float | None) -> bool:
    if value is None or math.isnan(value):
        return False
    return 0 < value <= MAX_PLAUSIBLE_PRICE
