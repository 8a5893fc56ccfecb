"""Business logic for price movement signals."""

from __future__ import annotations

import os

COMPETITIVE_BELOW = float(os.environ.get("COMPETITIVE_BELOW_PCT", -5.0))
NEUTRAL_UP_TO = float(os.environ.get("NEUTRAL_UP_TO_PCT", 10.0))
HIGHER_UP_TO = float(os.environ.get("HIGHER_UP_TO_PCT", 20.0))


def percent_change(new: float | None, old: float | None) -> float | None:
    """Signed change from ``old`` to ``new`` in percent."""
    if new is None or old in (None, 0):
        return None
    return (new - old) / old * 100


def crosses_threshold(change_pct: float | None, threshold: float) -> bool:
    if change_pct is None:
        return False
    return abs(change_pct) >= threshold


def price_change_alert(old: float | None, new: float, threshold: float) -> float | None:
    """Percent change worth alerting on, or ``None`` when there is no event."""
    change = percent_change(new, old)
    if not crosses_threshold(change, threshold):
        return None
    return change


def price_difference(our_price: float, lowest_competitor_price: float) -> float:
    if our_price <= 0 or lowest_competitor_price <= 0:
        return 0.0
    return (our_price - lowest_competitor_price) / lowest_competitor_price * 100


def price_status(difference: float) -> str:
    if difference <= COMPETITIVE_BELOW:
        return "competitive"
    if difference <= NEUTRAL_UP_TO:
        return "neutral"
    if difference <= HIGHER_UP_TO:
        return "higher"
    return "much_higher"
