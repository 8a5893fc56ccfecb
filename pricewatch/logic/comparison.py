"""Our prices against the competitor field, per product."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from pricewatch.ingest.models import CompetitorSnapshot
from pricewatch.logic.signals import price_difference, price_status


@dataclass(slots=True)
class CompetitorPrice:
    id: int
    name: str
    price: float | None
    last_scraped: datetime | None
    status: str | None
    recent_failures: int


@dataclass(slots=True)
class ComparisonRow:
    product: str
    our_price: float
    competitors: list[CompetitorPrice] = field(default_factory=list)
    avg_competitor_price: float = 0.0
    lowest_competitor_price: float = 0.0
    difference: float = 0.0
    status: str = "neutral"

    @property
    def cheapest(self) -> CompetitorPrice | None:
        priced = [c for c in self.competitors if c.price]
        if not priced:
            return None
        return min(priced, key=lambda c: c.price)


@dataclass(slots=True)
class MarketPosition:
    percentage: float
    position: str
    description: str


def compute_comparison(
    products: Iterable[str],
    our_prices: Mapping[str, float],
    competitors: Iterable[CompetitorSnapshot],
) -> list[ComparisonRow]:
    snapshots = list(competitors)
    rows: list[ComparisonRow] = []
    for product in products:
        our_price = float(our_prices.get(product) or 0.0)
        entries = [
            CompetitorPrice(
                id=snap.id,
                name=snap.name,
                price=snap.price,
                last_scraped=snap.last_scraped,
                status=snap.status,
                recent_failures=snap.recent_failures,
            )
            for snap in snapshots
            if snap.product == product
        ]
        prices = np.array([entry.price for entry in entries if entry.price], dtype=float)
        avg_price = float(prices.mean()) if prices.size else 0.0
        lowest = float(prices.min()) if prices.size else 0.0
        difference = price_difference(our_price, lowest)
        rows.append(
            ComparisonRow(
                product=product,
                our_price=our_price,
                competitors=entries,
                avg_competitor_price=avg_price,
                lowest_competitor_price=lowest,
                difference=difference,
                status=price_status(difference),
            )
        )
    return rows


def market_position(comparison: Iterable[ComparisonRow]) -> MarketPosition:
    """Total of our prices against the total of average competitor prices."""
    rows = list(comparison)
    ours = [row.our_price for row in rows if row.our_price > 0]
    averages = [row.avg_competitor_price for row in rows if row.avg_competitor_price > 0]
    if not ours or not averages:
        return MarketPosition(percentage=0.0, position="equal", description="No data available")

    total_avg = float(np.sum(averages))
    diff = (float(np.sum(ours)) - total_avg) / total_avg * 100
    percentage = round(abs(diff), 1)
    if diff > 0:
        return MarketPosition(percentage, "above", f"{percentage:.1f}% above market average")
    if diff < 0:
        return MarketPosition(percentage, "below", f"{percentage:.1f}% below market average")
    return MarketPosition(0.0, "equal", "At market average")
