"""Pricing advisories derived from the comparison and recent alerts."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

from pricewatch.ingest.models import Alert
from pricewatch.logic.comparison import ComparisonRow

MATCH_ABOVE_PCT = 10.0
MAINTAIN_BELOW_PCT = -5.0
FAILURES_BEFORE_INVESTIGATE = 2
PRICE_CUT_PCT = -10.0

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass(slots=True)
class Suggestion:
    id: str
    type: str
    priority: str
    title: str
    description: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_suggestions(
    comparison: Iterable[ComparisonRow],
    alerts: Iterable[Alert],
    our_prices: Mapping[str, float] | None = None,
) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    our_prices = our_prices or {}

    for row in comparison:
        our_price = row.our_price or float(our_prices.get(row.product) or 0.0)
        cheapest = row.cheapest
        if our_price and row.lowest_competitor_price:
            if row.difference > MATCH_ABOVE_PCT and cheapest is not None:
                suggestions.append(
                    Suggestion(
                        id=f"match-{row.product}",
                        type="price_match",
                        priority="high",
                        title=f"Consider matching {cheapest.name}'s price",
                        description=(
                            f"{cheapest.name} is offering {row.product} at "
                            f"${row.lowest_competitor_price:.2f}, which is {abs(row.difference):.1f}% "
                            f"lower than your price of ${our_price:.2f}."
                        ),
                        action=f"Match price of ${row.lowest_competitor_price:.2f}",
                    )
                )
            if row.difference < MAINTAIN_BELOW_PCT:
                suggestions.append(
                    Suggestion(
                        id=f"maintain-{row.product}",
                        type="maintain",
                        priority="low",
                        title="Maintain pricing advantage",
                        description=(
                            f"Your {row.product} price of ${our_price:.2f} is "
                            f"{abs(row.difference):.1f}% below the lowest competitor."
                        ),
                        action="Keep current pricing",
                    )
                )

        # runs even when no competitor price is known
        failing = [c.name for c in row.competitors if c.recent_failures > FAILURES_BEFORE_INVESTIGATE]
        if failing:
            suggestions.append(
                Suggestion(
                    id=f"scrape-issue-{row.product}",
                    type="investigate",
                    priority="medium",
                    title="Scraping issues detected",
                    description=(
                        f"{', '.join(failing)} have had multiple failed scrapes recently. "
                        "Consider updating selectors or adding manual prices."
                    ),
                    action="Review competitor configuration",
                )
            )

    for alert in alerts:
        if alert.dismissed or alert.percent_change >= PRICE_CUT_PCT:
            continue
        name = alert.competitor_name or f"Competitor {alert.competitor_id}"
        suggestions.append(
            Suggestion(
                id=f"investigate-{alert.id}",
                type="investigate",
                priority="medium",
                title=f"Investigate {name}'s price cut",
                description=(
                    f"{name} dropped {alert.product} by {abs(alert.percent_change):.1f}% "
                    f"from ${alert.old_price:.2f} to ${alert.new_price:.2f}."
                ),
                action="Review competitor strategy",
            )
        )

    unique: dict[str, Suggestion] = {}
    for suggestion in suggestions:
        unique.setdefault(suggestion.id, suggestion)
    # sorted() is stable, so generation order holds within a priority
    return sorted(unique.values(), key=lambda s: PRIORITY_ORDER[s.priority])
