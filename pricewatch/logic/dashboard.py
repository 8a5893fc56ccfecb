"""Dashboard payload assembly."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from pricewatch.db.repository import PriceRepository
from pricewatch.ingest.models import Alert
from pricewatch.logic.comparison import ComparisonRow, MarketPosition, compute_comparison, market_position
from pricewatch.logic.suggestions import Suggestion, compute_suggestions
from pricewatch.utils.dates import format_timestamp, hours_ago, time_ago, utcnow

STATS_WINDOW_HOURS = 24


@dataclass(slots=True)
class ScrapeStats:
    total: int
    successful: int
    failed: int
    manual: int

    @property
    def success_rate(self) -> float:
        if not self.total:
            return 0.0
        return round(self.successful / self.total * 100, 1)


@dataclass(slots=True)
class Dashboard:
    comparison: list[ComparisonRow]
    market_position: MarketPosition
    alerts: list[Alert]
    suggestions: list[Suggestion]
    scrape_stats: ScrapeStats
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "comparison": [asdict(row) for row in self.comparison],
            "market_position": asdict(self.market_position),
            "alerts": [
                {
                    **asdict(alert),
                    "created_at": format_timestamp(alert.created_at),
                    "time_ago": time_ago(alert.created_at, now=self.generated_at),
                }
                for alert in self.alerts
            ],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "scrape_stats": {
                **asdict(self.scrape_stats),
                "success_rate": self.scrape_stats.success_rate,
            },
        }


def tracked_products(repository: PriceRepository) -> list[str]:
    """Products we price, followed by any only competitors are mapped to."""
    products = [price.product for price in repository.list_our_prices()]
    for competitor in repository.list_competitors(active_only=True):
        if competitor.product not in products:
            products.append(competitor.product)
    return products


def build_dashboard(repository: PriceRepository, *, now: datetime | None = None) -> Dashboard:
    now = now or utcnow()
    since = hours_ago(STATS_WINDOW_HOURS, now=now)
    our_prices = {price.product: price.price for price in repository.list_our_prices()}

    comparison = compute_comparison(
        tracked_products(repository), our_prices, repository.competitor_snapshots(since)
    )
    alerts = repository.list_undismissed_alerts(limit=10)
    counts = repository.scrape_stats(since)
    return Dashboard(
        comparison=comparison,
        market_position=market_position(comparison),
        alerts=alerts,
        suggestions=compute_suggestions(comparison, alerts, our_prices),
        scrape_stats=ScrapeStats(
            total=counts["total"],
            successful=counts["success"],
            failed=counts["failed"],
            manual=counts["manual"],
        ),
        generated_at=now,
    )
