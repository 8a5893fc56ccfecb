"""Seed database with competitors, our prices and demo price history."""

from __future__ import annotations

import argparse
import random
from datetime import timedelta

from pricewatch.db.migrate import run_migrations
from pricewatch.db.repository import PriceRepository
from pricewatch.db.session import create_engine_from_env
from pricewatch.ingest import load_seed
from pricewatch.ingest.synthetic import simulate_price
from pricewatch.utils.dates import utcnow

HISTORY_DAYS = 14


def seed_history(repository: PriceRepository, rng: random.Random, days: int = HISTORY_DAYS) -> int:
    """One observation per competitor per day, drifting from the default table."""
    now = utcnow()
    inserted = 0
    for competitor in repository.list_competitors():
        if repository.latest_price_observation(competitor.id, competitor.product):
            continue
        price = None
        for offset in range(days, 0, -1):
            price = simulate_price(price, competitor.product, rng)
            repository.insert_price_observation(
                competitor.id, competitor.product, price, now - timedelta(days=offset)
            )
            inserted += 1
    return inserted


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=None, help="Only seed the first N competitors")
    parser.add_argument("--no-history", action="store_true", help="Skip demo price history")
    args = parser.parse_args()

    engine = create_engine_from_env()
    run_migrations(engine)
    repository = PriceRepository(engine)
    seed = load_seed(limit=args.limit)
    for draft in seed.competitors:
        if repository.find_competitor_by_url(draft.url) is None:
            repository.create_competitor(draft)
    for product, price in seed.our_prices.items():
        repository.set_our_price(product, price)
    if not args.no_history:
        inserted = seed_history(repository, random.Random())
        print(f"Inserted {inserted} history rows")
    print("Seed complete")


if __name__ == "__main__":
    main()
