"""Append-only audit trail of extraction attempts."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from pricewatch.db.repository import PriceRepository
from pricewatch.ingest.models import ScrapeOutcome
from pricewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)


class JobLog:
    def __init__(self, repository: PriceRepository) -> None:
        self.repository = repository

    def record(
        self,
        competitor_id: int,
        outcome: ScrapeOutcome,
        *,
        price: float | None = None,
        error: str | None = None,
    ) -> None:
        # Audit write failures never fail the attempt being logged.
        try:
            self.repository.insert_scrape_log(competitor_id, outcome, price, error, utcnow())
        except SQLAlchemyError as exc:
            logger.error("Failed to log %s attempt for competitor %s: %s", outcome.value, competitor_id, exc)

    def success(self, competitor_id: int, price: float) -> None:
        self.record(competitor_id, ScrapeOutcome.SUCCESS, price=price)

    def failure(self, competitor_id: int, error: str) -> None:
        self.record(competitor_id, ScrapeOutcome.FAILED, error=error)

    def manual(self, competitor_id: int, price: float) -> None:
        self.record(competitor_id, ScrapeOutcome.MANUAL, price=price)
