"""Shared persistence step for real, synthetic and manual prices."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError

from pricewatch.db.repository import PriceRepository
from pricewatch.ingest.models import Alert, ScrapeDetail
from pricewatch.logic.alerts import AlertDetector
from pricewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)


class ObservationRecorder:
    def __init__(self, repository: PriceRepository, detector: AlertDetector | None = None) -> None:
        self.repository = repository
        self.detector = detector or AlertDetector(repository)

    def store(self, competitor_id: int, product: str, price: float) -> Alert | None:
        """Insert the observation, then check it against the previous one."""
        self.repository.insert_price_observation(competitor_id, product, price, utcnow())
        return self.detector.check(competitor_id, product, price)

    def apply(self, detail: ScrapeDetail) -> Alert | None:
        """Persist a scrape outcome. Failed outcomes only touch the competitor row."""
        if detail.success and detail.price is not None:
            alert = self.store(detail.competitor_id, detail.product, detail.price)
            self.repository.record_competitor_status(detail.competitor_id, succeeded_at=utcnow())
            return alert
        self.repository.record_competitor_status(detail.competitor_id, error=detail.error)
        return None

    async def apply_async(self, detail: ScrapeDetail) -> Alert | None:
        return await asyncio.get_running_loop().run_in_executor(None, self.apply, detail)

    async def persist(self, detail: ScrapeDetail) -> ScrapeDetail:
        """Apply ``detail``. A storage error turns it into a failed detail instead of raising."""
        try:
            await self.apply_async(detail)
        except SQLAlchemyError as exc:
            logger.exception("Could not store scrape result for %s", detail.competitor_name)
            return replace(
                detail,
                success=False,
                price=None,
                error=f"Could not store result: {exc.__class__.__name__}",
            )
        return detail
