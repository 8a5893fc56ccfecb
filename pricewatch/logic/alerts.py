"""Price change alert detection."""

from __future__ import annotations

import logging

from pricewatch.db.repository import PriceRepository
from pricewatch.ingest.models import Alert
from pricewatch.logic.signals import price_change_alert
from pricewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)


class AlertDetector:
    """Compares a freshly recorded price with the observation just before it.

    Must run after the new observation is stored: the previous price is the
    row at offset 1, newest first, for the same competitor and product.
    """

    def __init__(self, repository: PriceRepository) -> None:
        self.repository = repository

    def check(self, competitor_id: int, product: str, new_price: float) -> Alert | None:
        competitor = self.repository.get_competitor(competitor_id)
        if competitor is None:
            return None
        previous = self.repository.price_observation_offset_by(competitor_id, product, 1)
        if previous is None:
            return None
        change = price_change_alert(previous.price, new_price, competitor.alert_threshold)
        if change is None:
            return None
        alert = self.repository.insert_alert(
            competitor_id,
            product,
            previous.price,
            new_price,
            change,
            utcnow(),
        )
        logger.info("Alert: %s %s changed by %.1f%%", competitor.name, product, change)
        return alert
