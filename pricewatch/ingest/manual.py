"""Operator-entered prices, the recovery path for blocked pages."""

from __future__ import annotations

import logging
import math
from typing import Any

from pricewatch.db.repository import PriceRepository
from pricewatch.errors import InvalidInput, NotFound
from pricewatch.ingest.joblog import JobLog
from pricewatch.ingest.models import ManualEntryResult
from pricewatch.ingest.recorder import ObservationRecorder

logger = logging.getLogger(__name__)


def coerce_price(value: Any) -> float:
    """Accept numbers and numeric strings; reject anything not finite and positive."""
    if isinstance(value, bool):
        raise InvalidInput("Invalid price value")
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("Invalid price value") from exc
    if not math.isfinite(price) or price <= 0:
        raise InvalidInput("Invalid price value")
    return price


def record_manual_price(
    repository: PriceRepository,
    competitor_id: int,
    price: Any,
    product: str | None = None,
    *,
    recorder: ObservationRecorder | None = None,
) -> ManualEntryResult:
    value = coerce_price(price)
    competitor = repository.get_competitor(competitor_id)
    if competitor is None:
        raise NotFound(f"Competitor {competitor_id} not found")
    product_name = product or competitor.product

    recorder = recorder or ObservationRecorder(repository)
    recorder.store(competitor.id, product_name, value)
    JobLog(repository).manual(competitor.id, value)
    logger.info("Manual price for %s: $%.2f", competitor.name, value)
    return ManualEntryResult(competitor_id=competitor.id, price=value, product=product_name)
