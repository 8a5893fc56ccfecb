"""Simulated scrape results for demo runs and browser outages."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Sequence

from pricewatch.db.repository import PriceRepository
from pricewatch.ingest.joblog import JobLog
from pricewatch.ingest.models import Competitor, FleetResult, ScrapeDetail, ScrapeMethod, ScrapeMode
from pricewatch.ingest.recorder import ObservationRecorder
from pricewatch.ingest.settings import ScrapeSettings
from pricewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PRICES = {
    "ED Medication": 25.99,
    "Hair Loss Treatment": 45.00,
    "Skin Care": 32.50,
}
FALLBACK_PRICE = 29.99

SYNTHETIC_ERRORS = (
    "Timeout waiting for selector",
    "Navigation timeout exceeded",
    "net::ERR_CONNECTION_REFUSED",
    "Page blocked by Cloudflare",
)

FAILURE_RATE = 0.2
MAX_DRIFT = 0.05


def simulate_price(previous: float | None, product: str, rng: random.Random) -> float:
    """Drift ``previous`` by up to 5% either way, or seed from the default table."""
    if previous is None:
        return DEFAULT_PRICES.get(product, FALLBACK_PRICE)
    drift = rng.uniform(-MAX_DRIFT, MAX_DRIFT)
    return round(previous * (1 + drift), 2)


def simulate_failure(rng: random.Random) -> str | None:
    """An error message for roughly one attempt in five, else ``None``."""
    if rng.random() < FAILURE_RATE:
        return rng.choice(SYNTHETIC_ERRORS)
    return None


class SyntheticScraper:
    """Produces results shaped exactly like real ones, tagged ``synthetic``.

    Successes are stored, logged and alert-checked through the same
    recorder and job log the real fleet uses.
    """

    def __init__(
        self,
        repository: PriceRepository,
        *,
        settings: ScrapeSettings | None = None,
        rng: random.Random | None = None,
        recorder: ObservationRecorder | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or ScrapeSettings.from_env()
        self.joblog = JobLog(repository)
        self.recorder = recorder or ObservationRecorder(repository)
        self._rng = rng or random.Random()

    async def scrape_one(self, competitor: Competitor) -> ScrapeDetail:
        loop = asyncio.get_running_loop()
        latency = self._rng.uniform(*self.settings.synthetic_latency)
        if latency > 0:
            await asyncio.sleep(latency)

        error = simulate_failure(self._rng)
        if error is not None:
            await loop.run_in_executor(None, self.joblog.failure, competitor.id, error)
            detail = self._detail(competitor, success=False, error=error)
        else:
            previous = await loop.run_in_executor(
                None, self.repository.latest_price_observation, competitor.id, competitor.product
            )
            price = simulate_price(previous.price if previous else None, competitor.product, self._rng)
            await loop.run_in_executor(None, self.joblog.success, competitor.id, price)
            detail = self._detail(competitor, success=True, price=price)

        return await self.recorder.persist(detail)

    async def run(
        self,
        competitors: Sequence[Competitor] | None = None,
        *,
        mode: ScrapeMode = ScrapeMode.DEMO,
    ) -> FleetResult:
        if competitors is None:
            competitors = await asyncio.get_running_loop().run_in_executor(
                None, self.repository.list_competitors
            )
        result = FleetResult(started_at=utcnow(), mode=mode)
        for competitor in competitors:
            result.details.append(await self.scrape_one(competitor))
        result.finished_at = utcnow()
        logger.info("Synthetic scrape complete: %s/%s succeeded", result.success, result.total)
        return result

    @staticmethod
    def _detail(competitor: Competitor, **kwargs) -> ScrapeDetail:
        return ScrapeDetail(
            competitor_id=competitor.id,
            competitor_name=competitor.name,
            product=competitor.product,
            url=competitor.url,
            attempts=1,
            method=ScrapeMethod.SYNTHETIC,
            **kwargs,
        )
