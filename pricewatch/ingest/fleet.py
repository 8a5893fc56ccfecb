"""Serial extraction across every configured competitor."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Sequence

from pricewatch.db.repository import PriceRepository
from pricewatch.ingest.browser import BrowserFactory, PlaywrightBrowser
from pricewatch.ingest.extractor import CompetitorExtractor
from pricewatch.ingest.joblog import JobLog
from pricewatch.ingest.models import Competitor, FleetResult, ScrapeMode
from pricewatch.ingest.recorder import ObservationRecorder
from pricewatch.ingest.settings import ScrapeSettings
from pricewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)


class FleetScraper:
    def __init__(
        self,
        repository: PriceRepository,
        *,
        browser_factory: BrowserFactory = PlaywrightBrowser,
        settings: ScrapeSettings | None = None,
        rng: random.Random | None = None,
        recorder: ObservationRecorder | None = None,
    ) -> None:
        self.repository = repository
        self.browser_factory = browser_factory
        self.settings = settings or ScrapeSettings.from_env()
        self.joblog = JobLog(repository)
        self.recorder = recorder or ObservationRecorder(repository)
        self._rng = rng or random.Random()

    async def run(self, competitors: Sequence[Competitor] | None = None) -> FleetResult:
        """Scrape ``competitors`` (default: all of them, active or not) one at a time.

        Extraction and storage failures become failed details. ``OrchestrationFailure``
        from the browser propagates so the caller can fall back.
        """
        loop = asyncio.get_running_loop()
        if competitors is None:
            competitors = await loop.run_in_executor(None, self.repository.list_competitors)
        result = FleetResult(started_at=utcnow(), mode=ScrapeMode.REAL)
        if not competitors:
            logger.info("No competitors configured; nothing to scrape")
            result.finished_at = utcnow()
            return result

        logger.info("Starting scrape of %s competitors", len(competitors))
        async with self.browser_factory(self.settings) as browser:
            extractor = CompetitorExtractor(browser, self.joblog, self.settings, rng=self._rng)
            for index, competitor in enumerate(competitors):
                if index:
                    await asyncio.sleep(self._rng.uniform(*self.settings.pacing_delay))
                detail = await self.recorder.persist(await extractor.extract(competitor))
                result.details.append(detail)

        result.finished_at = utcnow()
        logger.info("Scrape complete: %s/%s succeeded", result.success, result.total)
        return result
