"""Single-competitor price extraction with bounded retries."""

from __future__ import annotations

import asyncio
import logging
import random

from pricewatch.errors import ExtractionFailure
from pricewatch.ingest.browser import BrowserSession, PageSession
from pricewatch.ingest.joblog import JobLog
from pricewatch.ingest.models import Competitor, ScrapeDetail, ScrapeMethod
from pricewatch.ingest.pricing import is_plausible_price, parse_price
from pricewatch.ingest.settings import ScrapeSettings

logger = logging.getLogger(__name__)


class CompetitorExtractor:
    """Reads one competitor's price from its page.

    Each attempt gets its own page, so nothing leaks between retries or
    between competitors. Only the final outcome of an attempt chain is
    written to the job log; the price itself is persisted by the caller.
    """

    def __init__(
        self,
        browser: BrowserSession,
        joblog: JobLog,
        settings: ScrapeSettings | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.browser = browser
        self.joblog = joblog
        self.settings = settings or ScrapeSettings()
        self._rng = rng or random.Random()

    async def extract(self, competitor: Competitor) -> ScrapeDetail:
        max_attempts = max(1, self.settings.max_attempts)
        error = ""
        for attempt in range(1, max_attempts + 1):
            try:
                price = await self._attempt(competitor)
            except ExtractionFailure as exc:
                error = str(exc)
                logger.warning(
                    "Attempt %s/%s failed for %s: %s", attempt, max_attempts, competitor.name, error
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self.settings.retry_delay)
                continue
            logger.info("Scraped %s: $%.2f", competitor.name, price)
            await self._log(self.joblog.success, competitor.id, price)
            return _detail(competitor, success=True, price=price, attempts=attempt)

        await self._log(self.joblog.failure, competitor.id, error)
        return _detail(competitor, success=False, error=error, attempts=max_attempts)

    async def _attempt(self, competitor: Competitor) -> float:
        page = await self.browser.new_page()
        try:
            status = await page.goto(competitor.url, timeout_ms=self.settings.navigation_timeout_ms)
            if status is None:
                raise ExtractionFailure("No response received - Page load failed")
            if status >= 400:
                raise ExtractionFailure(f"HTTP {status} - Page load failed")
            await self._pause(self.settings.dwell_delay)
            await self._locate(page, competitor.selector)
            text = await page.text_content(competitor.selector)
        finally:
            await page.close()

        price = parse_price(text)
        if price is None:
            raise ExtractionFailure(f'Could not parse price from: "{(text or "").strip()}"')
        if not is_plausible_price(price):
            raise ExtractionFailure(f"Invalid price value: {price}")
        return price

    async def _locate(self, page: PageSession, selector: str) -> None:
        try:
            await page.wait_for_selector(selector, timeout_ms=self.settings.selector_timeout_ms)
        except ExtractionFailure:
            # lazy-loaded prices often need a scroll before they render
            await page.scroll_by(self.settings.scroll_pixels)
            await self._pause(self.settings.scroll_delay)
            await page.wait_for_selector(selector, timeout_ms=self.settings.retry_selector_timeout_ms)

    async def _pause(self, bounds: tuple[float, float]) -> None:
        delay = self._rng.uniform(*bounds)
        if delay > 0:
            await asyncio.sleep(delay)

    async def _log(self, write, competitor_id: int, value) -> None:
        await asyncio.get_running_loop().run_in_executor(None, write, competitor_id, value)


def _detail(competitor: Competitor, **kwargs) -> ScrapeDetail:
    return ScrapeDetail(
        competitor_id=competitor.id,
        competitor_name=competitor.name,
        product=competitor.product,
        url=competitor.url,
        method=ScrapeMethod.AUTOMATED,
        **kwargs,
    )
