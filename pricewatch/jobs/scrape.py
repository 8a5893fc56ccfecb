"""Fleet scrape entry points for the API, the scheduler and the CLI."""

from __future__ import annotations

import asyncio
import logging
import os
import random

from dotenv import load_dotenv

from pricewatch.db.repository import PriceRepository
from pricewatch.db.session import create_engine_from_env
from pricewatch.errors import InvalidInput, NotFound, OrchestrationFailure
from pricewatch.ingest.browser import BrowserFactory, PlaywrightBrowser
from pricewatch.ingest.fleet import FleetScraper
from pricewatch.ingest.models import FleetResult, ScrapeDetail, ScrapeMode
from pricewatch.ingest.settings import ScrapeSettings
from pricewatch.ingest.synthetic import SyntheticScraper
from pricewatch.utils.logs import configure_logging

logger = logging.getLogger(__name__)


def parse_mode(value: str | ScrapeMode) -> ScrapeMode:
    try:
        return ScrapeMode(value)
    except ValueError as exc:
        raise InvalidInput(f"Unknown scrape mode: {value!r}") from exc


def single_scrape_mode() -> ScrapeMode:
    return parse_mode(os.environ.get("SINGLE_SCRAPE_MODE", ScrapeMode.DEMO.value))


async def run_fleet_scrape(
    repository: PriceRepository,
    mode: str | ScrapeMode = ScrapeMode.REAL,
    *,
    settings: ScrapeSettings | None = None,
    browser_factory: BrowserFactory = PlaywrightBrowser,
    rng: random.Random | None = None,
) -> FleetResult:
    """Scrape every competitor, substituting synthetic data if the browser cannot run."""
    mode = parse_mode(mode)
    settings = settings or ScrapeSettings.from_env()
    synthetic = SyntheticScraper(repository, settings=settings, rng=rng)
    if mode is ScrapeMode.DEMO:
        return await synthetic.run()

    fleet = FleetScraper(repository, browser_factory=browser_factory, settings=settings, rng=rng)
    try:
        result = await fleet.run()
    except OrchestrationFailure as exc:
        logger.error("Real scrape failed, falling back to synthetic data: %s", exc)
    except Exception:
        logger.exception("Real scrape crashed, falling back to synthetic data")
    else:
        return result
    result = await synthetic.run(mode=ScrapeMode.REAL)
    result.fallback_used = True
    return result


async def run_single_scrape(
    repository: PriceRepository,
    competitor_id: int,
    mode: str | ScrapeMode | None = None,
    *,
    settings: ScrapeSettings | None = None,
    browser_factory: BrowserFactory = PlaywrightBrowser,
    rng: random.Random | None = None,
) -> ScrapeDetail:
    """Scrape one competitor. Other competitors are not touched."""
    mode = parse_mode(mode) if mode is not None else single_scrape_mode()
    competitor = repository.get_competitor(competitor_id)
    if competitor is None:
        raise NotFound(f"Competitor {competitor_id} not found")
    settings = settings or ScrapeSettings.from_env()
    synthetic = SyntheticScraper(repository, settings=settings, rng=rng)
    if mode is ScrapeMode.DEMO:
        return await synthetic.scrape_one(competitor)

    fleet = FleetScraper(repository, browser_factory=browser_factory, settings=settings, rng=rng)
    try:
        result = await fleet.run([competitor])
    except OrchestrationFailure as exc:
        logger.error("Real scrape of %s failed, using synthetic data: %s", competitor.name, exc)
    except Exception:
        logger.exception("Real scrape of %s crashed, using synthetic data", competitor.name)
    else:
        return result.details[0]
    return await synthetic.scrape_one(competitor)


async def run_scheduled(mode: str | None = None) -> FleetResult:
    load_dotenv()
    configure_logging()
    repository = PriceRepository(create_engine_from_env())
    result = await run_fleet_scrape(repository, mode or os.environ.get("SCRAPE_MODE", ScrapeMode.REAL.value))
    logger.info(
        "Scheduled scrape finished: %s succeeded, %s failed (fallback=%s)",
        result.success,
        result.failed,
        result.fallback_used,
    )
    return result


if __name__ == "__main__":
    asyncio.run(run_scheduled())
