import random

import pytest

from fakes import FakeBrowser, FakeSite
from pricewatch.errors import InvalidInput, NotFound, OrchestrationFailure
from pricewatch.ingest.fleet import FleetScraper
from pricewatch.ingest.models import ScrapeMethod, ScrapeMode, ScrapeOutcome
from pricewatch.jobs.scrape import run_fleet_scrape, run_single_scrape

COST_PLUS = "https://costplusdrugs.com/medications/sildenafil"
RXSAVER = "https://www.rxsaver.com/drugs/sildenafil"


@pytest.mark.asyncio
async def test_fleet_persists_successes_and_isolates_failures(priced_repository, settings):
    browser = FakeBrowser(sites={COST_PLUS: FakeSite(text="$6.00"), RXSAVER: FakeSite(status=403)})
    scraper = FleetScraper(priced_repository, browser_factory=browser.factory, settings=settings)

    result = await scraper.run()

    assert (result.success, result.failed, result.total) == (1, 1, 2)
    assert [d.competitor_id for d in result.details] == [1, 2]
    assert result.finished_at >= result.started_at
    assert browser.launches == 1

    assert priced_repository.latest_price_observation(1, "ED Medication").price == pytest.approx(6.00)
    assert priced_repository.latest_price_observation(2, "ED Medication").price == pytest.approx(11.50)
    alerts = priced_repository.list_undismissed_alerts()
    assert [(a.competitor_id, a.old_price, a.new_price) for a in alerts] == [(1, 7.20, 6.00)]

    failing = priced_repository.get_competitor(2)
    assert failing.last_error == "HTTP 403 - Page load failed"
    assert priced_repository.get_competitor(1).last_success_at is not None


@pytest.mark.asyncio
async def test_fleet_includes_inactive_competitors(seeded_repository, settings):
    seeded_repository.set_competitor_active(2, False)
    browser = FakeBrowser()
    result = await FleetScraper(seeded_repository, browser_factory=browser.factory, settings=settings).run()
    assert result.total == 2


@pytest.mark.asyncio
async def test_fleet_paces_between_competitors_only(seeded_repository, monkeypatch):
    from pricewatch.ingest import fleet as fleet_module
    from pricewatch.ingest.settings import ScrapeSettings

    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(fleet_module.asyncio, "sleep", fake_sleep)
    settings = ScrapeSettings.immediate()
    settings.pacing_delay = (2.0, 5.0)
    browser = FakeBrowser()
    await FleetScraper(
        seeded_repository, browser_factory=browser.factory, settings=settings, rng=random.Random(1)
    ).run()

    pacing = [delay for delay in sleeps if delay >= 2.0]
    assert len(pacing) == 1
    assert 2.0 <= pacing[0] <= 5.0


@pytest.mark.asyncio
async def test_empty_fleet_skips_browser(repository, settings):
    browser = FakeBrowser()
    result = await FleetScraper(repository, browser_factory=browser.factory, settings=settings).run()
    assert result.total == 0
    assert result.finished_at is not None
    assert browser.launches == 0


@pytest.mark.asyncio
async def test_launch_failure_propagates_from_fleet(seeded_repository, settings):
    browser = FakeBrowser(fail_launch=True)
    with pytest.raises(OrchestrationFailure):
        await FleetScraper(seeded_repository, browser_factory=browser.factory, settings=settings).run()


@pytest.mark.asyncio
async def test_run_fleet_scrape_falls_back_to_synthetic(seeded_repository, settings):
    browser = FakeBrowser(fail_launch=True)
    result = await run_fleet_scrape(
        seeded_repository, "real", settings=settings, browser_factory=browser.factory, rng=random.Random(3)
    )

    assert result.fallback_used
    assert result.mode is ScrapeMode.REAL
    assert result.total == 2
    assert result.success + result.failed == result.total
    assert all(d.method is ScrapeMethod.SYNTHETIC for d in result.details)
    assert len(seeded_repository.list_scrape_logs()) == 2


@pytest.mark.asyncio
async def test_run_fleet_scrape_demo_never_launches(seeded_repository, settings):
    browser = FakeBrowser()
    result = await run_fleet_scrape(
        seeded_repository, "demo", settings=settings, browser_factory=browser.factory, rng=random.Random(3)
    )
    assert browser.launches == 0
    assert not result.fallback_used
    assert result.to_dict()["mode"] == "demo"


@pytest.mark.asyncio
async def test_run_fleet_scrape_rejects_unknown_mode(seeded_repository, settings):
    with pytest.raises(InvalidInput):
        await run_fleet_scrape(seeded_repository, "mock", settings=settings)


@pytest.mark.asyncio
async def test_single_scrape_real_touches_only_that_competitor(seeded_repository, settings):
    browser = FakeBrowser(sites={RXSAVER: FakeSite(text="$12.00")})
    detail = await run_single_scrape(
        seeded_repository, 2, "real", settings=settings, browser_factory=browser.factory
    )

    assert detail.success
    assert detail.competitor_id == 2
    assert browser.visits == [RXSAVER]
    assert seeded_repository.latest_price_observation(1) is None
    assert [log.competitor_id for log in seeded_repository.list_scrape_logs()] == [2]


@pytest.mark.asyncio
async def test_single_scrape_defaults_to_configured_mode(seeded_repository, settings, monkeypatch):
    monkeypatch.setenv("SINGLE_SCRAPE_MODE", "demo")
    browser = FakeBrowser()
    detail = await run_single_scrape(
        seeded_repository, 1, settings=settings, browser_factory=browser.factory, rng=random.Random(5)
    )
    assert detail.method is ScrapeMethod.SYNTHETIC
    assert browser.launches == 0
    logs = seeded_repository.list_scrape_logs()
    assert [log.competitor_id for log in logs] == [1]
    assert logs[0].outcome in {ScrapeOutcome.SUCCESS, ScrapeOutcome.FAILED}


@pytest.mark.asyncio
async def test_single_scrape_unknown_competitor(seeded_repository, settings):
    with pytest.raises(NotFound):
        await run_single_scrape(seeded_repository, 42, "demo", settings=settings)


@pytest.mark.asyncio
async def test_competitor_deleted_mid_run_does_not_stop_the_fleet(priced_repository, settings):
    sites = {COST_PLUS: FakeSite(text="$6.00", on_visit=lambda: priced_repository.delete_competitor(1))}
    browser = FakeBrowser(sites=sites)

    result = await run_fleet_scrape(
        priced_repository, "real", settings=settings, browser_factory=browser.factory
    )

    assert not result.fallback_used
    assert browser.visits == [COST_PLUS, RXSAVER]
    assert (result.success, result.failed, result.total) == (1, 1, 2)
    lost = result.details[0]
    assert lost.competitor_id == 1
    assert lost.price is None
    assert lost.error.startswith("Could not store result")
    assert result.details[1].success
    assert priced_repository.latest_price_observation(2, "ED Medication").price == pytest.approx(10.00)


@pytest.mark.asyncio
async def test_run_fleet_scrape_falls_back_on_any_launch_error(seeded_repository, settings):
    browser = FakeBrowser(launch_error=OSError("playwright driver executable not found"))
    result = await run_fleet_scrape(
        seeded_repository, "real", settings=settings, browser_factory=browser.factory, rng=random.Random(3)
    )

    assert result.fallback_used
    assert result.total == 2
    assert all(d.method is ScrapeMethod.SYNTHETIC for d in result.details)


@pytest.mark.asyncio
async def test_single_scrape_falls_back_on_any_launch_error(seeded_repository, settings):
    browser = FakeBrowser(launch_error=OSError("playwright driver executable not found"))
    detail = await run_single_scrape(
        seeded_repository, 2, "real", settings=settings, browser_factory=browser.factory, rng=random.Random(5)
    )

    assert detail.competitor_id == 2
    assert detail.method is ScrapeMethod.SYNTHETIC
    assert [log.competitor_id for log in seeded_repository.list_scrape_logs()] == [2]
