from datetime import timedelta

import pytest

from pricewatch.errors import NotFound
from pricewatch.ingest.joblog import JobLog
from pricewatch.logic.dashboard import build_dashboard
from pricewatch.utils.dates import hours_ago, utcnow


def test_delete_cascades_history_logs_and_alerts(priced_repository):
    priced_repository.insert_price_observation(1, "ED Medication", 5.00, utcnow())
    JobLog(priced_repository).success(1, 5.00)
    priced_repository.insert_alert(1, "ED Medication", 7.20, 5.00, -30.6, utcnow())

    priced_repository.delete_competitor(1)

    assert priced_repository.get_competitor(1) is None
    assert priced_repository.latest_price_observation(1) is None
    assert priced_repository.list_scrape_logs(competitor_id=1) == []
    assert priced_repository.list_undismissed_alerts() == []
    assert priced_repository.latest_price_observation(2) is not None
    with pytest.raises(NotFound):
        priced_repository.delete_competitor(1)


def test_recent_failure_count_window(seeded_repository):
    now = utcnow()
    for hours in (1, 2, 30):
        seeded_repository.insert_scrape_log(1, "failed", None, "boom", now - timedelta(hours=hours))
    seeded_repository.insert_scrape_log(1, "success", 9.0, None, now)
    assert seeded_repository.recent_failure_count(1, hours_ago(24, now=now)) == 2


def test_price_history_filters_by_product(priced_repository):
    priced_repository.insert_price_observation(1, "Hair Loss Treatment", 14.00, utcnow())
    since = hours_ago(48)

    hair = priced_repository.price_history(since, product="Hair Loss Treatment")
    assert [(o.competitor_id, o.price) for o in hair] == [(1, 14.00)]
    assert len(priced_repository.price_history(since)) == 3
    assert len(priced_repository.price_history(since, competitor_id=1, product="ED Medication")) == 1


def test_snapshots_and_stats(priced_repository):
    log = JobLog(priced_repository)
    for _ in range(3):
        log.failure(2, "Timeout waiting for selector")
    log.success(1, 7.20)
    log.manual(1, 7.10)

    snapshots = {s.id: s for s in priced_repository.competitor_snapshots(hours_ago(24))}
    assert snapshots[1].price == pytest.approx(7.20)
    assert snapshots[1].status == "manual"
    assert snapshots[2].recent_failures == 3

    assert priced_repository.scrape_stats(hours_ago(24)) == {
        "success": 1,
        "failed": 3,
        "manual": 1,
        "total": 5,
    }


def test_inactive_competitors_leave_snapshots(priced_repository):
    priced_repository.set_competitor_active(2, False)
    assert [s.id for s in priced_repository.competitor_snapshots(hours_ago(24))] == [1]


def test_dismiss_alert(priced_repository):
    alert = priced_repository.insert_alert(1, "ED Medication", 7.20, 6.00, -16.7, utcnow())
    priced_repository.dismiss_alert(alert.id)
    assert priced_repository.list_undismissed_alerts() == []
    with pytest.raises(NotFound):
        priced_repository.dismiss_alert(12345)


def test_set_our_price_upserts(repository):
    repository.set_our_price("Skin Care", 15.0)
    repository.set_our_price("Skin Care", 14.0)
    assert [(p.product, p.price) for p in repository.list_our_prices()] == [("Skin Care", 14.0)]


def test_dashboard_combines_everything(priced_repository):
    priced_repository.insert_alert(2, "ED Medication", 11.50, 9.00, -21.7, utcnow())
    JobLog(priced_repository).failure(1, "Page blocked by Cloudflare")
    JobLog(priced_repository).success(2, 11.50)

    dashboard = build_dashboard(priced_repository)
    data = dashboard.to_dict()

    products = [row["product"] for row in data["comparison"]]
    assert products == ["ED Medication", "Hair Loss Treatment"]
    ed = data["comparison"][0]
    assert ed["lowest_competitor_price"] == pytest.approx(7.20)
    assert ed["status"] == "much_higher"
    assert data["market_position"]["position"] == "above"
    assert data["alerts"][0]["time_ago"] == "just now"
    assert data["scrape_stats"]["success_rate"] == 50.0
    assert {s["id"] for s in data["suggestions"]} == {"match-ED Medication", "investigate-1"}
