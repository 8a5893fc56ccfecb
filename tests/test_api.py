import httpx
import pytest

from pricewatch.api.main import app, get_repository
from pricewatch.ingest.settings import ScrapeSettings
from pricewatch.logic import charts


@pytest.fixture()
def client_factory(priced_repository, monkeypatch, tmp_path):
    monkeypatch.setattr(ScrapeSettings, "from_env", classmethod(lambda cls: cls.immediate()))
    monkeypatch.setattr(charts, "OUTPUT_DIR", tmp_path / "charts")
    app.dependency_overrides[get_repository] = lambda: priced_repository

    def factory():
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    yield factory
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_competitor_crud(client_factory):
    async with client_factory() as client:
        created = await client.post(
            "/competitors",
            json={
                "name": "HealthWarehouse",
                "url": "https://www.healthwarehouse.com/sildenafil",
                "selector": ".price-box .price",
                "product": "ED Medication",
            },
        )
        assert created.status_code == 201
        competitor = created.json()
        assert competitor["alert_threshold"] == 10.0

        duplicate = await client.post(
            "/competitors",
            json={
                "name": "Copy",
                "url": "https://www.healthwarehouse.com/sildenafil",
                "selector": ".price",
                "product": "ED Medication",
            },
        )
        assert duplicate.status_code == 400

        bad_url = await client.post(
            "/competitors",
            json={"name": "X", "url": "nope", "selector": ".p", "product": "ED Medication"},
        )
        assert bad_url.status_code == 400

        toggled = await client.patch(f"/competitors/{competitor['id']}/toggle")
        assert toggled.json()["is_active"] is False

        listing = await client.get("/competitors")
        assert len(listing.json()) == 3

        deleted = await client.delete(f"/competitors/{competitor['id']}")
        assert deleted.json() == {"message": "Competitor deleted"}
        missing = await client.get(f"/competitors/{competitor['id']}")
        assert missing.status_code == 404


@pytest.mark.asyncio
async def test_manual_price_endpoint(client_factory):
    async with client_factory() as client:
        ok = await client.post("/manual-price", json={"competitor_id": 1, "price": 6.00})
        assert ok.status_code == 200
        assert ok.json() == {"competitor_id": 1, "price": 6.0, "product": "ED Medication"}

        for price in (0, -5, "abc"):
            bad = await client.post("/manual-price", json={"competitor_id": 1, "price": price})
            assert bad.status_code == 400

        unknown = await client.post("/manual-price", json={"competitor_id": 99, "price": 5})
        assert unknown.status_code == 404

        dashboard = (await client.get("/dashboard")).json()
        assert dashboard["alerts"][0]["percent_change"] == pytest.approx(-16.67, abs=0.01)
        alert_id = dashboard["alerts"][0]["id"]

        dismissed = await client.put(f"/alerts/{alert_id}/dismiss")
        assert dismissed.status_code == 200
        assert (await client.get("/dashboard")).json()["alerts"] == []
        assert (await client.put("/alerts/999/dismiss")).status_code == 404


@pytest.mark.asyncio
async def test_demo_scrape_endpoints(client_factory):
    async with client_factory() as client:
        fleet = await client.post("/scrape", json={"mode": "demo"})
        body = fleet.json()
        assert body["total"] == 2
        assert body["success"] + body["failed"] == 2
        assert body["mode"] == "demo"
        assert {d["method"] for d in body["details"]} == {"synthetic"}

        single = await client.post("/scrape/2", params={"mode": "demo"})
        assert single.json()["competitor_id"] == 2

        assert (await client.post("/scrape/77", params={"mode": "demo"})).status_code == 404
        assert (await client.post("/scrape", json={"mode": "mock"})).status_code == 400

        logs = (await client.get("/scrape-logs", params={"competitor_id": 2})).json()
        assert len(logs) == 2
        assert all(log["competitor_name"] == "RxSaver" for log in logs)


@pytest.mark.asyncio
async def test_our_prices_and_history(client_factory):
    async with client_factory() as client:
        updated = await client.put("/our-prices/Skin Care", json={"price": 15})
        assert updated.json()["price"] == 15.0
        assert (await client.put("/our-prices/Skin Care", json={"price": 0})).status_code == 400

        prices = {p["product"]: p["price"] for p in (await client.get("/our-prices")).json()}
        assert prices["Skin Care"] == 15.0

        history = (await client.get("/price-history", params={"competitor_id": 1})).json()
        assert [h["price"] for h in history["history"]] == [7.2]

        chart = await client.get("/price-history/chart", params={"product": "ED Medication"})
        assert chart.status_code == 200
        assert chart.headers["content-type"] == "image/png"
        assert (await client.get("/price-history/chart", params={"product": "Nothing"})).status_code == 404


@pytest.mark.asyncio
async def test_health(client_factory):
    async with client_factory() as client:
        assert (await client.get("/health")).json() == {"status": "ok"}
