"""FastAPI application for competitor price monitoring."""

from __future__ import annotations

import logging
from dataclasses import asdict
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.engine import Engine

from pricewatch.db.repository import PriceRepository
from pricewatch.db.session import create_engine_from_env
from pricewatch.errors import InvalidInput, NotFound
from pricewatch.ingest.manual import coerce_price, record_manual_price
from pricewatch.ingest.models import DEFAULT_ALERT_THRESHOLD, CompetitorDraft, ScrapeMode
from pricewatch.jobs.scrape import run_fleet_scrape, run_single_scrape
from pricewatch.logic import competitors as competitor_rules
from pricewatch.logic.charts import price_history_chart
from pricewatch.logic.dashboard import build_dashboard
from pricewatch.utils.dates import days_ago

logger = logging.getLogger(__name__)

app = FastAPI(title="PriceWatch API")


class CompetitorRequest(BaseModel):
    name: str
    url: str
    selector: str
    product: str
    alert_threshold: float | None = DEFAULT_ALERT_THRESHOLD
    is_active: bool = True

    def to_draft(self) -> CompetitorDraft:
        return CompetitorDraft(
            name=self.name,
            url=self.url,
            selector=self.selector,
            product=self.product,
            alert_threshold=self.alert_threshold,
            is_active=self.is_active,
        )


class ScrapeRequest(BaseModel):
    mode: str = ScrapeMode.REAL.value


class ManualPriceRequest(BaseModel):
    competitor_id: int
    # validated by coerce_price
    price: Any = Field(...)
    product: str | None = None


class OurPriceRequest(BaseModel):
    price: Any = Field(...)


class MessageResponse(BaseModel):
    message: str


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine_from_env()


def get_repository(engine: Engine = Depends(get_engine)) -> PriceRepository:
    return PriceRepository(engine)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=404)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=400)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/competitors")
async def list_competitors(repo: PriceRepository = Depends(get_repository)) -> list[dict[str, Any]]:
    return [asdict(competitor) for competitor in repo.list_competitors()]


@app.get("/competitors/{competitor_id}")
async def get_competitor(competitor_id: int, repo: PriceRepository = Depends(get_repository)) -> dict[str, Any]:
    competitor = repo.get_competitor(competitor_id)
    if competitor is None:
        raise HTTPException(status_code=404, detail="Competitor not found")
    return asdict(competitor)


@app.post("/competitors", status_code=201)
async def create_competitor(
    payload: CompetitorRequest, repo: PriceRepository = Depends(get_repository)
) -> dict[str, Any]:
    competitor = competitor_rules.create_competitor(repo, payload.to_draft())
    logger.info("Added competitor %s (%s)", competitor.name, competitor.url)
    return asdict(competitor)


@app.put("/competitors/{competitor_id}")
async def update_competitor(
    competitor_id: int, payload: CompetitorRequest, repo: PriceRepository = Depends(get_repository)
) -> dict[str, Any]:
    return asdict(competitor_rules.update_competitor(repo, competitor_id, payload.to_draft()))


@app.patch("/competitors/{competitor_id}/toggle")
async def toggle_competitor(competitor_id: int, repo: PriceRepository = Depends(get_repository)) -> dict[str, Any]:
    competitor = repo.get_competitor(competitor_id)
    if competitor is None:
        raise HTTPException(status_code=404, detail="Competitor not found")
    return asdict(repo.set_competitor_active(competitor_id, not competitor.is_active))


@app.delete("/competitors/{competitor_id}", response_model=MessageResponse)
async def delete_competitor(competitor_id: int, repo: PriceRepository = Depends(get_repository)) -> MessageResponse:
    repo.delete_competitor(competitor_id)
    return MessageResponse(message="Competitor deleted")


@app.get("/dashboard")
async def dashboard(repo: PriceRepository = Depends(get_repository)) -> dict[str, Any]:
    return build_dashboard(repo).to_dict()


@app.get("/price-history")
async def price_history(
    competitor_id: int | None = None,
    days: int = Query(30, ge=1, le=365),
    repo: PriceRepository = Depends(get_repository),
) -> dict[str, Any]:
    history = repo.price_history(days_ago(days), competitor_id=competitor_id)
    return {
        "history": [asdict(obs) for obs in history],
        "our_prices": [asdict(price) for price in repo.list_our_prices()],
    }


@app.get("/price-history/chart")
async def price_history_chart_png(
    product: str, repo: PriceRepository = Depends(get_repository)
) -> FileResponse:
    try:
        chart = price_history_chart(repo, product)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return FileResponse(chart.path, media_type="image/png")


@app.post("/scrape")
async def scrape_all(
    payload: ScrapeRequest | None = None, repo: PriceRepository = Depends(get_repository)
) -> dict[str, Any]:
    mode = payload.mode if payload else ScrapeMode.REAL.value
    result = await run_fleet_scrape(repo, mode)
    return result.to_dict()


@app.post("/scrape/{competitor_id}")
async def scrape_one(
    competitor_id: int,
    mode: str | None = None,
    repo: PriceRepository = Depends(get_repository),
) -> dict[str, Any]:
    detail = await run_single_scrape(repo, competitor_id, mode)
    return detail.to_dict()


@app.post("/manual-price")
async def manual_price(payload: ManualPriceRequest, repo: PriceRepository = Depends(get_repository)) -> dict[str, Any]:
    result = record_manual_price(repo, payload.competitor_id, payload.price, payload.product)
    return asdict(result)


@app.get("/scrape-logs")
async def scrape_logs(
    competitor_id: int | None = None,
    limit: int = Query(50, ge=1, le=500),
    repo: PriceRepository = Depends(get_repository),
) -> list[dict[str, Any]]:
    return [
        {**asdict(entry), "outcome": entry.outcome.value}
        for entry in repo.list_scrape_logs(competitor_id=competitor_id, limit=limit)
    ]


@app.put("/alerts/{alert_id}/dismiss", response_model=MessageResponse)
async def dismiss_alert(alert_id: int, repo: PriceRepository = Depends(get_repository)) -> MessageResponse:
    repo.dismiss_alert(alert_id)
    return MessageResponse(message="Alert dismissed")


@app.get("/our-prices")
async def our_prices(repo: PriceRepository = Depends(get_repository)) -> list[dict[str, Any]]:
    return [asdict(price) for price in repo.list_our_prices()]


@app.put("/our-prices/{product}")
async def update_our_price(
    product: str, payload: OurPriceRequest, repo: PriceRepository = Depends(get_repository)
) -> dict[str, Any]:
    return asdict(repo.set_our_price(product, coerce_price(payload.price)))
