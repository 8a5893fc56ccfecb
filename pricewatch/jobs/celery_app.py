"""Celery configuration for scheduled jobs."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from pricewatch.utils.dates import timezone_name

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
interval_hours = max(1, int(os.environ.get("SCRAPE_INTERVAL_HOURS", "6")))

celery_app = Celery("pricewatch", broker=broker_url, backend=backend_url, include=["pricewatch.jobs.scrape"])
celery_app.conf.timezone = timezone_name()
celery_app.conf.beat_schedule = {
    "fleet-scrape": {
        "task": "pricewatch.jobs.scrape.run_scheduled",
        "schedule": crontab(minute=0, hour=f"*/{interval_hours}"),
    },
}


@celery_app.task(name="pricewatch.jobs.scrape.run_scheduled")
def run_scheduled_task(mode: str | None = None) -> dict:  # pragma: no cover - executed by worker
    import asyncio

    from pricewatch.jobs.scrape import run_scheduled

    result = asyncio.run(run_scheduled(mode))
    return {"success": result.success, "failed": result.failed, "fallback_used": result.fallback_used}
