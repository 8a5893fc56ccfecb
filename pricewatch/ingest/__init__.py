"""Ingestion helpers."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass

import yaml

from pricewatch.ingest.models import CompetitorDraft

SEED_PATH = pathlib.Path(__file__).with_name("competitors.yml")


@dataclass(slots=True)
class SeedConfig:
    competitors: list[CompetitorDraft]
    our_prices: dict[str, float]


def load_seed(path: pathlib.Path = SEED_PATH, limit: int | None = None) -> SeedConfig:
    data = yaml.safe_load(path.read_text()) or {}
    competitors = [CompetitorDraft(**item) for item in data.get("competitors", [])]
    our_prices = {str(k): float(v) for k, v in (data.get("our_prices") or {}).items()}
    if limit:
        competitors = competitors[:limit]
    return SeedConfig(competitors=competitors, our_prices=our_prices)
