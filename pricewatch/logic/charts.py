"""Chart generation utilities."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.ticker import FuncFormatter

from pricewatch.db.repository import PriceRepository
from pricewatch.utils.dates import days_ago

plt.switch_backend("Agg")

OUTPUT_DIR = Path(os.environ.get("CHART_OUTPUT_DIR", "artifacts/charts"))
HISTORY_DAYS = 30


@dataclass(slots=True)
class ChartResult:
    product: str
    path: Path


def price_history_chart(
    repository: PriceRepository,
    product: str,
    *,
    days: int = HISTORY_DAYS,
    now: datetime | None = None,
) -> ChartResult:
    """One line per competitor, plus our price as a dashed reference."""
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    frame = _load_history_frame(repository, product, days_ago(days, now=now))
    if frame.empty:
        raise ValueError(f"No price history for {product}")
    our_price = next((p.price for p in repository.list_our_prices() if p.product == product), None)

    fig, ax = plt.subplots(figsize=(8, 4))
    pivot = frame.pivot_table(index="observed_at", columns="competitor", values="price", aggfunc="last")
    for competitor in pivot.columns:
        series = pivot[competitor].dropna()
        ax.plot(series.index, series.values, marker="o", markersize=3, label=competitor)
    if our_price is not None:
        ax.axhline(our_price, color="#2F55D4", linestyle="--", label="Our price")
    ax.set_ylabel("Price")
    ax.yaxis.set_major_formatter(FuncFormatter(lambda x, pos: f"${x:,.2f}"))
    start = frame["observed_at"].min().strftime("%b %d")
    end = frame["observed_at"].max().strftime("%b %d")
    ax.set_title(f"{product} prices {start} - {end}")
    ax.legend(loc="best", fontsize="small")
    fig.autofmt_xdate()

    output_path = OUTPUT_DIR / f"{_slug(product)}-history.png"
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return ChartResult(product=product, path=output_path)


def _load_history_frame(repository: PriceRepository, product: str, since: datetime) -> pd.DataFrame:
    rows = [
        (obs.observed_at, obs.competitor_name or str(obs.competitor_id), obs.price)
        for obs in repository.price_history(since, product=product)
    ]
    if not rows:
        return pd.DataFrame(columns=["observed_at", "competitor", "price"])
    df = pd.DataFrame(rows, columns=["observed_at", "competitor", "price"])
    df["observed_at"] = pd.to_datetime(df["observed_at"])
    return df.sort_values("observed_at")


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
