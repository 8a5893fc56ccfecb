"""Persistence interface used by the scraping engine and the API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from pricewatch.db import tables
from pricewatch.errors import NotFound
from pricewatch.ingest.models import (
    Alert,
    Competitor,
    CompetitorDraft,
    CompetitorSnapshot,
    OurPrice,
    PriceObservation,
    ScrapeLogEntry,
    ScrapeOutcome,
)
from pricewatch.utils.dates import utcnow

c = tables.competitors
ph = tables.price_history
sl = tables.scrape_logs
al = tables.alerts
op = tables.our_prices


class PriceRepository:
    """Single-row reads and writes over the pricing tables.

    Every method opens its own connection, so instances are safe to share
    between the API, the scheduled jobs and executor threads.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # competitors

    def list_competitors(self, active_only: bool = False) -> list[Competitor]:
        query = select(c).order_by(c.c.id)
        if active_only:
            query = query.where(c.c.is_active.is_(True))
        with self.engine.connect() as conn:
            return [_competitor(row) for row in conn.execute(query).mappings()]

    def get_competitor(self, competitor_id: int) -> Competitor | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(c).where(c.c.id == competitor_id)).mappings().first()
        return _competitor(row) if row else None

    def find_competitor_by_url(self, url: str, *, exclude_id: int | None = None) -> Competitor | None:
        query = select(c).where(c.c.product_url == url)
        if exclude_id is not None:
            query = query.where(c.c.id != exclude_id)
        with self.engine.connect() as conn:
            row = conn.execute(query).mappings().first()
        return _competitor(row) if row else None

    def create_competitor(self, draft: CompetitorDraft) -> Competitor:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(c).values(
                    **_competitor_values(draft),
                    created_at=utcnow(),
                )
            )
            competitor_id = int(result.inserted_primary_key[0])
        return self._require_competitor(competitor_id)

    def update_competitor(self, competitor_id: int, draft: CompetitorDraft) -> Competitor:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(c).where(c.c.id == competitor_id).values(**_competitor_values(draft))
            )
        if result.rowcount == 0:
            raise NotFound(f"Competitor {competitor_id} not found")
        return self._require_competitor(competitor_id)

    def set_competitor_active(self, competitor_id: int, active: bool) -> Competitor:
        with self.engine.begin() as conn:
            result = conn.execute(update(c).where(c.c.id == competitor_id).values(is_active=active))
        if result.rowcount == 0:
            raise NotFound(f"Competitor {competitor_id} not found")
        return self._require_competitor(competitor_id)

    def delete_competitor(self, competitor_id: int) -> None:
        with self.engine.begin() as conn:
            for table in (ph, sl, al):
                conn.execute(delete(table).where(table.c.competitor_id == competitor_id))
            result = conn.execute(delete(c).where(c.c.id == competitor_id))
        if result.rowcount == 0:
            raise NotFound(f"Competitor {competitor_id} not found")

    def record_competitor_status(
        self,
        competitor_id: int,
        *,
        succeeded_at: datetime | None = None,
        error: str | None = None,
    ) -> None:
        values: dict[str, Any] = {"last_error": error}
        if succeeded_at is not None:
            values["last_success_at"] = succeeded_at
        with self.engine.begin() as conn:
            conn.execute(update(c).where(c.c.id == competitor_id).values(**values))

    def competitor_snapshots(self, since: datetime) -> list[CompetitorSnapshot]:
        snapshots: list[CompetitorSnapshot] = []
        with self.engine.connect() as conn:
            rows = conn.execute(select(c).where(c.c.is_active.is_(True)).order_by(c.c.id)).mappings().all()
            for row in rows:
                latest = _latest_observation(conn, row["id"], row["internal_product"], offset=0)
                last_status = conn.execute(
                    select(sl.c.status)
                    .where(sl.c.competitor_id == row["id"])
                    .order_by(sl.c.scraped_at.desc(), sl.c.id.desc())
                    .limit(1)
                ).scalar_one_or_none()
                snapshots.append(
                    CompetitorSnapshot(
                        id=row["id"],
                        name=row["name"],
                        product=row["internal_product"],
                        price=latest["price"] if latest else None,
                        last_scraped=latest["scraped_at"] if latest else None,
                        status=last_status,
                        recent_failures=_failure_count(conn, row["id"], since),
                    )
                )
        return snapshots

    def _require_competitor(self, competitor_id: int) -> Competitor:
        competitor = self.get_competitor(competitor_id)
        if competitor is None:
            raise NotFound(f"Competitor {competitor_id} not found")
        return competitor

    # price history

    def insert_price_observation(
        self, competitor_id: int, product: str, price: float, observed_at: datetime
    ) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(ph).values(
                    competitor_id=competitor_id,
                    product_name=product,
                    price=price,
                    scraped_at=observed_at,
                )
            )
            return int(result.inserted_primary_key[0])

    def latest_price_observation(
        self, competitor_id: int, product: str | None = None
    ) -> PriceObservation | None:
        return self.price_observation_offset_by(competitor_id, product, 0)

    def price_observation_offset_by(
        self, competitor_id: int, product: str | None, offset: int
    ) -> PriceObservation | None:
        """Observation ``offset`` rows back from the newest for the pair."""
        with self.engine.connect() as conn:
            row = _latest_observation(conn, competitor_id, product, offset=offset)
        return _observation(row) if row else None

    def price_history(
        self, since: datetime, competitor_id: int | None = None, product: str | None = None
    ) -> list[PriceObservation]:
        query = (
            select(ph, c.c.name.label("competitor_name"))
            .join(c, c.c.id == ph.c.competitor_id)
            .where(ph.c.scraped_at >= since)
            .order_by(ph.c.scraped_at, ph.c.id)
        )
        if competitor_id is not None:
            query = query.where(ph.c.competitor_id == competitor_id)
        if product is not None:
            query = query.where(ph.c.product_name == product)
        with self.engine.connect() as conn:
            return [_observation(row) for row in conn.execute(query).mappings()]

    # scrape logs

    def insert_scrape_log(
        self,
        competitor_id: int,
        outcome: ScrapeOutcome,
        price: float | None,
        error: str | None,
        logged_at: datetime,
    ) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(sl).values(
                    competitor_id=competitor_id,
                    status=ScrapeOutcome(outcome).value,
                    price=price,
                    error_message=error,
                    scraped_at=logged_at,
                )
            )
            return int(result.inserted_primary_key[0])

    def recent_failure_count(self, competitor_id: int, since: datetime) -> int:
        with self.engine.connect() as conn:
            return _failure_count(conn, competitor_id, since)

    def list_scrape_logs(self, competitor_id: int | None = None, limit: int = 50) -> list[ScrapeLogEntry]:
        query = (
            select(sl, c.c.name.label("competitor_name"))
            .join(c, c.c.id == sl.c.competitor_id)
            .order_by(sl.c.scraped_at.desc(), sl.c.id.desc())
            .limit(limit)
        )
        if competitor_id is not None:
            query = query.where(sl.c.competitor_id == competitor_id)
        with self.engine.connect() as conn:
            return [_log_entry(row) for row in conn.execute(query).mappings()]

    def scrape_stats(self, since: datetime) -> dict[str, int]:
        query = (
            select(sl.c.status, func.count().label("n"))
            .where(sl.c.scraped_at > since)
            .group_by(sl.c.status)
        )
        with self.engine.connect() as conn:
            counts = {row.status: int(row.n) for row in conn.execute(query)}
        stats = {outcome.value: counts.get(outcome.value, 0) for outcome in ScrapeOutcome}
        stats["total"] = sum(counts.values())
        return stats

    # alerts

    def insert_alert(
        self,
        competitor_id: int,
        product: str,
        old_price: float,
        new_price: float,
        percent_change: float,
        created_at: datetime,
    ) -> Alert:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(al).values(
                    competitor_id=competitor_id,
                    product_name=product,
                    old_price=old_price,
                    new_price=new_price,
                    percent_change=percent_change,
                    created_at=created_at,
                    dismissed=False,
                )
            )
            alert_id = int(result.inserted_primary_key[0])
        return Alert(
            id=alert_id,
            competitor_id=competitor_id,
            product=product,
            old_price=old_price,
            new_price=new_price,
            percent_change=percent_change,
            created_at=created_at,
        )

    def list_undismissed_alerts(self, limit: int = 10) -> list[Alert]:
        query = (
            select(al, c.c.name.label("competitor_name"))
            .join(c, c.c.id == al.c.competitor_id)
            .where(al.c.dismissed.is_(False))
            .order_by(al.c.created_at.desc(), al.c.id.desc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            return [_alert(row) for row in conn.execute(query).mappings()]

    def dismiss_alert(self, alert_id: int) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(update(al).where(al.c.id == alert_id).values(dismissed=True))
        if result.rowcount == 0:
            raise NotFound(f"Alert {alert_id} not found")

    # our prices

    def list_our_prices(self) -> list[OurPrice]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(op).order_by(op.c.id)).mappings()
            return [
                OurPrice(product=row["product_name"], price=row["price"], updated_at=row["updated_at"])
                for row in rows
            ]

    def set_our_price(self, product: str, price: float) -> OurPrice:
        now = utcnow()
        with self.engine.begin() as conn:
            result = conn.execute(
                update(op).where(op.c.product_name == product).values(price=price, updated_at=now)
            )
            if result.rowcount == 0:
                conn.execute(insert(op).values(product_name=product, price=price, updated_at=now))
        return OurPrice(product=product, price=price, updated_at=now)


def _latest_observation(
    conn: Connection, competitor_id: int, product: str | None, *, offset: int
) -> Mapping[str, Any] | None:
    query = select(ph).where(ph.c.competitor_id == competitor_id)
    if product is not None:
        query = query.where(ph.c.product_name == product)
    query = query.order_by(ph.c.scraped_at.desc(), ph.c.id.desc()).limit(1).offset(offset)
    return conn.execute(query).mappings().first()


def _failure_count(conn: Connection, competitor_id: int, since: datetime) -> int:
    query = (
        select(func.count())
        .select_from(sl)
        .where(sl.c.competitor_id == competitor_id)
        .where(sl.c.status == ScrapeOutcome.FAILED.value)
        .where(sl.c.scraped_at > since)
    )
    return int(conn.execute(query).scalar_one())


def _competitor_values(draft: CompetitorDraft) -> dict[str, Any]:
    return {
        "name": draft.name,
        "product_url": draft.url,
        "css_selector": draft.selector,
        "internal_product": draft.product,
        "alert_threshold": draft.alert_threshold,
        "is_active": draft.is_active,
    }


def _competitor(row: Mapping[str, Any]) -> Competitor:
    return Competitor(
        id=row["id"],
        name=row["name"],
        url=row["product_url"],
        selector=row["css_selector"],
        product=row["internal_product"],
        alert_threshold=float(row["alert_threshold"]),
        is_active=bool(row["is_active"]),
        last_success_at=row["last_success_at"],
        last_error=row["last_error"],
        created_at=row["created_at"],
    )


def _observation(row: Mapping[str, Any]) -> PriceObservation:
    return PriceObservation(
        id=row["id"],
        competitor_id=row["competitor_id"],
        product=row["product_name"],
        price=float(row["price"]),
        observed_at=row["scraped_at"],
        competitor_name=row.get("competitor_name"),
    )


def _log_entry(row: Mapping[str, Any]) -> ScrapeLogEntry:
    return ScrapeLogEntry(
        id=row["id"],
        competitor_id=row["competitor_id"],
        outcome=ScrapeOutcome(row["status"]),
        price=row["price"],
        error=row["error_message"],
        logged_at=row["scraped_at"],
        competitor_name=row.get("competitor_name"),
    )


def _alert(row: Mapping[str, Any]) -> Alert:
    return Alert(
        id=row["id"],
        competitor_id=row["competitor_id"],
        product=row["product_name"],
        old_price=float(row["old_price"]),
        new_price=float(row["new_price"]),
        percent_change=float(row["percent_change"]),
        created_at=row["created_at"],
        dismissed=bool(row["dismissed"]),
        competitor_name=row.get("competitor_name"),
    )
