"""Table definitions."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, MetaData, Table, Text

metadata = MetaData()

competitors = Table(
    "competitors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("product_url", Text, nullable=False, unique=True),
    Column("css_selector", Text, nullable=False),
    Column("internal_product", Text, nullable=False),
    Column("alert_threshold", Float, nullable=False, default=10.0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("last_success_at", DateTime),
    Column("last_error", Text),
    Column("created_at", DateTime),
)

price_history = Table(
    "price_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("competitor_id", Integer, ForeignKey("competitors.id", ondelete="CASCADE")),
    Column("product_name", Text, nullable=False),
    Column("price", Float, nullable=False),
    Column("scraped_at", DateTime, nullable=False),
    Index("idx_price_history_lookup", "competitor_id", "product_name", "scraped_at"),
)

scrape_logs = Table(
    "scrape_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("competitor_id", Integer, ForeignKey("competitors.id", ondelete="CASCADE")),
    Column("status", Text, nullable=False),
    Column("price", Float),
    Column("error_message", Text),
    Column("scraped_at", DateTime, nullable=False),
    Index("idx_scrape_logs_competitor", "competitor_id", "scraped_at"),
)

alerts = Table(
    "alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("competitor_id", Integer, ForeignKey("competitors.id", ondelete="CASCADE")),
    Column("product_name", Text, nullable=False),
    Column("old_price", Float, nullable=False),
    Column("new_price", Float, nullable=False),
    Column("percent_change", Float, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("dismissed", Boolean, nullable=False, default=False),
    Index("idx_alerts_competitor", "competitor_id"),
)

our_prices = Table(
    "our_prices",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_name", Text, nullable=False, unique=True),
    Column("price", Float, nullable=False),
    Column("updated_at", DateTime),
)
