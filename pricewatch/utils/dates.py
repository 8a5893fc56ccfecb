"""Datetime helpers."""

from __future__ import annotations

import os
from datetime import datetime, timedelta

import pendulum

DEFAULT_TZ = "UTC"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every stored timestamp takes."""
    now = pendulum.now("UTC")
    return datetime(
        now.year, now.month, now.day, now.hour, now.minute, now.second, now.microsecond
    )


def hours_ago(hours: int, *, now: datetime | None = None) -> datetime:
    return (now or utcnow()) - timedelta(hours=hours)


def days_ago(days: int, *, now: datetime | None = None) -> datetime:
    return (now or utcnow()) - timedelta(days=days)


def time_ago(value: datetime, *, now: datetime | None = None) -> str:
    seconds = int(((now or utcnow()) - value).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    if seconds < 604800:
        return f"{seconds // 86400} days ago"
    return value.strftime("%Y-%m-%d")


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%S")
