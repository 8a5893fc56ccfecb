"""Ingestion data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

DEFAULT_ALERT_THRESHOLD = 10.0


class ScrapeOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    MANUAL = "manual"


class ScrapeMode(str, Enum):
    REAL = "real"
    DEMO = "demo"


class ScrapeMethod(str, Enum):
    AUTOMATED = "automated"
    SYNTHETIC = "synthetic"


@dataclass(slots=True)
class Competitor:
    id: int
    name: str
    url: str
    selector: str
    product: str
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    is_active: bool = True
    last_success_at: datetime | None = None
    last_error: str | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class CompetitorDraft:
    """Operator-supplied competitor fields, validated before they are stored."""

    name: str
    url: str
    selector: str
    product: str
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    is_active: bool = True


@dataclass(slots=True)
class PriceObservation:
    id: int
    competitor_id: int | None
    product: str
    price: float
    observed_at: datetime
    competitor_name: str | None = None


@dataclass(slots=True)
class ScrapeLogEntry:
    id: int
    competitor_id: int | None
    outcome: ScrapeOutcome
    price: float | None
    error: str | None
    logged_at: datetime
    competitor_name: str | None = None


@dataclass(slots=True)
class Alert:
    id: int
    competitor_id: int | None
    product: str
    old_price: float
    new_price: float
    percent_change: float
    created_at: datetime
    dismissed: bool = False
    competitor_name: str | None = None


@dataclass(slots=True)
class OurPrice:
    product: str
    price: float
    updated_at: datetime | None = None


@dataclass(slots=True)
class CompetitorSnapshot:
    """Latest known state of one active competitor, as the dashboard sees it."""

    id: int
    name: str
    product: str
    price: float | None
    last_scraped: datetime | None
    status: str | None
    recent_failures: int


@dataclass(slots=True)
class ScrapeDetail:
    competitor_id: int
    competitor_name: str
    product: str
    url: str
    success: bool
    price: float | None = None
    error: str | None = None
    attempts: int = 0
    method: ScrapeMethod = ScrapeMethod.AUTOMATED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data


@dataclass(slots=True)
class FleetResult:
    started_at: datetime
    mode: ScrapeMode
    details: list[ScrapeDetail] = field(default_factory=list)
    finished_at: datetime | None = None
    fallback_used: bool = False

    @property
    def success(self) -> int:
        return sum(1 for detail in self.details if detail.success)

    @property
    def failed(self) -> int:
        return sum(1 for detail in self.details if not detail.success)

    @property
    def total(self) -> int:
        return len(self.details)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed": self.failed,
            "total": self.total,
            "details": [detail.to_dict() for detail in self.details],
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "mode": self.mode.value,
            "fallback_used": self.fallback_used,
        }


@dataclass(slots=True)
class ManualEntryResult:
    competitor_id: int
    price: float
    product: str
