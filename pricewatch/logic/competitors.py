"""Competitor configuration rules."""

from __future__ import annotations

import math
from urllib.parse import urlparse

from pricewatch.db.repository import PriceRepository
from pricewatch.errors import InvalidInput
from pricewatch.ingest.models import DEFAULT_ALERT_THRESHOLD, Competitor, CompetitorDraft


def validate_draft(draft: CompetitorDraft) -> CompetitorDraft:
    """Return a cleaned copy of ``draft`` or raise ``InvalidInput``."""
    name = (draft.name or "").strip()
    url = (draft.url or "").strip()
    selector = (draft.selector or "").strip()
    product = (draft.product or "").strip()
    if not (name and url and selector and product):
        raise InvalidInput("All fields are required")

    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InvalidInput("Invalid URL format")

    threshold = DEFAULT_ALERT_THRESHOLD if draft.alert_threshold is None else draft.alert_threshold
    try:
        threshold = float(threshold)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("Alert threshold must be a number") from exc
    if math.isnan(threshold) or not 0 <= threshold <= 100:
        raise InvalidInput("Alert threshold must be between 0 and 100")

    return CompetitorDraft(
        name=name,
        url=url,
        selector=selector,
        product=product,
        alert_threshold=threshold,
        is_active=bool(draft.is_active),
    )


def create_competitor(repository: PriceRepository, draft: CompetitorDraft) -> Competitor:
    clean = validate_draft(draft)
    if repository.find_competitor_by_url(clean.url):
        raise InvalidInput("A competitor with this URL already exists")
    return repository.create_competitor(clean)


def update_competitor(repository: PriceRepository, competitor_id: int, draft: CompetitorDraft) -> Competitor:
    clean = validate_draft(draft)
    if repository.find_competitor_by_url(clean.url, exclude_id=competitor_id):
        raise InvalidInput("A competitor with this URL already exists")
    return repository.update_competitor(competitor_id, clean)
