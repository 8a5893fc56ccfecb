"""Error types shared by the scraping engine and the API."""

from __future__ import annotations


class PriceWatchError(RuntimeError):
    pass


class NotFound(PriceWatchError):
    """Unknown competitor or alert id."""


class InvalidInput(PriceWatchError):
    """Rejected operator input: bad URL, price, threshold or duplicate page."""


class ExtractionFailure(PriceWatchError):
    """A single extraction attempt failed; always recovered by the extractor."""


class OrchestrationFailure(PriceWatchError):
    """The browser environment could not run at all."""
