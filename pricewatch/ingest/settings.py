"""Scraper tuning knobs, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class ScrapeSettings:
    navigation_timeout_ms: int = 30_000
    default_timeout_ms: int = 45_000
    selector_timeout_ms: int = 10_000
    retry_selector_timeout_ms: int = 5_000
    max_attempts: int = 3
    retry_delay: float = 2.0
    # (min, max) seconds for the randomized waits
    dwell_delay: tuple[float, float] = (1.5, 3.0)
    scroll_delay: tuple[float, float] = (1.0, 2.0)
    pacing_delay: tuple[float, float] = (2.0, 5.0)
    synthetic_latency: tuple[float, float] = (0.5, 1.5)
    scroll_pixels: int = 500
    headless: bool = True

    @classmethod
    def from_env(cls) -> "ScrapeSettings":
        return cls(
            navigation_timeout_ms=_env_int("SCRAPE_NAVIGATION_TIMEOUT_MS", 30_000),
            selector_timeout_ms=_env_int("SCRAPE_SELECTOR_TIMEOUT_MS", 10_000),
            max_attempts=max(1, _env_int("SCRAPE_MAX_ATTEMPTS", 3)),
            retry_delay=_env_float("SCRAPE_RETRY_DELAY", 2.0),
            headless=_env_bool("SCRAPE_HEADLESS", True),
        )

    @classmethod
    def immediate(cls) -> "ScrapeSettings":
        """Same policy with every wait collapsed to zero."""
        return cls(
            retry_delay=0.0,
            dwell_delay=(0.0, 0.0),
            scroll_delay=(0.0, 0.0),
            pacing_delay=(0.0, 0.0),
            synthetic_latency=(0.0, 0.0),
        )
