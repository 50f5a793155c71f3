"""Pydantic models for usage readings and scrape results."""

from __future__ import annotations

import logging
import math
import sys
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class UsageWindow(BaseModel):
    """A used/limit pair for one reporting period (daily or weekly)."""

    model_config = ConfigDict(frozen=True)

    used: int = Field(ge=0)
    limit: int = Field(gt=0)
    percent: int = 0  # raw reading from the page, before clamping
    over_limit: bool = False  # the page reported more than 100%

    @classmethod
    def from_percent(cls, percent: int, limit: int) -> "UsageWindow":
        """Convert a percentage reading into an absolute count against ``limit``.

        Readings outside 0-100 are clamped so that ``0 <= used <= limit`` always
        holds; ``over_limit`` records that the page went past 100%.
        """
        over_limit = percent > 100
        if percent < 0 or over_limit:
            logger.warning(f"Usage reading out of range: {percent}% (clamping)")
        clamped = min(max(percent, 0), 100)
        # round half up
        used = math.floor(clamped * limit / 100 + 0.5)
        return cls(used=used, limit=limit, percent=percent, over_limit=over_limit)

    @property
    def ratio(self) -> float:
        return self.used / self.limit

    @property
    def percent_used(self) -> int:
        return round(self.ratio * 100)


class UsageMetrics(BaseModel):
    """Parsed content of the usage panel."""

    model_config = ConfigDict(frozen=True)

    daily: Optional[UsageWindow] = None
    weekly: Optional[UsageWindow] = None
    daily_reset: str = "Unknown"
    weekly_reset: str = "Unknown"


class ScrapeResult(BaseModel):
    """Outcome of exactly one Scrape Operation. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    success: bool
    daily: Optional[UsageWindow] = None
    weekly: Optional[UsageWindow] = None
    daily_reset: str = "Unknown"
    weekly_reset: str = "Unknown"
    timestamp: datetime = Field(default_factory=datetime.now)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, metrics: UsageMetrics) -> "ScrapeResult":
        return cls(
            success=True,
            daily=metrics.daily,
            weekly=metrics.weekly,
            daily_reset=metrics.daily_reset,
            weekly_reset=metrics.weekly_reset,
        )

    @classmethod
    def failed(cls, error: str, kind: ErrorKind) -> "ScrapeResult":
        return cls(success=False, error=error, error_kind=kind)

    @property
    def metrics(self) -> UsageMetrics:
        return UsageMetrics(
            daily=self.daily,
            weekly=self.weekly,
            daily_reset=self.daily_reset,
            weekly_reset=self.weekly_reset,
        )


class UsageSnapshot(BaseModel):
    """Payload published to the display after every completed operation."""

    daily: Optional[UsageWindow] = None
    weekly: Optional[UsageWindow] = None
    daily_reset: str = "Unknown"
    weekly_reset: str = "Unknown"
    last_updated: str = "Never"
    next_update: str = "Starting..."

    @classmethod
    def from_result(cls, result: ScrapeResult, next_update: str) -> "UsageSnapshot":
        return cls(
            daily=result.daily,
            weekly=result.weekly,
            daily_reset=result.daily_reset,
            weekly_reset=result.weekly_reset,
            last_updated=result.timestamp.strftime("%H:%M:%S"),
            next_update=next_update,
        )
