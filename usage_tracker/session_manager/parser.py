"""Parse the rendered usage panel text into usage windows.

The panel shows two sections, "Current session" and "Weekly limits", each
with a "NN% used" reading and a reset countdown. Absolute numbers are not
shown, so percentages are converted using fixed assumed limits.

A section that cannot be found yields no window and an "Unknown" reset text.
Parsing never fails the operation.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Optional

from ..config import DAILY_LIMIT, WEEKLY_LIMIT
from ..constants import (
    DAILY_PERCENT_PATTERN,
    DAILY_RESET_PATTERN,
    UNKNOWN_RESET,
    WEEKLY_PERCENT_PATTERN,
    WEEKLY_RESET_PATTERN,
)
from ..models.usage import UsageMetrics, UsageWindow

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def _parse_window(pattern: re.Pattern, text: str, limit: int) -> Optional[UsageWindow]:
    match = pattern.search(text)
    if not match:
        return None
    return UsageWindow.from_percent(int(match.group(1)), limit)


def _parse_reset(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    if not match:
        return UNKNOWN_RESET
    return match.group(1).strip() or UNKNOWN_RESET


def parse_usage(
    text: str,
    daily_limit: int = DAILY_LIMIT,
    weekly_limit: int = WEEKLY_LIMIT,
) -> UsageMetrics:
    """Extract daily/weekly usage and reset texts from the panel's inner text."""
    daily = _parse_window(DAILY_PERCENT_PATTERN, text, daily_limit)
    weekly = _parse_window(WEEKLY_PERCENT_PATTERN, text, weekly_limit)
    daily_reset = _parse_reset(DAILY_RESET_PATTERN, text)
    weekly_reset = _parse_reset(WEEKLY_RESET_PATTERN, text)

    if daily is None and weekly is None:
        logger.warning("No usage readings found in page text")
    else:
        logger.info(f"Parsed daily: {daily}, weekly: {weekly}")
    logger.info(f"Daily reset: {daily_reset} | Weekly reset: {weekly_reset}")

    return UsageMetrics(
        daily=daily,
        weekly=weekly,
        daily_reset=daily_reset,
        weekly_reset=weekly_reset,
    )
