from __future__ import annotations

import pytest

from tests.fakes import USAGE_TEXT
from usage_tracker.models.usage import UsageWindow
from usage_tracker.session_manager.parser import parse_usage


def test_parses_both_windows_and_reset_texts() -> None:
    metrics = parse_usage(USAGE_TEXT)

    assert metrics.daily == UsageWindow(used=210, limit=500, percent=42)
    assert metrics.weekly == UsageWindow(used=1005, limit=1500, percent=67)
    assert metrics.daily_reset == "3h 12m"
    assert metrics.weekly_reset == "Tuesday"


def test_missing_markers_yield_empty_windows() -> None:
    metrics = parse_usage("Settings\nProfile\nNothing to see here\n")

    assert metrics.daily is None
    assert metrics.weekly is None
    assert metrics.daily_reset == "Unknown"
    assert metrics.weekly_reset == "Unknown"


def test_only_weekly_section_present() -> None:
    metrics = parse_usage("Weekly limits\n10% used\nResets Friday 9:00 AM\n")

    assert metrics.daily is None
    assert metrics.weekly is not None
    assert metrics.weekly.used == 150
    assert metrics.daily_reset == "Unknown"
    assert metrics.weekly_reset == "Friday 9:00 AM"


def test_parsing_is_idempotent() -> None:
    assert parse_usage(USAGE_TEXT) == parse_usage(USAGE_TEXT)


def test_matching_is_case_insensitive() -> None:
    metrics = parse_usage("CURRENT SESSION\n5% USED\nRESETS IN 4h\n")

    assert metrics.daily is not None
    assert metrics.daily.used == 25
    assert metrics.daily_reset == "4h"


@pytest.mark.parametrize(
    "percent, limit, used",
    [
        (0, 500, 0),
        (100, 500, 500),
        (33, 1500, 495),
        (1, 50, 1),  # 0.5 rounds up
    ],
)
def test_percent_conversion(percent: int, limit: int, used: int) -> None:
    window = UsageWindow.from_percent(percent, limit)
    assert window.used == used
    assert window.limit == limit
    assert window.over_limit is False


def test_readings_above_hundred_are_clamped_and_flagged() -> None:
    window = UsageWindow.from_percent(140, 500)

    assert window.used == 500
    assert window.percent == 140
    assert window.over_limit is True
    assert window.percent_used == 100


def test_custom_limits() -> None:
    metrics = parse_usage(USAGE_TEXT, daily_limit=100, weekly_limit=200)

    assert metrics.daily.limit == 100
    assert metrics.daily.used == 42
    assert metrics.weekly.used == 134
