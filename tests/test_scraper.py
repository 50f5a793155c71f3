from __future__ import annotations

import asyncio

import pytest

from tests.fakes import LOGIN_TEXT, FakeContext
from usage_tracker.constants import CLAUDE_SETTINGS_URL
from usage_tracker.errors import BrowserNotFound, ErrorKind
from usage_tracker.session_manager.browser import BrowserSession
from usage_tracker.session_manager.scraper import UsageScraper


@pytest.fixture
def scraper(session: BrowserSession) -> UsageScraper:
    return UsageScraper(session, navigation_settle_seconds=0, panel_settle_seconds=0)


def test_successful_scrape_from_blank_page(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    result = asyncio.run(scraper.scrape())

    assert result.success is True
    assert result.error is None
    assert (result.daily.used, result.daily.limit) == (210, 500)
    assert (result.weekly.used, result.weekly.limit) == (1005, 1500)
    assert result.daily_reset == "3h 12m"
    assert result.weekly_reset == "Tuesday"
    assert session.authenticated is True
    assert fake_context.pages[0].goto_calls == [CLAUDE_SETTINGS_URL]


def test_authenticated_session_on_settings_skips_navigation(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    page = fake_context.pages[0]
    page.url = CLAUDE_SETTINGS_URL
    page.text = "Settings\nUsage"
    session.authenticated = True

    result = asyncio.run(scraper.scrape())

    assert result.success is True
    assert page.goto_calls == []
    assert page.clicks == 1


def test_authenticated_flag_is_rechecked_when_cheap_check_fails(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    session.authenticated = True  # but the page sits on about:blank

    result = asyncio.run(scraper.scrape())

    assert result.success is True
    assert fake_context.pages[0].goto_calls == [CLAUDE_SETTINGS_URL]


def test_missing_usage_text_is_still_success(
    scraper: UsageScraper, fake_context: FakeContext
) -> None:
    fake_context.usage_text = "Settings\nUsage\nSomething changed on this page"

    result = asyncio.run(scraper.scrape())

    assert result.success is True
    assert result.daily is None
    assert result.weekly is None
    assert result.daily_reset == "Unknown"
    assert result.weekly_reset == "Unknown"


def test_skips_while_recovering(scraper: UsageScraper, session: BrowserSession) -> None:
    session.recovering = True

    result = asyncio.run(scraper.scrape())

    assert result.success is False
    assert result.error_kind is ErrorKind.RECOVERY_IN_PROGRESS
    assert session.page.goto_calls == []


def test_expired_cookies_fail_with_session_expired(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    fake_context.site[CLAUDE_SETTINGS_URL] = LOGIN_TEXT

    result = asyncio.run(scraper.scrape())

    assert result.success is False
    assert result.error_kind is ErrorKind.SESSION_EXPIRED
    assert "Session expired" in result.error
    assert session.authenticated is False
    assert session.recovering is False


def test_session_lost_between_check_and_read(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    fake_context.usage_text = LOGIN_TEXT

    result = asyncio.run(scraper.scrape())

    assert result.error_kind is ErrorKind.SESSION_EXPIRED
    assert session.authenticated is False


def test_detached_page_triggers_recovery(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    page = fake_context.pages[0]
    page.evaluate_error = Exception(
        "Execution context was destroyed, most likely because of a navigation: Frame was detached"
    )

    result = asyncio.run(scraper.scrape())

    assert result.success is False
    assert result.error_kind is ErrorKind.PAGE_DETACHED
    assert result.error == str(page.evaluate_error)
    # scrape navigated once, recovery navigated again
    assert page.goto_calls == [CLAUDE_SETTINGS_URL, CLAUDE_SETTINGS_URL]
    assert session.recovering is False
    assert session.authenticated is True


def test_failed_recovery_never_raises(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    page = fake_context.pages[0]
    page.url = CLAUDE_SETTINGS_URL
    page.text = "Settings\nUsage"
    session.authenticated = True
    page.evaluate_error = Exception("net::ERR_INTERNET_DISCONNECTED")
    page.goto_error = Exception("net::ERR_INTERNET_DISCONNECTED")

    result = asyncio.run(scraper.scrape())

    assert result.success is False
    assert result.error_kind is ErrorKind.NETWORK
    assert page.goto_calls == [CLAUDE_SETTINGS_URL]
    assert session.recovering is False


def test_session_expiry_does_not_trigger_recovery(
    scraper: UsageScraper, fake_context: FakeContext
) -> None:
    fake_context.usage_text = LOGIN_TEXT

    asyncio.run(scraper.scrape())

    assert fake_context.pages[0].goto_calls == [CLAUDE_SETTINGS_URL]


def test_recover_without_browser_is_a_no_op(scraper: UsageScraper, session: BrowserSession) -> None:
    asyncio.run(session.close())

    outcome = asyncio.run(scraper.recover())

    assert outcome.attempted is False
    assert session.recovering is False


def test_recover_creates_page_when_none_left(
    scraper: UsageScraper, session: BrowserSession, fake_context: FakeContext
) -> None:
    fake_context.pages.clear()

    outcome = asyncio.run(scraper.recover())

    assert outcome.recovered is True
    assert outcome.authenticated is True
    assert len(fake_context.pages) == 1
    assert session.page is fake_context.pages[0]


def test_restart_failure_becomes_failed_result(
    scraper: UsageScraper, session: BrowserSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    asyncio.run(session.close())

    async def _restart():
        raise BrowserNotFound("Could not find Chrome/Chromium/Brave.")

    monkeypatch.setattr(session, "restart", _restart)

    result = asyncio.run(scraper.scrape())

    assert result.success is False
    assert result.error_kind is ErrorKind.BROWSER_NOT_FOUND


def test_full_restart_after_crash(
    scraper: UsageScraper,
    session: BrowserSession,
    fake_context: FakeContext,
    relaunchable: list[FakeContext],
) -> None:
    session.authenticated = True
    fake_context.crash()

    result = asyncio.run(scraper.scrape())

    assert result.success is True
    assert len(relaunchable) == 1
    assert len(relaunchable[0].pages) == 1
    assert session.authenticated is True
