"""In-memory stand-ins for Playwright objects and the scraper, shared by the tests."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from usage_tracker.constants import CLAUDE_SETTINGS_URL
from usage_tracker.errors import ErrorKind
from usage_tracker.models.usage import ScrapeResult, UsageMetrics, UsageWindow

SETTINGS_TEXT = "Settings\nProfile\nBilling\nUsage\n"

USAGE_TEXT = (
    "Settings\n"
    "Plan usage limits\n"
    "Current session\n"
    "42% used\n"
    "Resets in 3h 12m\n"
    "Weekly limits\n"
    "All models\n"
    "67% used\n"
    "Resets Tuesday\n"
)

LOGIN_TEXT = "Welcome back\nLog in to Claude\nContinue with email\n"


class FakePage:
    """In-memory stand-in for playwright's async Page."""

    def __init__(self, context: "FakeContext", url: str = "about:blank", text: str = ""):
        self.context = context
        self.url = url
        self.text = text
        self.closed = False
        self.detached = False
        self.goto_error: Optional[Exception] = None
        self.evaluate_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.goto_calls: list[str] = []
        self.clicks = 0

    async def title(self) -> str:
        if self.detached:
            raise Exception("Frame was detached")
        if self.closed:
            raise Exception("Target page, context or browser has been closed")
        return "Claude"

    async def close(self):
        if self.close_error is not None:
            raise self.close_error
        self.closed = True
        if self in self.context.pages:
            self.context.pages.remove(self)

    async def goto(self, url: str, **kwargs):
        self.goto_calls.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        self.text = self.context.site.get(url, "")

    async def inner_text(self, selector: str) -> str:
        if self.detached:
            raise Exception("Frame was detached")
        return self.text

    async def evaluate(self, expression: str, arg=None):
        if self.evaluate_error is not None:
            raise self.evaluate_error
        self.clicks += 1
        if self.context.usage_text is not None:
            self.text = self.context.usage_text
            return True
        return False

    async def wait_for_function(self, expression: str, timeout=None):
        if self.wait_error is not None:
            raise self.wait_error
        self.url = f"{CLAUDE_SETTINGS_URL}/new"


class FakeContext:
    """In-memory stand-in for a playwright persistent BrowserContext."""

    def __init__(self, site: Optional[dict] = None, usage_text: Optional[str] = None):
        self.pages: list[FakePage] = []
        self.site = site if site is not None else {CLAUDE_SETTINGS_URL: SETTINGS_TEXT}
        self.usage_text = usage_text
        self.closed = False
        self.close_error: Optional[Exception] = None
        self._handlers: dict[str, list[Callable]] = {}

    def on(self, event: str, handler: Callable):
        self._handlers.setdefault(event, []).append(handler)

    def set_default_timeout(self, timeout):
        pass

    def add_page(self, url: str = "about:blank", text: str = "") -> FakePage:
        page = FakePage(self, url, text)
        self.pages.append(page)
        return page

    async def new_page(self) -> FakePage:
        return self.add_page()

    def crash(self):
        """Simulate the browser process disappearing."""
        for handler in self._handlers.get("close", []):
            handler(self)

    async def close(self):
        if self.close_error is not None:
            raise self.close_error
        self.closed = True
        self.crash()


class FakeScraper:
    """Returns queued results; records concurrency."""

    def __init__(self, results=None, delay: float = 0.0):
        self._results = list(results or [])
        self._default = ok_result()
        self.delay = delay
        self.calls = 0
        self.inflight = 0
        self.max_inflight = 0

    async def scrape(self) -> ScrapeResult:
        self.calls += 1
        self.inflight += 1
        self.max_inflight = max(self.max_inflight, self.inflight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self._results:
                return self._results.pop(0)
            return self._default
        finally:
            self.inflight -= 1


def ok_result(daily_percent: int = 42, weekly_percent: int = 67) -> ScrapeResult:
    return ScrapeResult.ok(
        UsageMetrics(
            daily=UsageWindow.from_percent(daily_percent, 500),
            weekly=UsageWindow.from_percent(weekly_percent, 1500),
            daily_reset="3h 12m",
            weekly_reset="Tuesday",
        )
    )


def failed_result(kind: ErrorKind, message: str = "boom") -> ScrapeResult:
    return ScrapeResult.failed(message, kind)

