"""One end-to-end read of the usage panel, with best-effort recovery."""

from __future__ import annotations

import asyncio
import logging
import sys

from playwright.async_api import Page

from ..config import BROWSER_TIMEOUT, NAVIGATION_SETTLE_SECONDS, PANEL_SETTLE_SECONDS
from ..constants import (
    CLAUDE_SETTINGS_URL,
    CLICK_USAGE_CONTROL_JS,
    SETTINGS_ROUTE,
    USAGE_CONTROL_TEXT,
)
from ..errors import RECOVERABLE_KINDS, ErrorKind, SessionExpired, classify_exception
from ..models.session import RecoveryOutcome
from ..models.usage import ScrapeResult, UsageMetrics
from .auth import check_logged_in, is_logged_out_text, validate_session
from .browser import BrowserSession
from .pages import get_valid_page
from .parser import parse_usage

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

SESSION_EXPIRED_MESSAGE = "Session expired - please log in again via setup"
RECOVERY_IN_PROGRESS_MESSAGE = "Recovery in progress, please wait..."


class UsageScraper:
    """Runs Scrape Operations against a single BrowserSession.

    ``scrape()`` never raises: every failure becomes a failed ScrapeResult
    carrying the original message and its ErrorKind.
    """

    def __init__(
        self,
        session: BrowserSession,
        navigation_settle_seconds: float = NAVIGATION_SETTLE_SECONDS,
        panel_settle_seconds: float = PANEL_SETTLE_SECONDS,
        timeout_ms: int = BROWSER_TIMEOUT,
    ):
        self.session = session
        self._navigation_settle = navigation_settle_seconds
        self._panel_settle = panel_settle_seconds
        self._timeout_ms = timeout_ms

    async def scrape(self) -> ScrapeResult:
        if self.session.recovering:
            logger.info("[SCRAPE] Skipped: recovery in progress")
            return ScrapeResult.failed(RECOVERY_IN_PROGRESS_MESSAGE, ErrorKind.RECOVERY_IN_PROGRESS)

        try:
            metrics = await self._scrape()
        except Exception as e:
            kind = classify_exception(e)
            logger.error(f"[SCRAPE] Failed ({kind.value}): {e}")
            if kind in RECOVERABLE_KINDS:
                await self.recover()
            return ScrapeResult.failed(str(e), kind)

        return ScrapeResult.ok(metrics)

    async def _scrape(self) -> UsageMetrics:
        logger.info("[SCRAPE] Step 1: Acquiring page")
        page = await get_valid_page(self.session)

        logger.info("[SCRAPE] Step 2: Checking authentication")
        await self._ensure_authenticated(page)

        if SETTINGS_ROUTE not in page.url:
            logger.info(f"[SCRAPE] Step 3: Navigating to {CLAUDE_SETTINGS_URL}")
            await self._goto_settings(page)

        logger.info("[SCRAPE] Step 4: Opening usage panel")
        text = await self._read_usage_panel(page)

        if is_logged_out_text(text):
            self.session.authenticated = False
            raise SessionExpired(SESSION_EXPIRED_MESSAGE)

        logger.info(f"[SCRAPE] Page text (first 1000 chars): {text[:1000]!r}")
        return parse_usage(text)

    async def _ensure_authenticated(self, page: Page):
        if not self.session.authenticated:
            logger.info("Not logged in, attempting session recovery...")
            if not await validate_session(page, self._navigation_settle, self._timeout_ms):
                raise SessionExpired(SESSION_EXPIRED_MESSAGE)
            self.session.authenticated = True
            return

        if await check_logged_in(page):
            return

        # Often just about:blank after a page was replaced
        logger.info("Login check failed, navigating to settings to re-check...")
        if not await validate_session(page, self._navigation_settle, self._timeout_ms):
            self.session.authenticated = False
            raise SessionExpired(SESSION_EXPIRED_MESSAGE)

    async def _goto_settings(self, page: Page):
        await page.goto(CLAUDE_SETTINGS_URL, wait_until="networkidle", timeout=self._timeout_ms)
        await asyncio.sleep(self._navigation_settle)

    async def _read_usage_panel(self, page: Page) -> str:
        clicked = await page.evaluate(CLICK_USAGE_CONTROL_JS, USAGE_CONTROL_TEXT)
        if not clicked:
            logger.warning(f"No '{USAGE_CONTROL_TEXT}' control found, reading page as-is")
        await asyncio.sleep(self._panel_settle)
        return await page.inner_text("body")

    async def recover(self) -> RecoveryOutcome:
        """Re-acquire a page, reload settings and refresh the login flag.

        Best-effort: errors are logged and reported in the outcome, never raised.
        ``recovering`` is cleared whatever happens.
        """
        session = self.session
        context = session.context
        if context is None:
            logger.info("[RECOVERY] Browser is gone, restart deferred to next scrape")
            return RecoveryOutcome()

        session.recovering = True
        logger.info("[RECOVERY] Attempting auto-recovery...")
        try:
            pages = context.pages
            session.page = pages[0] if pages else await context.new_page()
            await self._goto_settings(session.page)
            session.authenticated = await check_logged_in(session.page)
            logger.info(f"[RECOVERY] Auto-recovery successful, logged in: {session.authenticated}")
            return RecoveryOutcome(
                attempted=True, recovered=True, authenticated=session.authenticated
            )
        except Exception as e:
            logger.error(f"[RECOVERY] Auto-recovery failed: {e}")
            return RecoveryOutcome(
                attempted=True, authenticated=session.authenticated, error=str(e)
            )
        finally:
            session.recovering = False
