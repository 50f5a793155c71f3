"""Tracker manager.

Bridges the display layer to the browser session and the polling schedule.
Handles browser setup and login, begin/stop tracking, manual refresh, forced
restarts, and shutdown cleanup.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from ..config import BROWSER_TIMEOUT, ensure_dirs
from ..display import StatusBoard, UsageDisplay
from ..errors import ScrapeError
from ..models.session import TrackingStatus
from ..models.usage import ScrapeResult
from .auth import validate_session
from .browser import BrowserSession
from .scheduler import UsageScheduler
from .scraper import UsageScraper

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class TrackerManager:
    """Orchestrates the browser session, scraper, and scheduler."""

    def __init__(
        self,
        session: Optional[BrowserSession] = None,
        display: Optional[UsageDisplay] = None,
        scraper: Optional[UsageScraper] = None,
        scheduler: Optional[UsageScheduler] = None,
    ):
        self.session = session or BrowserSession()
        self.display = display or StatusBoard()
        self.scraper = scraper or UsageScraper(self.session)
        self.scheduler = scheduler or UsageScheduler(self.scraper, self.display)

    async def setup(self) -> dict:
        """Launch the browser and get it logged in, then begin tracking.

        Reuses cookies from the persistent profile when they are still valid;
        otherwise waits for the user to log in by hand.

        Returns:
            dict with keys: state, message
            state: "tracking" | "stopped" | "error"
        """
        ensure_dirs()
        self.scheduler.stop()
        await self.scheduler.wait_idle(BROWSER_TIMEOUT / 1000)
        self.display.publish_status("Launching browser... Please wait.", "info")

        try:
            await self.session.close()
            page = await self.session.initialize()

            if await validate_session(page, settle_seconds=self.session.settle_seconds):
                self.session.authenticated = True
            else:
                self.display.publish_status(
                    "Browser opened! Please log in to Claude.ai in the browser window.", "info"
                )
                await self.session.login()
        except Exception as e:
            logger.error(f"Setup failed: {e}", exc_info=not isinstance(e, ScrapeError))
            await self.session.close()
            self.display.publish_status(f"Setup failed: {e}", "error")
            return {"state": "error", "message": f"Setup failed: {e}"}

        self.display.publish_status("Login successful! Starting tracking...", "success")
        return await self.begin_tracking()

    async def begin_tracking(self) -> dict:
        if self.scheduler.is_active:
            return {"state": "tracking", "message": "Already tracking."}
        if not self.session.authenticated:
            self.display.publish_status("Please complete setup first!", "warning")
            return {"state": "needs_setup", "message": "Please complete setup first."}

        result = await self.scheduler.start()
        if not self.scheduler.is_active:
            return {"state": "stopped", "message": f"Tracking stopped: {result.error}"}
        return {"state": "tracking", "message": self._describe(result)}

    def stop_tracking(self) -> dict:
        self.scheduler.stop()
        self.display.publish_status("Tracking paused", "info")
        return {"state": "stopped", "message": "Tracking paused."}

    async def refresh_now(self) -> Optional[ScrapeResult]:
        """Out-of-band scrape. Does nothing unless tracking is active."""
        return await self.scheduler.refresh_now()

    async def force_restart(self) -> dict:
        """Stop tracking, close the browser and kill leftover browser processes."""
        self.display.publish_status("Killing browser processes and restarting...", "info")
        self.scheduler.stop()
        await self.scheduler.wait_idle(BROWSER_TIMEOUT / 1000)
        await self.session.close()
        await self.session.kill_stale_processes()
        message = "Browser processes cleared! Run setup to start again."
        self.display.publish_status(message, "success")
        return {"state": "not_running", "message": message}

    async def shutdown(self):
        """Release browser resources before the host exits, then acknowledge."""
        logger.info("App quitting, cleaning up browser...")
        self.scheduler.stop()
        await self.scheduler.wait_idle(BROWSER_TIMEOUT / 1000)
        await self.session.close()
        self.display.acknowledge_shutdown()

    def status(self) -> TrackingStatus:
        last = self.scheduler.last_result
        board = self.display if isinstance(self.display, StatusBoard) else None

        if self.scheduler.is_active:
            state = "tracking"
        elif self.session.authenticated:
            state = "active"
        elif self.session.is_running:
            state = "running"
        else:
            state = "not_running"

        return TrackingStatus(
            is_tracking=self.scheduler.is_active,
            state=state,
            browser_running=self.session.is_running,
            authenticated=self.session.authenticated,
            recovering=self.session.recovering,
            needs_login=self.scheduler.needs_login,
            consecutive_failures=self.scheduler.consecutive_failures,
            next_update=self.scheduler.countdown(),
            last_error=last.error if last and not last.success else None,
            last_error_kind=last.error_kind if last and not last.success else None,
            snapshot=board.snapshot if board else None,
            message=board.status if board else "",
            level=board.level if board else "info",
        )

    @staticmethod
    def _describe(result: Optional[ScrapeResult]) -> str:
        if result is None:
            return "Tracking started."
        if result.success:
            return "Tracking started, usage fetched."
        return f"Tracking started, first check failed: {result.error}"
