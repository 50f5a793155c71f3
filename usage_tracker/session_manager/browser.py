"""Chromium browser automation: discovery, launch, login, disconnect handling."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import (
    BROWSER_EXECUTABLE,
    BROWSER_HEADLESS,
    BROWSER_PROFILE_DIR,
    BROWSER_TIMEOUT,
    LOGIN_TIMEOUT,
    NAVIGATION_SETTLE_SECONDS,
)
from ..constants import (
    BROWSER_ARGS,
    BROWSER_CANDIDATES,
    BROWSER_USER_AGENT,
    BROWSER_VIEWPORT,
    CLAUDE_LOGIN_URL,
    LOGIN_COMPLETE_JS,
)
from ..errors import BrowserNotFound, LaunchFailed, SessionExpired

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class BrowserSession:
    """Owns one browser process (a persistent context) and its active page.

    ``context`` is replaced wholesale on restart and cleared by the context's
    ``close`` event, which is the only signal that the browser is gone.
    """

    def __init__(
        self,
        profile_dir: Path | str = BROWSER_PROFILE_DIR,
        headless: Optional[bool] = None,
        executable_path: Optional[str] = None,
        settle_seconds: float = NAVIGATION_SETTLE_SECONDS,
    ):
        self._profile_dir = Path(profile_dir)
        self._headless = headless if headless is not None else BROWSER_HEADLESS
        self._executable_override = executable_path or BROWSER_EXECUTABLE
        self.settle_seconds = settle_seconds
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self.executable_path: Optional[str] = None
        self.page: Optional[Page] = None
        self.authenticated: bool = False
        self.recovering: bool = False

    @property
    def context(self) -> Optional[BrowserContext]:
        return self._context

    @property
    def is_running(self) -> bool:
        return self._context is not None

    # ── Discovery ────────────────────────────────────────────────────────────

    def find_browser(self) -> Optional[str]:
        """Return the first existing executable from the candidate list."""
        candidates = list(BROWSER_CANDIDATES)
        if self._executable_override:
            candidates.insert(0, self._executable_override)

        for path in candidates:
            if Path(path).is_file():
                logger.info(f"Found browser at: {path}")
                return path
        return None

    async def kill_stale_processes(self) -> bool:
        """Terminate browsers still holding this app's profile directory.

        Returns True if anything was killed.
        """
        logger.info("Checking for stale browser processes...")
        try:
            proc = await asyncio.create_subprocess_exec(
                "pkill",
                "-f",
                str(self._profile_dir),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            returncode = await proc.wait()
        except OSError as e:
            logger.info(f"pkill unavailable, skipping stale process cleanup: {e}")
            return False

        if returncode != 0:
            logger.info("No stale processes found")
            return False

        logger.info("Cleaned up stale browser processes")
        # Give the processes a moment to release the profile lock
        await asyncio.sleep(1)
        return True

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def initialize(self) -> Page:
        """Launch a fresh browser bound to the persistent profile.

        Closes every page the profile restored and opens exactly one new page.

        Raises:
            BrowserNotFound: no candidate executable exists.
            LaunchFailed: the browser process could not be started.
        """
        await self.kill_stale_processes()

        self.executable_path = self.find_browser()
        if not self.executable_path:
            raise BrowserNotFound(
                "Could not find Chrome/Chromium/Brave. Please install one of these browsers."
            )

        try:
            logger.info(f"Launching browser (headless={self._headless})...")
            context = await self._launch(self.executable_path)
        except Exception as e:
            logger.error(f"Failed to launch browser: {e}")
            raise LaunchFailed(f"Failed to launch browser: {e}") from e

        self._attach(context)

        for stale_page in list(context.pages):
            try:
                await stale_page.close()
            except Exception as e:
                logger.info(f"Could not close page: {e}")

        self.page = await context.new_page()
        logger.info("Browser initialized with a single page.")
        return self.page

    async def _launch(self, executable_path: str) -> BrowserContext:
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        self._profile_dir.mkdir(parents=True, exist_ok=True)
        context = await self._playwright.chromium.launch_persistent_context(
            str(self._profile_dir),
            executable_path=executable_path,
            headless=self._headless,
            args=BROWSER_ARGS,
            viewport=BROWSER_VIEWPORT,
            user_agent=BROWSER_USER_AGENT,
        )
        context.set_default_timeout(BROWSER_TIMEOUT)
        return context

    def _attach(self, context: BrowserContext):
        self._context = context
        self.authenticated = False
        context.on("close", self._on_disconnected)

    def _on_disconnected(self, context: BrowserContext):
        # A stale context from before a restart must not clear the new one
        if context is not self._context:
            return
        logger.warning("Browser disconnected! Will attempt restart on next scrape.")
        self._context = None
        self.page = None
        self.authenticated = False

    async def restart(self) -> Page:
        """Tear the session down and initialize it again."""
        logger.info("Restarting browser...")
        await self.close()
        page = await self.initialize()
        logger.info("Browser restarted successfully")
        return page

    async def login(self, timeout_ms: int = LOGIN_TIMEOUT) -> bool:
        """Open the login page and wait for the user to sign in by hand.

        Raises:
            SessionExpired: the user did not finish logging in within ``timeout_ms``.
        """
        if self.page is None:
            raise RuntimeError("Browser is not running.")

        await self.page.goto(CLAUDE_LOGIN_URL, wait_until="networkidle", timeout=BROWSER_TIMEOUT)
        await asyncio.sleep(self.settle_seconds)

        logger.info("Please log in manually in the browser window...")
        try:
            await self.page.wait_for_function(LOGIN_COMPLETE_JS, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise SessionExpired("Login was not completed in time") from e

        self.authenticated = True
        logger.info("Login successful!")
        return True

    async def close(self):
        """Close the browser. Errors while terminating are logged, not raised."""
        context = self._context
        self._context = None
        self.page = None
        self.authenticated = False
        self.recovering = False

        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            finally:
                self._playwright = None

        logger.info("Browser session closed.")
