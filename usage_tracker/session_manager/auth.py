"""Decide whether the browser session is still logged in to Claude.ai."""

from __future__ import annotations

import asyncio
import logging
import sys

from playwright.async_api import Page

from ..config import BROWSER_TIMEOUT, NAVIGATION_SETTLE_SECONDS
from ..constants import (
    AUTHENTICATED_MARKER,
    BLANK_URLS,
    CLAUDE_SETTINGS_URL,
    LOGGED_OUT_PAGE_MARKERS,
    LOGIN_PROMPT_MARKER,
    LOGIN_ROUTE,
)

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def is_logged_out_text(text: str) -> bool:
    """Check rendered text for the login screen's signature."""
    return any(marker in text for marker in LOGGED_OUT_PAGE_MARKERS)


async def check_logged_in(page: Page) -> bool:
    """Cheap, non-navigating check of the page the browser is already on."""
    try:
        url = page.url
        if LOGIN_ROUTE in url or url in BLANK_URLS:
            return False

        text = await page.inner_text("body")
        if LOGIN_PROMPT_MARKER in text and AUTHENTICATED_MARKER not in text:
            return False
        return True
    except Exception:
        return False


async def validate_session(
    page: Page,
    settle_seconds: float = NAVIGATION_SETTLE_SECONDS,
    timeout_ms: int = BROWSER_TIMEOUT,
) -> bool:
    """Navigate to an authenticated-only route and check the result.

    Navigation errors count as "not logged in" and are not raised.
    """
    try:
        logger.info("Validating session via cookies...")
        await page.goto(CLAUDE_SETTINGS_URL, wait_until="networkidle", timeout=timeout_ms)
        await asyncio.sleep(settle_seconds)
    except Exception as e:
        logger.error(f"Session validation failed: {e}")
        return False

    if await check_logged_in(page):
        logger.info("Session still valid (cookies persisted)")
        return True

    logger.info("Session cookies expired, need fresh login")
    return False
