"""Keep exactly one usable page open per browser session."""

from __future__ import annotations

import logging
import sys

from playwright.async_api import Page

from .browser import BrowserSession

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


async def probe_page(page: Page) -> bool:
    """Return True if the page still answers a trivial read."""
    try:
        await page.title()
        return True
    except Exception:
        return False


async def get_valid_page(session: BrowserSession) -> Page:
    """Return the session's single live page, healing the session if needed.

    - No browser process: restart the whole session first.
    - Extra tabs (left behind by earlier partial failures): closed.
    - First tab fails the probe (detached): closed and replaced.
    - No tabs at all: one is created.

    The returned page has either just passed the probe or was just created.
    """
    if session.context is None:
        logger.info("Browser not running, restarting...")
        await session.restart()

    context = session.context
    pages = list(context.pages)

    for index, extra in enumerate(pages[1:], start=1):
        logger.info(f"Closing extra tab: {index}")
        try:
            await extra.close()
        except Exception as e:
            logger.info(f"Could not close extra tab: {e}")

    if not pages:
        logger.info("No pages found, creating one...")
        session.page = await context.new_page()
        return session.page

    page = pages[0]
    if await probe_page(page):
        session.page = page
        return page

    logger.info("Page detached, recreating...")
    try:
        await page.close()
    except Exception:
        pass
    session.page = await context.new_page()
    return session.page
