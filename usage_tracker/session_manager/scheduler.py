"""Drive Scrape Operations on a fixed interval and decide retry vs. stop.

Two independent tasks run while tracking is active:

- the work loop, which sleeps until the next fire time, runs one scrape,
  and only then computes the following fire time (so it never re-fires
  while a scrape is pending);
- the countdown tick, which once per second derives "Xm Ys" from the last
  published fire time and touches nothing else.

Stopping is cooperative: an in-flight scrape is allowed to finish.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timedelta
from typing import Optional, Protocol

from ..config import (
    COUNTDOWN_TICK_SECONDS,
    MAX_CONSECUTIVE_FAILURES,
    NEAR_LIMIT_RATIO,
    SCRAPE_INTERVAL_SECONDS,
)
from ..display import UsageDisplay
from ..models.session import ScheduleState, StatusLevel
from ..models.usage import ScrapeResult, UsageSnapshot
from .policy import decide_failure

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class Scraper(Protocol):
    async def scrape(self) -> ScrapeResult: ...


def format_countdown(seconds: float) -> str:
    """Format a positive number of seconds as ``"4m 59s"``."""
    total = int(seconds)
    return f"{total // 60}m {total % 60}s"


class UsageScheduler:
    """Owns the polling schedule and the consecutive-failure counter."""

    def __init__(
        self,
        scraper: Scraper,
        display: UsageDisplay,
        interval_seconds: float = SCRAPE_INTERVAL_SECONDS,
        tick_seconds: float = COUNTDOWN_TICK_SECONDS,
        max_failures: int = MAX_CONSECUTIVE_FAILURES,
        near_limit_ratio: float = NEAR_LIMIT_RATIO,
    ):
        self.scraper = scraper
        self.display = display
        self._interval = interval_seconds
        self._tick = tick_seconds
        self._max_failures = max_failures
        self._near_limit_ratio = near_limit_ratio

        self._active = False
        self._generation = 0
        self._failures = 0
        self._next_fire: Optional[datetime] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._work_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

        self.last_result: Optional[ScrapeResult] = None
        self.needs_login = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def is_scraping(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def state(self) -> ScheduleState:
        return ScheduleState(is_active=self._active, next_fire_time=self._next_fire)

    def countdown(self) -> Optional[str]:
        """Time left until the next scheduled scrape, or None if none is pending."""
        next_fire = self._next_fire
        if next_fire is None or not self._active:
            return None
        remaining = (next_fire - datetime.now()).total_seconds()
        if remaining <= 0:
            return None
        return format_countdown(remaining)

    # ── Commands ─────────────────────────────────────────────────────────────

    async def start(self) -> Optional[ScrapeResult]:
        """Run one scrape immediately, then keep polling. No-op if already active."""
        if self._active:
            logger.info("[SCHEDULER] Already tracking, ignoring start")
            return None

        self._active = True
        self._generation += 1
        generation = self._generation
        self._failures = 0
        self.needs_login = False
        self._stop_event = asyncio.Event()
        logger.info(f"[SCHEDULER] Tracking started (every {self._interval:g}s)")
        self.display.publish_status("Fetching usage data...", "info")

        result = await self._run_scheduled(generation)

        if self._is_current(generation):
            self._work_task = asyncio.create_task(self._work_loop(generation, self._stop_event))
            self._tick_task = asyncio.create_task(self._tick_loop(generation))
        return result

    def stop(self):
        """Stop scheduling and reset the failure counter.

        Does not interrupt a scrape already in flight.
        """
        if self._active:
            logger.info("[SCHEDULER] Tracking stopped")
        self._active = False
        self._failures = 0
        self._next_fire = None
        if self._stop_event is not None:
            self._stop_event.set()
        if self._tick_task is not None and self._tick_task is not asyncio.current_task():
            self._tick_task.cancel()
        self._tick_task = None
        self._work_task = None

    async def refresh_now(self) -> Optional[ScrapeResult]:
        """Run one scrape out of band. Leaves the schedule untouched.

        Returns None when tracking is not active.
        """
        if not self._active:
            return None
        result, owner = await self._execute()
        if owner:
            self._handle_result(result, self.countdown() or format_countdown(self._interval))
        return result

    async def wait_idle(self, timeout: Optional[float] = None):
        """Wait for an in-flight scrape (if any) to finish."""
        if not self.is_scraping:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._inflight), timeout)
        except asyncio.TimeoutError:
            logger.warning("[SCHEDULER] In-flight scrape did not finish in time")

    # ── Internals ────────────────────────────────────────────────────────────

    def _is_current(self, generation: int) -> bool:
        return self._active and self._generation == generation

    async def _execute(self) -> tuple[ScrapeResult, bool]:
        """Run a scrape, or join the one already running.

        The second value is True when this caller started the scrape and so
        owns handling its result.
        """
        if self.is_scraping:
            logger.info("[SCHEDULER] Scrape already in flight, joining it")
            return await asyncio.shield(self._inflight), False

        self.display.publish_status("Checking usage...", "info")
        self._inflight = asyncio.create_task(self.scraper.scrape())
        return await asyncio.shield(self._inflight), True

    async def _run_scheduled(self, generation: int) -> ScrapeResult:
        self._next_fire = None
        result, owner = await self._execute()
        if self._is_current(generation):
            self._next_fire = datetime.now() + timedelta(seconds=self._interval)
        if owner:
            self._handle_result(result, format_countdown(self._interval))
        return result

    async def _work_loop(self, generation: int, stop_event: asyncio.Event):
        while self._is_current(generation):
            delay = self._interval
            if self._next_fire is not None:
                delay = max(0.0, (self._next_fire - datetime.now()).total_seconds())
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            if not self._is_current(generation):
                break
            await self._run_scheduled(generation)

    async def _tick_loop(self, generation: int):
        while self._is_current(generation):
            await asyncio.sleep(self._tick)
            text = self.countdown()
            if text:
                self.display.publish_countdown(text)

    def _handle_result(self, result: ScrapeResult, next_update: str):
        self.last_result = result

        if result.success:
            self._failures = 0
            self.display.publish_snapshot(UsageSnapshot.from_result(result, next_update))
            message, level = self._success_status(result)
            self.display.publish_status(message, level)
            return

        error = result.error or "Unknown error"
        if not self._active:
            logger.info(f"[SCHEDULER] Failure after stop, not counted: {error}")
            self.display.publish_status(f"Error: {error}", "warning")
            return

        decision = decide_failure(result.error_kind, error, self._failures, self._max_failures)
        self._failures = decision.failures
        logger.info(
            f"[SCHEDULER] Failure classified as {decision.failure_class.value} "
            f"({self._failures}/{self._max_failures}), keep_active={decision.keep_active}"
        )
        self.display.publish_status(decision.message, decision.level)

        if not decision.keep_active:
            self.stop()
            self.needs_login = decision.needs_login

    def _success_status(self, result: ScrapeResult) -> tuple[str, StatusLevel]:
        ratio = self._near_limit_ratio
        if result.daily and result.daily.used >= result.daily.limit * ratio:
            return "You're nearing your daily limit!", "warning"
        if result.weekly and result.weekly.used >= result.weekly.limit * ratio:
            return "You're nearing your weekly limit!", "warning"
        return "Usage updated successfully", "success"
