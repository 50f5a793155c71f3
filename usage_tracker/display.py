"""Interface to whatever shows usage to the user, plus an in-process board."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Protocol

from .models.session import StatusLevel
from .models.usage import UsageSnapshot, UsageWindow

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class UsageDisplay(Protocol):
    def publish_snapshot(self, snapshot: UsageSnapshot) -> None: ...

    def publish_countdown(self, next_update: str) -> None: ...

    def publish_status(self, message: str, level: StatusLevel = "info") -> None: ...

    def acknowledge_shutdown(self) -> None: ...


def _window_line(label: str, window: Optional[UsageWindow]) -> str:
    if window is None:
        return f"{label}: Loading..."
    return f"{label}: {window.used}/{window.limit} ({window.percent_used}%)"


class StatusBoard:
    """Remembers the latest values pushed by the scheduler and renders them."""

    def __init__(self):
        self.snapshot: Optional[UsageSnapshot] = None
        self.next_update: Optional[str] = None
        self.status: str = ""
        self.level: StatusLevel = "info"
        self.shutdown_acknowledged = False

    def publish_snapshot(self, snapshot: UsageSnapshot) -> None:
        self.snapshot = snapshot
        self.next_update = snapshot.next_update
        logger.info(f"Usage updated: {self.title()}")

    def publish_countdown(self, next_update: str) -> None:
        self.next_update = next_update

    def publish_status(self, message: str, level: StatusLevel = "info") -> None:
        self.status = message
        self.level = level
        log = logger.warning if level in ("warning", "error") else logger.info
        log(f"Status: {message}")

    def acknowledge_shutdown(self) -> None:
        self.shutdown_acknowledged = True
        logger.info("Browser cleanup completed")

    def title(self) -> str:
        """Compact form, e.g. ``D:42% W:67%``."""
        snap = self.snapshot
        if snap is None or snap.daily is None or snap.weekly is None:
            return "--"
        return f"D:{snap.daily.percent_used}% W:{snap.weekly.percent_used}%"

    def render(self) -> str:
        snap = self.snapshot or UsageSnapshot()
        lines = [
            _window_line("Daily", snap.daily),
            _window_line("Weekly", snap.weekly),
            f"Daily resets in: {snap.daily_reset}",
            f"Weekly resets: {snap.weekly_reset}",
            f"Last updated: {snap.last_updated}",
            f"Next update: {self.next_update or snap.next_update}",
        ]
        if self.status:
            lines.append(f"Status: {self.status}")
        return "\n".join(lines)
