"""Error taxonomy for scrape failures.

Every failure that reaches the Scrape Operation boundary is reduced to one
``ErrorKind``. The kind travels inside ``ScrapeResult`` so the scheduler can
decide retry vs. stop without looking at message text.
"""

from __future__ import annotations

from enum import Enum

from .constants import (
    DETACHED_SIGNATURES,
    NETWORK_SIGNATURES,
    TARGET_CLOSED_SIGNATURES,
    TIMEOUT_SIGNATURES,
)


class ErrorKind(str, Enum):
    BROWSER_NOT_FOUND = "browser_not_found"
    LAUNCH_FAILED = "launch_failed"
    SESSION_EXPIRED = "session_expired"
    PAGE_DETACHED = "page_detached"
    TARGET_CLOSED = "target_closed"
    NETWORK = "network_error"
    TIMEOUT = "timeout"
    RECOVERY_IN_PROGRESS = "recovery_in_progress"
    UNKNOWN = "unknown"


# Failures after which the page is re-acquired before returning
RECOVERABLE_KINDS = frozenset(
    {
        ErrorKind.PAGE_DETACHED,
        ErrorKind.TARGET_CLOSED,
        ErrorKind.NETWORK,
    }
)


class ScrapeError(Exception):
    """Base class for failures raised inside a Scrape Operation."""

    kind = ErrorKind.UNKNOWN


class BrowserNotFound(ScrapeError):
    kind = ErrorKind.BROWSER_NOT_FOUND


class LaunchFailed(ScrapeError):
    kind = ErrorKind.LAUNCH_FAILED


class SessionExpired(ScrapeError):
    kind = ErrorKind.SESSION_EXPIRED


class PageDetached(ScrapeError):
    kind = ErrorKind.PAGE_DETACHED


class TargetClosed(ScrapeError):
    kind = ErrorKind.TARGET_CLOSED


class NetworkError(ScrapeError):
    kind = ErrorKind.NETWORK


class NavigationTimeout(ScrapeError):
    kind = ErrorKind.TIMEOUT


class RecoveryInProgress(ScrapeError):
    kind = ErrorKind.RECOVERY_IN_PROGRESS


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map any exception (typically a Playwright error) to an ErrorKind."""
    if isinstance(exc, ScrapeError):
        return exc.kind

    message = str(exc)
    if any(sig in message for sig in DETACHED_SIGNATURES):
        return ErrorKind.PAGE_DETACHED
    if any(sig in message for sig in TARGET_CLOSED_SIGNATURES):
        return ErrorKind.TARGET_CLOSED
    if isinstance(exc, TimeoutError) or any(sig in message for sig in TIMEOUT_SIGNATURES):
        return ErrorKind.TIMEOUT
    if any(sig in message for sig in NETWORK_SIGNATURES):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


__all__ = [
    "ErrorKind",
    "RECOVERABLE_KINDS",
    "ScrapeError",
    "BrowserNotFound",
    "LaunchFailed",
    "SessionExpired",
    "PageDetached",
    "TargetClosed",
    "NetworkError",
    "NavigationTimeout",
    "RecoveryInProgress",
    "classify_exception",
]
