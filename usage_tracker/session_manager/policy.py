"""Decide what the scheduler does after a failed Scrape Operation.

Each ErrorKind maps to one FailureClass. Every non-transient class except
"recovering" counts towards the consecutive-failure limit, but only the
thresholded classes can stop the schedule; the others are surfaced and
retried on the next tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..errors import ErrorKind
from ..models.session import StatusLevel


class FailureClass(str, Enum):
    TRANSIENT = "transient"
    RECOVERING = "recovering"
    AUTO_RECOVERING = "auto_recovering"
    SESSION_EXPIRED = "session_expired"
    UNKNOWN = "unknown"


FAILURE_CLASSES: dict[ErrorKind, FailureClass] = {
    ErrorKind.NETWORK: FailureClass.TRANSIENT,
    ErrorKind.TIMEOUT: FailureClass.TRANSIENT,
    ErrorKind.RECOVERY_IN_PROGRESS: FailureClass.RECOVERING,
    ErrorKind.PAGE_DETACHED: FailureClass.AUTO_RECOVERING,
    ErrorKind.TARGET_CLOSED: FailureClass.AUTO_RECOVERING,
    ErrorKind.SESSION_EXPIRED: FailureClass.SESSION_EXPIRED,
    ErrorKind.BROWSER_NOT_FOUND: FailureClass.UNKNOWN,
    ErrorKind.LAUNCH_FAILED: FailureClass.UNKNOWN,
    ErrorKind.UNKNOWN: FailureClass.UNKNOWN,
}

COUNTED_CLASSES = frozenset(
    {FailureClass.AUTO_RECOVERING, FailureClass.SESSION_EXPIRED, FailureClass.UNKNOWN}
)

THRESHOLDED_CLASSES = frozenset({FailureClass.SESSION_EXPIRED, FailureClass.UNKNOWN})

RETRY_STATUS: dict[FailureClass, tuple[str, StatusLevel]] = {
    FailureClass.TRANSIENT: ("Network error - will retry in 5 minutes...", "warning"),
    FailureClass.RECOVERING: ("Recovering from error, please wait...", "info"),
    FailureClass.AUTO_RECOVERING: ("Page refreshed, auto-recovering on next check...", "info"),
}


@dataclass(frozen=True)
class FailureDecision:
    failure_class: FailureClass
    failures: int  # consecutive-failure counter after this failure
    keep_active: bool
    message: str
    level: StatusLevel
    needs_login: bool = False


def classify_failure(kind: ErrorKind | None) -> FailureClass:
    if kind is None:
        return FailureClass.UNKNOWN
    return FAILURE_CLASSES.get(kind, FailureClass.UNKNOWN)


def decide_failure(
    kind: ErrorKind | None,
    error: str,
    failures: int,
    max_failures: int,
) -> FailureDecision:
    """Return the scheduler's reaction to a failure.

    ``failures`` is the consecutive-failure count before this failure.
    """
    failure_class = classify_failure(kind)

    if failure_class in COUNTED_CLASSES:
        failures += 1

    if failure_class not in THRESHOLDED_CLASSES:
        message, level = RETRY_STATUS[failure_class]
        return FailureDecision(failure_class, failures, True, message, level)

    under_limit = failures < max_failures

    if failure_class is FailureClass.SESSION_EXPIRED:
        if under_limit:
            return FailureDecision(
                failure_class,
                failures,
                True,
                f"Session check failed, will retry... ({failures}/{max_failures})",
                "warning",
            )
        return FailureDecision(
            failure_class,
            failures,
            False,
            "Session expired - run setup to log in again",
            "warning",
            needs_login=True,
        )

    if under_limit:
        return FailureDecision(failure_class, failures, True, f"Error: {error} (retrying...)", "warning")
    return FailureDecision(failure_class, failures, False, f"Repeated failures: {error}", "error")


__all__ = [
    "FailureClass",
    "FailureDecision",
    "FAILURE_CLASSES",
    "COUNTED_CLASSES",
    "THRESHOLDED_CLASSES",
    "classify_failure",
    "decide_failure",
]
