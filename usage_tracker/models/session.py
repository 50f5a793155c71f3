"""Pydantic models for session and tracking state."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from ..errors import ErrorKind
from .usage import UsageSnapshot

StatusLevel = Literal["info", "success", "warning", "error"]


class ScheduleState(BaseModel):
    """Whether polling is on and when the next scheduled scrape fires."""

    model_config = ConfigDict(frozen=True)

    is_active: bool = False
    next_fire_time: Optional[datetime] = None


class RecoveryOutcome(BaseModel):
    """Result of one best-effort recovery pass. Never raised, always returned."""

    attempted: bool = False
    recovered: bool = False
    authenticated: bool = False
    error: Optional[str] = None


class TrackingStatus(BaseModel):
    """Current state of the browser session and the polling schedule."""

    is_tracking: bool = False
    state: str = "not_running"  # not_running, running, active, tracking
    browser_running: bool = False
    authenticated: bool = False
    recovering: bool = False
    needs_login: bool = False
    consecutive_failures: int = 0
    next_update: Optional[str] = None
    last_error: Optional[str] = None
    last_error_kind: Optional[ErrorKind] = None
    snapshot: Optional[UsageSnapshot] = None
    message: str = ""
    level: StatusLevel = "info"
