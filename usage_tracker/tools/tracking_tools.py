"""MCP tools for controlling usage tracking."""

from __future__ import annotations

import json

from ..display import StatusBoard
from ..session_manager.manager import TrackerManager


def _format_state(result: dict) -> str:
    state = result.get("state", "unknown")
    message = result.get("message", "")

    if state == "tracking":
        return f"Tracking is active. {message}"
    elif state == "needs_setup":
        return f"{message}\n\nRun setup_browser first and log in to Claude.ai in the browser window."
    elif state == "error":
        return f"Error: {message}"
    else:
        return f"State: {state}. {message}"


async def setup_browser(manager: TrackerManager) -> str:
    """Launch the browser, restore or complete the login, and begin tracking.

    Reuses cookies from the persistent browser profile when possible. If they
    have expired, a browser window opens and waits up to 5 minutes for you to
    log in manually.

    Returns:
        Setup status message.
    """
    return _format_state(await manager.setup())


async def start_tracking(manager: TrackerManager) -> str:
    """Begin polling usage every 5 minutes. Requires a completed setup."""
    return _format_state(await manager.begin_tracking())


async def stop_tracking(manager: TrackerManager) -> str:
    """Pause polling. The browser stays open."""
    return manager.stop_tracking().get("message", "Tracking paused.")


async def refresh_now(manager: TrackerManager) -> str:
    """Check usage right away without changing the schedule."""
    result = await manager.refresh_now()
    if result is None:
        return "Tracking is not active. Start tracking first."
    if not result.success:
        return f"Refresh failed: {result.error}"
    return usage_report(manager)


async def force_restart_browser(manager: TrackerManager) -> str:
    """Kill the browser and any leftover browser processes."""
    return (await manager.force_restart()).get("message", "")


def usage_report(manager: TrackerManager) -> str:
    """Human-readable summary of the latest usage snapshot."""
    if isinstance(manager.display, StatusBoard):
        return manager.display.render()
    return usage_status(manager)


def usage_status(manager: TrackerManager) -> str:
    """Return the tracking state and latest usage as JSON."""
    status = manager.status()
    return json.dumps(status.model_dump(mode="json"), indent=2)
