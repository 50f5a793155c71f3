"""MCP Server entry point for the Claude.ai usage tracker.

Exposes the tracker's controls via the Model Context Protocol (stdio):
- Setup: setup_browser, force_restart_browser
- Tracking: start_tracking, stop_tracking, refresh_now
- Status: usage_status, usage_report

The browser session lives inside this process. It is closed when the server
shuts down.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from mcp.server.fastmcp import Context, FastMCP

from .config import ensure_dirs
from .session_manager.manager import TrackerManager
from .tools import tracking_tools

# Configure logging to stderr (stdout is reserved for MCP JSON-RPC)
logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("usage-tracker")

# Ensure data directories exist
ensure_dirs()


# ── Lifespan: own the tracker, clean up the browser on exit ──────────────────


@asynccontextmanager
async def lifespan(server: FastMCP):
    """Create the tracker for the server's lifetime and close the browser on exit."""
    manager = TrackerManager()
    logger.info("Usage tracker ready.")
    try:
        yield {"manager": manager}
    finally:
        await manager.shutdown()
        logger.info("Usage tracker stopped.")


def _manager(ctx: Context) -> TrackerManager:
    return ctx.request_context.lifespan_context["manager"]


# ── MCP Server ───────────────────────────────────────────────────────────────

mcp = FastMCP(
    "usage-tracker",
    lifespan=lifespan,
    instructions=(
        "Claude.ai Usage Tracker - Tools to monitor daily and weekly usage limits. "
        "Call setup_browser once to open the browser and log in; tracking starts "
        "automatically and refreshes every 5 minutes. "
        "Use usage_report for a readable summary or usage_status for the full state. "
        "Use refresh_now to check immediately, stop_tracking/start_tracking to pause "
        "and resume, and force_restart_browser if the browser gets stuck."
    ),
)


# ── Setup Tools ──────────────────────────────────────────────────────────────


@mcp.tool()
async def tool_setup_browser(ctx: Context) -> str:
    """Open the browser and log in to Claude.ai, then start tracking.

    Restores the previous login from the saved browser profile when possible.
    Otherwise a browser window opens and waits up to 5 minutes for manual login.
    """
    return await tracking_tools.setup_browser(_manager(ctx))


@mcp.tool()
async def tool_force_restart_browser(ctx: Context) -> str:
    """Kill the browser and leftover browser processes. Run setup_browser afterwards."""
    return await tracking_tools.force_restart_browser(_manager(ctx))


# ── Tracking Tools ───────────────────────────────────────────────────────────


@mcp.tool()
async def tool_start_tracking(ctx: Context) -> str:
    """Resume polling usage every 5 minutes."""
    return await tracking_tools.start_tracking(_manager(ctx))


@mcp.tool()
async def tool_stop_tracking(ctx: Context) -> str:
    """Pause polling. The browser stays open and logged in."""
    return await tracking_tools.stop_tracking(_manager(ctx))


@mcp.tool()
async def tool_refresh_now(ctx: Context) -> str:
    """Check usage immediately without changing the 5 minute schedule."""
    return await tracking_tools.refresh_now(_manager(ctx))


# ── Status Tools ─────────────────────────────────────────────────────────────


@mcp.tool()
async def tool_usage_report(ctx: Context) -> str:
    """Readable summary: daily/weekly usage, reset times, last and next update."""
    return tracking_tools.usage_report(_manager(ctx))


@mcp.tool()
async def tool_usage_status(ctx: Context) -> str:
    """Full tracker state as JSON, including failure count and last error."""
    return tracking_tools.usage_status(_manager(ctx))


# ── Entry Point ──────────────────────────────────────────────────────────────


def main():
    """Run the MCP server on STDIO transport."""
    logger.info("Starting Usage Tracker MCP server...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
