"""Application configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
DATA_DIR = Path(os.getenv("DATA_DIR", Path(__file__).parent.parent / "data"))
BROWSER_PROFILE_DIR = DATA_DIR / "browser_profile"
LOG_DIR = DATA_DIR / "logs"

# Browser
BROWSER_EXECUTABLE = os.getenv("BROWSER_EXECUTABLE", "")
BROWSER_HEADLESS = os.getenv("BROWSER_HEADLESS", "false").lower() == "true"
BROWSER_TIMEOUT = int(os.getenv("BROWSER_TIMEOUT", "30000"))
LOGIN_TIMEOUT = int(os.getenv("LOGIN_TIMEOUT", "300000"))  # 5 minutes, waits on a human
NAVIGATION_SETTLE_SECONDS = float(os.getenv("NAVIGATION_SETTLE_SECONDS", "2"))
PANEL_SETTLE_SECONDS = float(os.getenv("PANEL_SETTLE_SECONDS", "3"))

# Scheduling
SCRAPE_INTERVAL_SECONDS = float(os.getenv("SCRAPE_INTERVAL_SECONDS", "300"))
COUNTDOWN_TICK_SECONDS = float(os.getenv("COUNTDOWN_TICK_SECONDS", "1"))
MAX_CONSECUTIVE_FAILURES = int(os.getenv("MAX_CONSECUTIVE_FAILURES", "3"))

# Usage limits (the page only shows percentages)
DAILY_LIMIT = int(os.getenv("DAILY_LIMIT", "500"))
WEEKLY_LIMIT = int(os.getenv("WEEKLY_LIMIT", "1500"))
NEAR_LIMIT_RATIO = float(os.getenv("NEAR_LIMIT_RATIO", "0.9"))


def ensure_dirs():
    """Create required data directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    BROWSER_PROFILE_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
