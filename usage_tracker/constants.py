"""Claude.ai URLs, page markers, text patterns, and browser candidates."""

import re

# ── URLs ─────────────────────────────────────────────────────────────────────

CLAUDE_HOST = "claude.ai"
CLAUDE_BASE = f"https://{CLAUDE_HOST}"
CLAUDE_LOGIN_URL = f"{CLAUDE_BASE}/login"
CLAUDE_SETTINGS_URL = f"{CLAUDE_BASE}/settings"

# Substring used to decide whether the page is already on the metrics route
SETTINGS_ROUTE = f"{CLAUDE_HOST}/settings"
LOGIN_ROUTE = "/login"
BLANK_URLS = ("", "about:blank")

# ── Browser Launch ───────────────────────────────────────────────────────────

# Checked in order; the first existing file wins.
BROWSER_CANDIDATES = [
    "/Applications/Brave Browser.app/Contents/MacOS/Brave Browser",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "/usr/bin/brave-browser",
    "/usr/bin/google-chrome",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
]

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--new-window",
]

BROWSER_VIEWPORT = {"width": 1280, "height": 800}

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# ── Page Markers ─────────────────────────────────────────────────────────────

LOGIN_PROMPT_MARKER = "Log in"
AUTHENTICATED_MARKER = "Settings"

# Text that only appears when the page fell back to the login screen
LOGGED_OUT_PAGE_MARKERS = [
    "Log in to Claude",
    "Welcome back",
]

USAGE_CONTROL_TEXT = "Usage"

# Clicks the first link/button whose text is exactly the usage label.
CLICK_USAGE_CONTROL_JS = """
(label) => {
    const controls = Array.from(document.querySelectorAll("a, button"));
    const control = controls.find((el) => el.textContent.trim() === label);
    if (control) {
        control.click();
        return true;
    }
    return false;
}
"""

# Resolves once the user has left the login screen.
LOGIN_COMPLETE_JS = (
    f'() => window.location.hostname === "{CLAUDE_HOST}"'
    ' && window.location.pathname !== "/login"'
    ' && window.location.pathname !== "/"'
)

# ── Usage Patterns ───────────────────────────────────────────────────────────

DAILY_PERCENT_PATTERN = re.compile(r"Current session.*?(\d+)%\s*used", re.IGNORECASE | re.DOTALL)
WEEKLY_PERCENT_PATTERN = re.compile(r"Weekly limits.*?(\d+)%\s*used", re.IGNORECASE | re.DOTALL)
DAILY_RESET_PATTERN = re.compile(r"Current session.*?Resets in\s+([^\n]+)", re.IGNORECASE | re.DOTALL)
WEEKLY_RESET_PATTERN = re.compile(r"Weekly limits.*?Resets\s+([^\n]+)", re.IGNORECASE | re.DOTALL)

UNKNOWN_RESET = "Unknown"

# ── Error Signatures ─────────────────────────────────────────────────────────

DETACHED_SIGNATURES = ["detached"]
TARGET_CLOSED_SIGNATURES = [
    "Target closed",
    "Session closed",
    "has been closed",
]
NETWORK_SIGNATURES = ["net::ERR", "network"]
TIMEOUT_SIGNATURES = ["Timeout", "timeout"]
