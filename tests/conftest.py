from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes import USAGE_TEXT, FakeContext
from usage_tracker.session_manager.browser import BrowserSession


@pytest.fixture
def fake_context() -> FakeContext:
    return FakeContext(usage_text=USAGE_TEXT)


@pytest.fixture
def session(tmp_path: Path, fake_context: FakeContext) -> BrowserSession:
    """A session attached to a fake browser with one blank page."""
    browser_session = BrowserSession(profile_dir=tmp_path / "profile", settle_seconds=0)
    browser_session._attach(fake_context)
    browser_session.page = fake_context.add_page()
    return browser_session


@pytest.fixture
def relaunchable(monkeypatch: pytest.MonkeyPatch, session: BrowserSession) -> list[FakeContext]:
    """Make ``session.initialize`` launch fresh FakeContexts; returns the launch log."""
    launched: list[FakeContext] = []

    async def _no_kill() -> bool:
        return False

    async def _launch(executable_path: str) -> FakeContext:
        context = FakeContext(usage_text=USAGE_TEXT)
        context.add_page(url="chrome://newtab")
        launched.append(context)
        return context

    monkeypatch.setattr(session, "kill_stale_processes", _no_kill)
    monkeypatch.setattr(session, "find_browser", lambda: "/fake/chrome")
    monkeypatch.setattr(session, "_launch", _launch)
    return launched
