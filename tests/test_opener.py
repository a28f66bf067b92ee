"""Tests for opening interactive pages."""

import asyncio
import time
import webbrowser

import pytest

from conftest import INTERACTIVE_URL
from stella.deposit.opener import BrowserOpener, ManualOpener


class TestBrowserOpener:
    """Tests for the system browser opener."""

    @pytest.mark.asyncio
    async def test_event_loop_keeps_running_while_browser_opens(self, monkeypatch):
        """A browser that holds the foreground does not stall other tasks."""

        def slow_open(url):
            time.sleep(0.3)
            return True

        monkeypatch.setattr(webbrowser, "open_new", slow_open)
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.02)
                ticks += 1

        task = asyncio.create_task(ticker())
        try:
            result = await BrowserOpener().open(INTERACTIVE_URL, "flow-1")
        finally:
            task.cancel()

        assert result.opened is True
        assert ticks >= 5

    @pytest.mark.asyncio
    async def test_browser_error_is_not_fatal(self, monkeypatch):
        def broken_open(url):
            raise webbrowser.Error("could not locate runnable browser")

        monkeypatch.setattr(webbrowser, "open_new", broken_open)

        result = await BrowserOpener().open(INTERACTIVE_URL, "flow-1")

        assert result.opened is False
        assert result.url == INTERACTIVE_URL

    @pytest.mark.asyncio
    async def test_no_browser_available(self, monkeypatch):
        monkeypatch.setattr(webbrowser, "open_new", lambda url: False)

        result = await BrowserOpener().open(INTERACTIVE_URL, "flow-1")

        assert result.opened is False


class TestManualOpener:
    """Tests for the manual opener."""

    @pytest.mark.asyncio
    async def test_never_opens(self):
        result = await ManualOpener().open(INTERACTIVE_URL, "flow-1")

        assert result.opened is False
        assert result.url == INTERACTIVE_URL
