"""Opening the anchor's interactive page.

Opening is best-effort: a blocked or unavailable browser is not a launch
failure, the URL is always handed back for manual opening.
"""

import asyncio
import logging
import webbrowser
from abc import ABC, abstractmethod

from stella.deposit.models import OpenResult

logger = logging.getLogger(__name__)


class InteractiveOpener(ABC):
    """Opens an interactive URL in a new top-level browsing context."""

    @abstractmethod
    async def open(self, url: str, flow_id: str) -> OpenResult:
        """Try to open ``url``. Must not raise."""
        pass


class BrowserOpener(InteractiveOpener):
    """Opens URLs with the system's default web browser.

    Console browsers run in the foreground, so the call is made in a worker
    thread and polling loops keep running meanwhile.
    """

    async def open(self, url: str, flow_id: str) -> OpenResult:
        try:
            opened = await asyncio.to_thread(webbrowser.open_new, url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser for flow {flow_id}: {e}")
            opened = False

        if not opened:
            logger.info(f"Interactive page for flow {flow_id} must be opened manually: {url}")
        return OpenResult(opened=bool(opened), url=url)


class ManualOpener(InteractiveOpener):
    """Never opens anything; the caller presents the URL."""

    async def open(self, url: str, flow_id: str) -> OpenResult:
        return OpenResult(opened=False, url=url)
