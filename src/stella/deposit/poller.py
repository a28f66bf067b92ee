"""Status polling for interactive flows.

Anchors offer no push channel to the client, so each tracked flow gets its
own loop that asks the proxy for the flow's status every ``interval``
seconds until:
- a terminal status (completed, error, refunded) is observed
- ``timeout`` seconds have passed since the flow started
- the flow is stopped (dismissed)

A failed tick is skipped silently: a transient network error is not a
failed deposit. Records stay in the registry when polling ends.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Union

from stella.anchor.client import AnchorApiClient, AnchorApiError
from stella.config import get_settings
from stella.deposit.models import FlowRecord, FlowStatus
from stella.deposit.registry import FlowRegistry

logger = logging.getLogger(__name__)

StatusListener = Callable[[FlowRecord, str], Union[Awaitable[Any], Any]]


class FlowStatusPoller:
    """Runs one independent polling loop per tracked flow."""

    def __init__(
        self,
        api: AnchorApiClient,
        registry: FlowRegistry,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
        on_status_change: Optional[StatusListener] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the poller.

        Args:
            api: Anchor proxy client
            registry: Registry holding the flows to update
            interval: Seconds between polls (defaults to settings)
            timeout: Maximum polling time per flow from its start (defaults to settings)
            on_status_change: Called with (record, previous_status) after each change
            clock: Wall clock, comparable with ``FlowRecord.started_at``
        """
        settings = get_settings()
        self.api = api
        self.registry = registry
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.timeout = timeout if timeout is not None else settings.poll_timeout_seconds
        self.on_status_change = on_status_change
        self.clock = clock

        self._stop_events: dict[str, asyncio.Event] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def start(self, flow_id: str) -> bool:
        """Start polling a registered flow.

        Returns:
            False if the flow is unknown or already being polled
        """
        if flow_id in self._stop_events or flow_id not in self.registry:
            return False

        stop_event = asyncio.Event()
        self._stop_events[flow_id] = stop_event
        task = asyncio.create_task(self._run(flow_id, stop_event), name=f"poll-{flow_id}")
        self._tasks[flow_id] = task
        task.add_done_callback(lambda t, fid=flow_id: self._on_task_done(fid, t))

        logger.debug(f"Polling flow {flow_id} every {self.interval}s (cap {self.timeout}s)")
        return True

    def stop(self, flow_id: str) -> bool:
        """Stop polling a flow immediately.

        A request already in flight is not aborted; its result is discarded.

        Returns:
            False if the flow was not being polled
        """
        stop_event = self._stop_events.pop(flow_id, None)
        if stop_event is None:
            return False
        stop_event.set()
        logger.debug(f"Stopped polling flow {flow_id}")
        return True

    def stop_all(self) -> None:
        for flow_id in list(self._stop_events):
            self.stop(flow_id)

    def is_polling(self, flow_id: str) -> bool:
        return flow_id in self._stop_events

    async def wait(self, flow_id: str) -> None:
        """Wait until the loop for ``flow_id`` has exited (no-op if none)."""
        task = self._tasks.get(flow_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        """Stop every loop and wait for them to exit."""
        self.stop_all()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def poll_once(self, record: FlowRecord) -> Optional[str]:
        """Fetch a flow's status once.

        Returns:
            The reported status, or None if the request failed
        """
        try:
            response = await self.api.get_transaction_status(
                record.id, record.anchor_domain, record.auth_token.token
            )
        except AnchorApiError as e:
            logger.debug(f"Status poll for {record.id} skipped: {e}")
            return None
        return response.status

    async def _run(self, flow_id: str, stop_event: asyncio.Event) -> None:
        record = self.registry.get(flow_id)
        if record is None:
            return
        deadline = record.started_at + self.timeout

        try:
            while True:
                remaining = deadline - self.clock()
                if remaining <= 0:
                    logger.info(f"Flow {flow_id} still '{record.status}' after {self.timeout:.0f}s, polling stopped")
                    return

                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=min(self.interval, remaining))
                    return
                except asyncio.TimeoutError:
                    pass

                if self.clock() >= deadline:
                    continue

                record = self.registry.get(flow_id)
                if record is None:
                    return

                status = await self.poll_once(record)
                if status is None:
                    continue

                # Dismissed while the request was in flight
                if stop_event.is_set() or self.registry.get(flow_id) is not record:
                    return

                previous = record.status
                self.registry.update_status(flow_id, status)
                if status != previous:
                    logger.info(f"Flow {flow_id}: {previous} -> {status}")
                    await self._notify(record, previous)

                if FlowStatus.is_terminal(status):
                    logger.info(f"Flow {flow_id} finished with status '{status}'")
                    return
        finally:
            if self._stop_events.get(flow_id) is stop_event:
                del self._stop_events[flow_id]

    async def _notify(self, record: FlowRecord, previous: str) -> None:
        if self.on_status_change is None:
            return
        try:
            result = self.on_status_change(record, previous)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Status listener failed for flow {record.id}")

    def _on_task_done(self, flow_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(flow_id) is task:
            del self._tasks[flow_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Polling loop for {flow_id} crashed: {task.exception()!r}")
