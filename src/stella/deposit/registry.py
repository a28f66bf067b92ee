"""In-memory registry of tracked interactive flows.

The registry is the sole authority on which flows exist. It is mutated from
two places only: the orchestrator (insertion, dismissal) and the poller
(status updates). Both treat a missing record as a no-op, because a late
poll result may arrive after the flow was dismissed.
"""

import logging
import time
from typing import Iterator, Optional

from stella.deposit.models import FlowRecord

logger = logging.getLogger(__name__)


class FlowRegistry:
    """Collection of ``FlowRecord`` keyed by anchor-issued id."""

    def __init__(self):
        self._flows: dict[str, FlowRecord] = {}

    def add(self, record: FlowRecord) -> None:
        """Register a new flow.

        Raises:
            ValueError: A flow with the same id is already tracked
        """
        if record.id in self._flows:
            raise ValueError(f"Flow {record.id} is already tracked")
        self._flows[record.id] = record
        logger.debug(f"Tracking flow {record.id} ({len(self._flows)} active)")

    def get(self, flow_id: str) -> Optional[FlowRecord]:
        return self._flows.get(flow_id)

    def update_status(self, flow_id: str, status: str) -> bool:
        """Set a flow's status.

        Returns:
            False if the flow is no longer tracked
        """
        record = self._flows.get(flow_id)
        if record is None:
            return False
        record.status = status
        record.updated_at = time.time()
        return True

    def remove(self, flow_id: str) -> Optional[FlowRecord]:
        """Forget a flow. Returns the removed record, or None if absent."""
        record = self._flows.pop(flow_id, None)
        if record is not None:
            logger.debug(f"Stopped tracking flow {flow_id}")
        return record

    def prune(self, older_than: float, now: Optional[float] = None) -> list[str]:
        """Remove flows started more than ``older_than`` seconds ago.

        Returns:
            Ids of removed flows
        """
        cutoff = (now if now is not None else time.time()) - older_than
        stale = [flow_id for flow_id, record in self._flows.items() if record.started_at < cutoff]
        for flow_id in stale:
            del self._flows[flow_id]
        if stale:
            logger.info(f"Pruned {len(stale)} stale flow(s)")
        return stale

    def all(self) -> list[FlowRecord]:
        """All tracked flows, oldest first."""
        return sorted(self._flows.values(), key=lambda r: r.started_at)

    def __contains__(self, flow_id: object) -> bool:
        return flow_id in self._flows

    def __len__(self) -> int:
        return len(self._flows)

    def __iter__(self) -> Iterator[FlowRecord]:
        return iter(self.all())
