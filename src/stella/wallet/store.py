"""Durable storage of the wallet choice.

A single record ``{mode, address}`` lives under a fixed key. It is read once
at startup and written on every mode transition.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stella.storage.database import get_db
from stella.storage.repository import WalletStateRepository
from stella.wallet.base import SessionMode

logger = logging.getLogger(__name__)

WALLET_STATE_KEY = "wallet_session"


@dataclass(frozen=True)
class PersistedSession:
    """Snapshot of the stored wallet choice."""

    mode: SessionMode
    address: str


class SessionStore:
    """Reads and writes the persisted wallet record.

    Writes are serialized so a read-modify-write of the record is atomic
    within the event loop.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        key: str = WALLET_STATE_KEY,
    ):
        self.session_factory = session_factory
        self.key = key
        self._lock = asyncio.Lock()

    async def load(self) -> Optional[PersistedSession]:
        """Load the stored record, or None if nothing usable is stored."""
        async with get_db(self.session_factory) as session:
            state = await WalletStateRepository(session).get_state(self.key)

        if state is None:
            return None

        try:
            mode = SessionMode(state.mode)
        except ValueError:
            logger.warning(f"Ignoring persisted wallet state with unknown mode: {state.mode}")
            return None

        return PersistedSession(mode=mode, address=state.address or "")

    async def save(self, mode: SessionMode, address: str) -> None:
        """Overwrite the stored record."""
        async with self._lock:
            async with get_db(self.session_factory) as session:
                await WalletStateRepository(session).save_state(self.key, mode.value, address)
        logger.debug(f"Persisted wallet state: mode={mode.value}")

    async def clear(self) -> None:
        """Remove the stored record (no-op if absent)."""
        async with self._lock:
            async with get_db(self.session_factory) as session:
                await WalletStateRepository(session).clear_state(self.key)
        logger.debug("Cleared persisted wallet state")
