"""Repository for persisted wallet state."""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from stella.storage.models import WalletState


class WalletStateRepository:
    """Read and write the single wallet-state record."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_state(self, key: str) -> Optional[WalletState]:
        """Get the stored state for a key, if any."""
        stmt = select(WalletState).where(WalletState.key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save_state(self, key: str, mode: str, address: str) -> WalletState:
        """Insert or overwrite the state stored under ``key``."""
        state = await self.get_state(key)

        if state is None:
            state = WalletState(key=key, mode=mode, address=address)
            self.session.add(state)
        else:
            state.mode = mode
            state.address = address

        await self.session.flush()
        return state

    async def clear_state(self, key: str) -> bool:
        """Delete the state stored under ``key``.

        Returns:
            True if a row was removed
        """
        stmt = delete(WalletState).where(WalletState.key == key)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return (result.rowcount or 0) > 0
