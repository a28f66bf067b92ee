"""Local persistence for the wallet session record."""

from stella.storage.database import close_db, get_db, init_db
from stella.storage.models import Base, WalletState
from stella.storage.repository import WalletStateRepository

__all__ = [
    "Base",
    "WalletState",
    "WalletStateRepository",
    "get_db",
    "init_db",
    "close_db",
]
