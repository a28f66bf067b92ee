"""SQLAlchemy models for locally persisted client state."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class WalletState(Base):
    """Persisted wallet choice, one row per storage key.

    Only the public address and the session mode are stored. Secret
    material never reaches this table.
    """

    __tablename__ = "wallet_state"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    mode: Mapped[str] = mapped_column(String(32), nullable=False)
    address: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<WalletState {self.key} mode={self.mode}>"
