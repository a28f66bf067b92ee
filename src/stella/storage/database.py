"""Engine and session handling for the local client database.

The client keeps a single small SQLite file (the persisted wallet choice).
One engine is created lazily per process and disposed by ``close_db``.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from stella.config import get_settings
from stella.storage.models import Base

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def async_url(database_url: str) -> str:
    """Use the aiosqlite driver for plain sqlite URLs."""
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return database_url


def sqlite_file(database_url: str) -> Optional[Path]:
    """Path of the database file for file-backed sqlite URLs."""
    if not database_url.startswith("sqlite") or ":memory:" in database_url:
        return None
    return Path(database_url.split(":///", 1)[-1])


def get_engine() -> AsyncEngine:
    """Engine for the wallet-state database, created on first use.

    SQL echo follows ``debug`` outside production.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            async_url(settings.database_url),
            echo=settings.debug and not settings.is_production,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory used by ``SessionStore`` when none is injected."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_db(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """One unit of work against the wallet-state table.

    Each ``SessionStore`` call runs in its own unit: the record is written
    when the block exits normally and left untouched if it raises.

    Args:
        session_factory: Factory to use instead of the process-wide one
            (tests pass one bound to an in-memory engine)
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the database file's directory and the tables."""
    path = sqlite_file(get_settings().database_url)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Release the database at process shutdown.

    The runner calls this after the last store write. A later store call
    creates a fresh engine.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
