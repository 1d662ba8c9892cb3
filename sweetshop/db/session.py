"""
Async SQLAlchemy engine & session factory (asyncpg driver).

The engine opens connections lazily through its pool; the schema is
created once per process by :func:`init_db`, whichever caller gets there
first (application lifespan or the first request).
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sweetshop.core.config import settings
from sweetshop.db.base import Base

logger = logging.getLogger(__name__)

engine_args = {
    "echo": False,
    "pool_pre_ping": True,
}

if "postgresql" in settings.DATABASE_URL:
    engine_args.update(
        {
            "pool_size": 20,
            "max_overflow": 10,
            "pool_recycle": 300,
        }
    )

engine = create_async_engine(
    settings.DATABASE_URL,
    **engine_args,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

_init_lock = asyncio.Lock()
_initialised = False


def is_initialised() -> bool:
    return _initialised


async def init_db() -> None:
    """Create all tables exactly once; later calls return immediately."""
    global _initialised
    if _initialised:
        return
    async with _init_lock:
        if _initialised:
            return
        # Ensure all models are registered on the metadata
        from sweetshop.models import sweet, user  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        _initialised = True
        logger.info("Database tables initialised")


async def dispose_db() -> None:
    global _initialised
    await engine.dispose()
    _initialised = False

