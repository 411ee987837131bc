"""Database sessions for Celery tasks.

Each task body runs under its own ``asyncio.run`` loop, and asyncpg
connections cannot outlive the loop that opened them. The worker therefore
uses a NullPool engine: connections are opened per session and closed with it.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings

logger = structlog.get_logger()

_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.APP_DEBUG,
    poolclass=NullPool,
    connect_args={
        "server_settings": {
            "statement_timeout": "60000",                    # 60s per statement
            "idle_in_transaction_session_timeout": "120000", # 120s idle-in-tx
        }
    },
)

_SessionFactory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_celery_db_session() -> AsyncGenerator[AsyncSession]:
    """Async session for a task body; rolls back on exception and always closes.

    Usage::

        async with get_celery_db_session() as db:
            summary = await build_scheduler(db).run()
    """
    session = _SessionFactory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        logger.warning("celery_db_session_rolled_back")
        raise
    finally:
        await session.close()
