"""
Async engine, session factory and the ``get_db`` request dependency.

Every request gets its own session; it is committed when the handler
returns and rolled back if anything raises.
"""
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, StaticPool

from app.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite+aiosqlite://") or ":memory:" in url


def build_engine(url: str) -> AsyncEngine:
    """
    Create the async engine for ``url``.

    In-memory SQLite keeps a single shared connection (``StaticPool``),
    otherwise every session would see its own empty database.  Anything
    else opens a fresh connection per session (``NullPool``) and checks
    it before use.
    """
    if _is_memory_sqlite(url):
        return create_async_engine(
            url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(url, echo=False, future=True, pool_pre_ping=True, poolclass=NullPool)


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session; commit on success, roll back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.error("Rolled back request session: %s", exc)
            raise


async def init_db() -> None:
    """Create any missing tables (profiles, events, user_settings)."""
    # registers the models on Base.metadata
    from app.models import database_models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        logger.error("Could not create tables: %s", exc)
        raise
    logger.info("Tables created/verified on %s", engine.url.render_as_string(hide_password=True))


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database engine disposed")
