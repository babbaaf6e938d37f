"""Async database engine and session scope.

SQLite via aiosqlite by default; set RANGESCOPE_DATABASE_URL to point the
store at another SQLAlchemy async URL.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from rangescope.config import get_settings

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """Get or lazily create the shared async engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
        )
    return _engine


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables. Call on application startup."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """Dispose the shared engine. Call on application shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def make_session_scope(engine: AsyncEngine) -> SessionScope:
    """Build a transactional session scope bound to ``engine``.

    The scope commits when the block exits normally and rolls back on any
    exception, cancellation included, so a half-applied write is never
    committed.
    """
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def scope() -> AsyncGenerator[AsyncSession]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    return scope


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession]:
    """Session scope on the shared engine.

    Usage:
        async with get_session() as session:
            result = await session.execute(select(AssetRecord))
    """
    async with make_session_scope(get_engine())() as session:
        yield session
