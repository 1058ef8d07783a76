"""
Database configuration.

Creates the async engine and session factory used by the indexer.
"""

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from budget_indexer.config.settings import settings


def create_engine(
    database_url: str | None = None,
    echo: bool | None = None,
    **engine_kwargs,
) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Database URL (defaults to settings.database_url)
        echo: Log SQL statements (defaults to settings.database_echo)
        **engine_kwargs: Extra create_async_engine arguments

    Returns:
        AsyncEngine instance
    """
    url = database_url or settings.database_url
    kwargs = {"echo": settings.database_echo if echo is None else echo}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
        kwargs.update(engine_kwargs)
        return create_async_engine(url, **kwargs)

    kwargs.update(engine_kwargs)
    engine = create_async_engine(url, **kwargs)
    _enable_sqlite_savepoints(engine)
    return engine


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy manage SQLite transactions itself.

    The sqlite3 driver defers BEGIN until the first DML statement, which
    breaks SAVEPOINT semantics. Disabling its handling and emitting BEGIN
    explicitly keeps nested transactions inside the outer one.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to an engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)


async def check_database_connection(engine: AsyncEngine | None = None) -> bool:
    """
    Check that the database answers a trivial query.

    Args:
        engine: Engine to test (defaults to the global engine)

    Returns:
        True if the database is reachable
    """
    try:
        async with (engine or async_engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("[Store] Database connection successful")
        return True
    except Exception as e:
        logger.error(f"[Store] Database connection failed: {e}")
        return False
