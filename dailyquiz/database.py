"""
dailyquiz/database.py
Async engine, session factory and schema bootstrap
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from dailyquiz.config.settings import settings
from dailyquiz.orm.base import Base
import dailyquiz.orm  # noqa: F401  registers all models on Base.metadata

logger = logging.getLogger(__name__)


def _enable_sqlite_write_serialization(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction start with BEGIN IMMEDIATE.

    pysqlite's implicit BEGIN is deferred, so two transactions could both
    read a submission count before either writes. Taking the write lock at
    BEGIN serializes them; the busy timeout makes the second one wait.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with the pool and locking settings for its dialect."""
    if "sqlite" in database_url.lower():
        kwargs = {
            "echo": echo,
            "connect_args": {"timeout": float(settings.SQLITE_BUSY_TIMEOUT_SECONDS)},
        }
        # :memory: databases use a StaticPool that takes no sizing arguments
        if ":memory:" not in database_url:
            kwargs.update(pool_size=10, max_overflow=20, pool_timeout=30)
        engine = create_async_engine(database_url, **kwargs)
        _enable_sqlite_write_serialization(engine)
        return engine

    # PostgreSQL/MySQL: Use standard pool with larger size
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_schema(target_engine: AsyncEngine) -> None:
    async with target_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db():
    """
    Initialize database:
    1. Create tables if they don't exist
    2. Make sure the settings row and the default operator exist
    """
    logger.info("Initializing database...")

    await create_schema(engine)
    logger.info("✓ Tables created/verified")

    # Imported here to keep services free to import this module
    from dailyquiz.services import admin_service, epoch_service, question_service

    async with AsyncSessionLocal() as session:
        epoch = await epoch_service.get_current_epoch(session)
        await session.commit()
        logger.info(f"✓ Current epoch: {epoch}")

        await admin_service.ensure_default_admin(
            session, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD
        )

        if settings.SEED_SAMPLE_QUESTION:
            await question_service.seed_sample_question(session)


async def close_db():
    """Close database connections"""
    await engine.dispose()
    logger.info("Database connections closed")
