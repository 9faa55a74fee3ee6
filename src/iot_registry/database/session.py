import logging

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from iot_registry.config.settings import Settings
from .base import Base
# Registers Device / NetworkConfig on Base.metadata
import iot_registry.models  # noqa: F401

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with foreign key enforcement off, per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the AsyncEngine for `settings.DATABASE_URL`.

    On SQLite the foreign-key pragma is switched on for every new connection so
    network_configs.device_id is enforced the same way it is on Postgres.
    """
    url = make_url(settings.DATABASE_URL)
    engine = create_async_engine(
        url,
        echo=settings.SQLALCHEMY_ECHO,
        pool_pre_ping=True,              # Enables connection health checks
    )

    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    logger.debug(
        "db.engine.created",
        extra={"backend": url.get_backend_name(), "driver": url.get_driver_name(), "echo": settings.SQLALCHEMY_ECHO},
    )
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    `async_sessionmaker` returns an async session factory.

    expire_on_commit=False keeps attributes of committed instances readable after
    the session closes; services return those instances to the caller.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """Create both tables with their indexes and constraints when missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db.schema.ready", extra={"tables": sorted(Base.metadata.tables)})


async def check_connection(engine: AsyncEngine) -> bool:
    """
    Startup connectivity check.

    Returns:
        bool: True when `SELECT 1` succeeds. Failures are logged, not raised, so the
        caller decides whether the process can continue.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("db.connection.check_failed")
        return False
    logger.info("db.connection.ok")
    return True
