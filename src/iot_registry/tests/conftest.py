"""
Core pytest configuration for the entire test suite.

This module provides only the database setup and logging installation needed
across ALL kinds of tests (validators, repositories, services, logging).

Domain-specific fixtures (repositories, services, sample entities) live in:
- tests/test_fixtures/repository_fixtures.py
- tests/test_fixtures/service_fixtures.py

and are re-exported at the bottom of this file so every test module can use them
without importing.
"""

# -------------------------------
# Standard library imports
# -------------------------------
import os
import logging
from urllib.parse import urlparse
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Silence noisy third-party loggers before importing modules that may initialize them.
NOISY_LOGGERS = (
    "faker",
    "faker.factory",
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "asyncio",
    "aiosqlite",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from iot_registry.config.settings import Settings, get_settings
from iot_registry.core.logging.builder import setup_logging
from iot_registry.database.base import Base
from iot_registry.database.session import build_engine, build_session_factory, init_schema

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------------------------
# Logging: install application logging once per session
# ------------------------------------------------------------------------------------------------

@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install the registry's dictConfig logging for the whole test session, so the
    OperationIdFilter / RedactFilter and formatters run exactly as in production.

    pytest's own capture handler is re-added to the root logger around each test
    phase, so `caplog` keeps working after dictConfig replaced the root handlers.
    """
    setup_logging(Settings(ENV="testing", TESTING=True, LOG_FORMAT="text", LOG_TO_STDOUT=True))
    yield


# ------------------------------------------------------------------------------------------------
# Determining and Logging the Test Database URL for Tests
# ------------------------------------------------------------------------------------------------

def safe_log_db_url(db_url: str) -> str:
    """
    Return the database URL without credentials, for logging.
    """
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


def get_test_database_url(tmp_path) -> str:
    """
    Determine the test database URL.

    1. `TEST_DATABASE_URL` environment variable (CI override, e.g. a Postgres server)
    2. The settings' DATABASE_URL when `TESTING=true` and `TEST_POSTGRES_DB` is set
    3. A fresh SQLite file inside the test's tmp_path, so every test starts with
       empty tables and ids counting from 1

    Returns:
        str: The database URL to use for this test
    """
    if test_url := os.getenv("TEST_DATABASE_URL"):
        return test_url

    settings = get_settings()
    if settings.TESTING and settings.TEST_POSTGRES_DB:
        return settings.DATABASE_URL

    return f"sqlite+aiosqlite:///{tmp_path / 'registry_test.db'}"


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at the per-test database."""
    return Settings(
        ENV="testing",
        TESTING=True,
        DATABASE_URL_OVERRIDE=get_test_database_url(tmp_path),
        LOG_FORMAT="text",
    )


@pytest.fixture
async def async_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """
    Engine with a freshly created schema.

    On a server database the tables are dropped afterwards so the next test starts
    empty (and its identity sequences restart); a SQLite file simply disappears
    with tmp_path.
    """
    db_url = test_settings.DATABASE_URL
    logger.debug("tests.db.url", extra={"url": safe_log_db_url(db_url)})

    engine = build_engine(test_settings)
    await init_schema(engine)

    yield engine

    if not _is_sqlite(db_url):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(async_engine)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    A plain session for repository tests.

    Repositories never commit, so whatever a test writes stays in this session's
    transaction and is rolled back at the end.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


# Repository test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402
    device_repository,
    config_repository,
    make_device,
    make_config,
    persisted_device,
    persisted_config,
)

# Service test fixtures
from .test_fixtures.service_fixtures import (  # noqa: E402
    device_service,
    config_service,
    inserted_device,
    inserted_config,
    inserted_device_with_config,
)
