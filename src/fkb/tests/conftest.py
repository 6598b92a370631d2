"""
Core pytest configuration for the entire test suite.

Database setup and the logging install live here. Domain fixtures (repositories,
sample users/friends) live in tests/test_fixtures/ and are imported at the bottom
so every test module can use them without importing.

Database selection:
  1. TEST_DATABASE_URL (CI, e.g. postgresql+psycopg://.../fkb_test)
  2. Settings.DATABASE_URL when TESTING=true and TEST_POSTGRES_DB is set
  3. a throwaway SQLite file per test (aiosqlite)
"""

from __future__ import annotations

import os
import sys
import asyncio
import logging
from pathlib import Path
from urllib.parse import urlparse
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning
# -------------------------------
# keep this block above the fkb imports so collection stays quiet
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "sqlalchemy.pool",
    "asyncio",
    "aiosqlite",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from pytest import FixtureRequest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from fkb.config import get_settings
from fkb.core.logging.builder import setup_logging
from fkb.database.base import Base
from fkb.database.session import RepositoryContext, build_engine
from fkb.database.triggers import install_updated_at_triggers
import fkb.models  # noqa: F401  registers every table with Base.metadata

settings = get_settings()
logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def configure_logging(request: FixtureRequest):
    """
    Install the application's dictConfig logging for the whole session.

    pytest re-attaches its capture handler at every test phase, so caplog keeps
    working after dictConfig has replaced the root handlers.
    """
    setup_logging(settings)

    yield


def safe_log_db_url(db_url: str) -> str:
    """Database URL without credentials, for log lines."""
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


def get_test_database_url(tmp_path: Path) -> str:
    if test_url := os.getenv("TEST_DATABASE_URL"):
        return test_url

    if settings.TESTING and settings.TEST_POSTGRES_DB:
        return settings.DATABASE_URL

    return f"sqlite+aiosqlite:///{tmp_path / 'test_database.db'}"


# On Windows, psycopg async needs the SelectorEventLoop
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    url = get_test_database_url(tmp_path)
    logger.debug("tests.database", extra={"url": safe_log_db_url(url)})
    return url


@pytest.fixture()
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(database_url, pool_size=5, max_overflow=0, pool_timeout=5.0)

    install_updated_at_triggers(Base.metadata)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Transaction-per-test: the session joins an outer transaction on one connection
    and turns its own begin/commit into SAVEPOINTs, so nothing a test writes
    survives it, even if the code under test commits.
    """
    async with async_engine.connect() as connection:
        await connection.begin()

        session = AsyncSession(
            bind=connection,
            join_transaction_mode="create_savepoint",
            expire_on_commit=False,
        )
        try:
            yield session
        finally:
            await session.close()
            await connection.rollback()


@pytest.fixture()
async def repository_context(async_engine: AsyncEngine) -> RepositoryContext:
    """
    A RepositoryContext on the test engine. Tests using it commit for real; the
    engine fixture drops every table afterwards.
    """
    return RepositoryContext(async_engine)


# Repository test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402
    user_repository,
    sample_user_data,
    create_user,
    created_user,
    other_user,
    repos,
    other_repos,
    create_friend,
    friend_pair,
)
from .test_fixtures.logging_fixtures import restore_logging  # noqa: E402
