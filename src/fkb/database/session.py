"""
Connection / transaction provider.

`RepositoryContext` owns one pooled AsyncEngine and hands out sessions:

    ctx = RepositoryContext.from_settings(get_settings())

    async with ctx.acquire_connection() as session:
        friend = await FriendRepository(session, OwnerScope(user_id)).find_by_id(friend_id)

    async def body(session):
        repos = ScopedRepositories.for_user(session, user_id)
        friend = await repos.friends.create(FriendCreate(first_name="Ada"))
        await repos.attributes.upsert(friend.id, "favorite-color", "blue")
        return friend

    friend = await ctx.run_in_transaction(body)

Repositories never commit: the caller decides where the transaction ends.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fkb.config.settings import Settings, get_settings
from fkb.core.logging.filters import get_correlation_id, reset_correlation_id, set_correlation_id
from fkb.database.base import Base
from fkb.database.triggers import install_updated_at_triggers
from fkb.exceptions.mapper import db_error_handler

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    SQLite needs two connection-level tweaks:
      - foreign keys are off by default; cascades depend on them.
      - the driver's own implicit BEGIN handling breaks SAVEPOINT; hand transaction
        control to SQLAlchemy by switching the driver to autocommit and emitting
        BEGIN ourselves.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 0,
    pool_timeout: float = 30.0,
    pool_pre_ping: bool = True,
) -> AsyncEngine:
    """
    Create the AsyncEngine with a bounded pool.

    At most `pool_size + max_overflow` connections are ever open; a caller that
    finds them all checked out waits up to `pool_timeout` seconds and then gets a
    pool TimeoutError (mapped to a transient DatabaseError by the repositories).
    """
    parsed = make_url(url)
    kwargs: dict = {"echo": echo, "pool_pre_ping": pool_pre_ping}

    in_memory_sqlite = parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")
    if not in_memory_sqlite:
        # in-memory SQLite uses a single shared connection (StaticPool); no sizing there
        kwargs.update(pool_size=pool_size, max_overflow=max_overflow, pool_timeout=pool_timeout)

    engine = create_async_engine(url, **kwargs)

    if parsed.get_backend_name() == "sqlite":
        _install_sqlite_hooks(engine)

    logger.debug(
        "db.engine.created",
        extra={
            "backend": parsed.get_backend_name(),
            "driver": parsed.get_driver_name(),
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
        },
    )
    return engine


class RepositoryContext:
    """
    Owns the pooled engine and scopes sessions/transactions for callers.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RepositoryContext":
        engine = build_engine(
            settings.DATABASE_URL,
            echo=settings.SQLALCHEMY_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
        )
        return cls(engine)

    @asynccontextmanager
    async def acquire_connection(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session bound to the pool. A connection is checked out lazily on the
        first statement and returned when the block exits (normally, on error or on
        cancellation). Anything not committed by the caller is rolled back on close.
        """
        async with self.session_factory() as session:
            yield session

    async def run_in_transaction(self, body: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run `body(session)` inside one transaction.

        - success: commit, return body's result
        - exception raised by body: roll back, re-raise unchanged
        - commit failure: mapped like any store failure (DuplicateError, DatabaseError, ...)
        - cancellation: roll back, release the connection, propagate CancelledError
        """
        token = None
        if get_correlation_id() is None:
            token = set_correlation_id(uuid.uuid4().hex)

        start = time.perf_counter()
        try:
            async with self.session_factory() as session:
                try:
                    result = await body(session)
                except BaseException as exc:
                    await session.rollback()
                    logger.info(
                        "context.transaction.rollback",
                        extra={"error_type": type(exc).__name__},
                    )
                    raise
                # a failed commit is rolled back when the session closes
                async with db_error_handler(None, "commit"):
                    await session.commit()

            logger.debug(
                "context.transaction.commit",
                extra={"duration_ms": int((time.perf_counter() - start) * 1000)},
            )
            return result
        finally:
            if token is not None:
                reset_correlation_id(token)

    async def create_schema(self) -> None:
        """Create every table (and the PostgreSQL updated_at triggers)."""
        import fkb.models  # noqa: F401  registers models with Base.metadata

        install_updated_at_triggers(Base.metadata)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("schema.created", extra={"tables": sorted(Base.metadata.tables)})

    async def drop_schema(self) -> None:
        import fkb.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("schema.dropped")

    async def dispose(self) -> None:
        await self.engine.dispose()


@lru_cache()
def get_repository_context() -> RepositoryContext:
    """Process-wide context built from settings (one pool per process)."""
    return RepositoryContext.from_settings(get_settings())
