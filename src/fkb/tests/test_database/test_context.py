"""
RepositoryContext: pooled connections, commit/rollback per unit of work,
cancellation and pool exhaustion.
"""

import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.config.settings import Settings
from fkb.core.logging.filters import get_correlation_id, reset_correlation_id, set_correlation_id
from fkb.database.session import RepositoryContext, build_engine
from fkb.exceptions import DatabaseError, DuplicateError
from fkb.repositories import ScopedRepositories, UserRepository
from fkb.schemas import FriendCreate, UserCreate


def user_data(email: str = "ada@example.com") -> UserCreate:
    return UserCreate(email=email, password_hash="pw", first_name="Ada")


@pytest.mark.asyncio
class TestRunInTransaction:

    async def test_commit_on_success(self, repository_context):
        async def body(session):
            user = await UserRepository(session).create(user_data())
            repos = ScopedRepositories.for_user(session, user.id)
            await repos.friends.create(FriendCreate(first_name="Grace"))
            return user.id

        user_id = await repository_context.run_in_transaction(body)

        async with repository_context.acquire_connection() as session:
            assert await UserRepository(session).find_by_id(user_id) is not None
            assert await ScopedRepositories.for_user(session, user_id).friends.count() == 1

    async def test_rollback_and_reraise(self, repository_context):
        class Boom(Exception):
            pass

        async def body(session):
            await UserRepository(session).create(user_data())
            raise Boom()

        with pytest.raises(Boom):
            await repository_context.run_in_transaction(body)

        async with repository_context.acquire_connection() as session:
            assert await UserRepository(session).find_by_email("ada@example.com") is None
        assert repository_context.engine.pool.checkedout() == 0

    async def test_cancellation_rolls_back_and_releases(self, repository_context):
        started = asyncio.Event()

        async def body(session):
            await UserRepository(session).create(user_data())
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(repository_context.run_in_transaction(body))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert repository_context.engine.pool.checkedout() == 0
        async with repository_context.acquire_connection() as session:
            assert await UserRepository(session).find_by_email("ada@example.com") is None

    async def test_sets_correlation_id_per_transaction(self, repository_context):
        seen = []

        async def body(session):
            seen.append(get_correlation_id())
            return await UserRepository(session).create(user_data(f"u{len(seen)}@example.com"))

        await repository_context.run_in_transaction(body)
        await repository_context.run_in_transaction(body)

        assert all(seen) and seen[0] != seen[1]
        assert get_correlation_id() is None

    async def test_keeps_caller_correlation_id(self, repository_context):
        async def body(session):
            return get_correlation_id()

        token = set_correlation_id("job-42")
        try:
            assert await repository_context.run_in_transaction(body) == "job-42"
        finally:
            reset_correlation_id(token)

    async def test_failed_commit_is_mapped_and_rolled_back(self, repository_context, monkeypatch):
        async def failing_commit(self):
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        async def body(session):
            await UserRepository(session).create(user_data())

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(DatabaseError) as exc_info:
            await repository_context.run_in_transaction(body)
        monkeypatch.undo()

        assert exc_info.value.transient is True
        async with repository_context.acquire_connection() as session:
            assert await UserRepository(session).count() == 0

    async def test_commit_integrity_failure_is_duplicate(self, repository_context, monkeypatch):
        async def failing_commit(self):
            raise IntegrityError("COMMIT", params={}, orig=Exception("UNIQUE constraint failed: users.email"))

        async def body(session):
            await UserRepository(session).create(user_data())

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(DuplicateError):
            await repository_context.run_in_transaction(body)


@pytest.mark.asyncio
class TestPoolLimits:

    async def test_exhausted_pool_is_transient_error(self, tmp_path):
        engine = build_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}",
            pool_size=1,
            max_overflow=0,
            pool_timeout=0.1,
        )
        context = RepositoryContext(engine)
        await context.create_schema()
        try:
            async with context.acquire_connection() as holder:
                await holder.execute(text("SELECT 1"))
                assert engine.pool.checkedout() == 1

                async with context.acquire_connection() as waiter:
                    with pytest.raises(DatabaseError) as exc_info:
                        await UserRepository(waiter).find_by_email("ada@example.com")
                    assert exc_info.value.transient is True

            assert engine.pool.checkedout() == 0
        finally:
            await context.drop_schema()
            await context.dispose()

    async def test_from_settings_uses_override(self, tmp_path):
        settings = Settings(
            DATABASE_URL_OVERRIDE=f"sqlite+aiosqlite:///{tmp_path / 'settings.db'}",
            DB_POOL_SIZE=2,
        )
        context = RepositoryContext.from_settings(settings)
        try:
            assert context.engine.url.get_backend_name() == "sqlite"
            assert context.engine.pool.size() == 2
        finally:
            await context.dispose()
