"""Fixtures for repository tests."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.models import Friend, User
from fkb.repositories import ScopedRepositories, UserRepository
from fkb.schemas import FriendCreate, UserCreate

# NOTE: All fixtures in this file depend on the `db_session` fixture defined in conftest.py
# The `db_session` provides a transactional, rollback-capable database session for tests.


@pytest.fixture
async def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def sample_user_data() -> dict[str, str]:
    """
    Simple, deterministic sample payload. Kept synchronous because it does not touch the DB.
    """
    return {
        "email": "ada@example.com",
        "password_hash": "argon2$not-a-real-hash",
        "first_name": "Ada",
        "last_name": "Lovelace",
    }


@pytest.fixture
async def create_user(user_repository: UserRepository):
    """
    Factory helper creating users with unique emails and optional overrides.

    Usage:
        user = await create_user(first_name="Bob")
    """
    async def _create(**overrides) -> User:
        data = {
            "email": f"user_{uuid.uuid4().hex[:8]}@example.com",
            "password_hash": "pw",
        }
        data.update(overrides)
        return await user_repository.create(UserCreate(**data))

    return _create


@pytest.fixture
async def created_user(create_user, sample_user_data) -> User:
    return await create_user(**sample_user_data)


@pytest.fixture
async def other_user(create_user) -> User:
    return await create_user(first_name="Eve")


@pytest.fixture
def repos(db_session: AsyncSession, created_user: User) -> ScopedRepositories:
    """Every scoped repository for `created_user`."""
    return ScopedRepositories.for_user(db_session, created_user.id)


@pytest.fixture
def other_repos(db_session: AsyncSession, other_user: User) -> ScopedRepositories:
    """Every scoped repository for a second, unrelated user."""
    return ScopedRepositories.for_user(db_session, other_user.id)


@pytest.fixture
async def create_friend(repos: ScopedRepositories):
    async def _create(first_name: str = "Grace", **overrides) -> Friend:
        return await repos.friends.create(FriendCreate(first_name=first_name, **overrides))

    return _create


@pytest.fixture
async def friend_pair(create_friend) -> tuple[Friend, Friend]:
    return await create_friend("Alice"), await create_friend("Bob")
