from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError

from fkb.exceptions import (
    DatabaseError,
    DuplicateError,
    ForeignKeyViolationError,
    NotFoundError,
    RepositoryError,
    db_error_handler,
)
from fkb.exceptions.integrity_classifier import ConstraintKind, diagnose_integrity_error, extract_columns
from fkb.exceptions.mapper import is_transient
from fkb.schemas import UserCreate


def pg_integrity_error(pgcode: str, constraint: str | None = None) -> IntegrityError:
    orig = SimpleNamespace(pgcode=pgcode, diag=SimpleNamespace(constraint_name=constraint))
    return IntegrityError("INSERT ...", params={}, orig=orig)


def sqlite_integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT ...", params={}, orig=Exception(message))


class TestClassifier:

    @pytest.mark.parametrize(
        "pgcode, expected",
        [
            ("23505", ConstraintKind.UNIQUE),
            ("23503", ConstraintKind.FOREIGN_KEY),
            ("23502", ConstraintKind.NOT_NULL),
            ("23514", ConstraintKind.CHECK),
            ("23P01", ConstraintKind.UNKNOWN),
        ],
    )
    def test_postgres_codes(self, pgcode, expected):
        diagnosis = diagnose_integrity_error(pg_integrity_error(pgcode, "some_constraint"))
        assert diagnosis.kind is expected
        assert diagnosis.constraint == "some_constraint"

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("UNIQUE constraint failed: users.email", ConstraintKind.UNIQUE),
            ("NOT NULL constraint failed: friends.first_name", ConstraintKind.NOT_NULL),
            ("FOREIGN KEY constraint failed", ConstraintKind.FOREIGN_KEY),
            ("CHECK constraint failed: distinct_friends", ConstraintKind.CHECK),
            ("something else entirely", ConstraintKind.UNKNOWN),
        ],
    )
    def test_generic_messages(self, message, expected):
        diagnosis = diagnose_integrity_error(sqlite_integrity_error(message))
        assert diagnosis.kind is expected
        assert diagnosis.constraint is None

    def test_column_extraction(self):
        assert extract_columns(
            "UNIQUE constraint failed: friend_attributes.friend_id, friend_attributes.key"
        ) == ["friend_id", "key"]
        assert extract_columns(
            'DETAIL:  Key (email)=(ada@example.com) already exists.'
        ) == ["email"]


@pytest.mark.asyncio
class TestDbErrorHandler:

    async def test_unique_violation_becomes_duplicate(self):
        with pytest.raises(DuplicateError) as exc_info:
            async with db_error_handler("User", "create"):
                raise pg_integrity_error("23505", "users_email_key")

        assert exc_info.value.constraint == "users_email_key"
        assert exc_info.value.fields is None
        assert exc_info.value.to_payload()["code"] == "duplicate"

    async def test_fk_violation(self):
        with pytest.raises(ForeignKeyViolationError):
            async with db_error_handler("Friend", "create"):
                raise pg_integrity_error("23503", "friends_user_id_fkey")

    async def test_check_violation_becomes_database_error(self):
        with pytest.raises(DatabaseError) as exc_info:
            async with db_error_handler("FriendRelationship", "create"):
                raise sqlite_integrity_error("CHECK constraint failed: distinct_friends")
        assert exc_info.value.transient is False

    async def test_operational_error_is_transient(self):
        with pytest.raises(DatabaseError) as exc_info:
            async with db_error_handler("Friend", "get_all"):
                raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

        assert exc_info.value.transient is True
        assert exc_info.value.to_payload()["transient"] is True
        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_pool_timeout_is_transient(self):
        with pytest.raises(DatabaseError) as exc_info:
            async with db_error_handler("Friend", "find_by_id"):
                raise PoolTimeoutError("QueuePool limit reached")
        assert exc_info.value.transient is True

    async def test_domain_errors_pass_through(self):
        with pytest.raises(NotFoundError):
            async with db_error_handler("Friend", "update"):
                raise NotFoundError("Friend not found")

    async def test_unexpected_errors_are_wrapped(self):
        with pytest.raises(DatabaseError) as exc_info:
            async with db_error_handler("Friend", "create"):
                raise RuntimeError("driver exploded")
        assert exc_info.value.transient is False

    def test_is_transient_for_logic_errors(self):
        assert is_transient(sqlite_integrity_error("UNIQUE constraint failed: users.email")) is False


@pytest.mark.asyncio
class TestRepositoryFailureRecovery:

    async def test_failed_flush_leaves_session_usable(self, user_repository, monkeypatch, sample_user_data):
        async def broken_flush(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("connection reset"))

        monkeypatch.setattr(user_repository.db, "flush", broken_flush)
        with pytest.raises(DatabaseError) as exc_info:
            await user_repository.create(UserCreate(**sample_user_data))
        assert exc_info.value.transient is True

        monkeypatch.undo()
        user = await user_repository.create(UserCreate(**sample_user_data))
        assert await user_repository.find_by_id(user.id) is not None


class TestPayload:

    def test_payload_shape(self):
        err = DuplicateError("User already exists", fields=["email"], constraint="users_email_key")
        assert err.to_payload() == {"detail": "User already exists", "code": "duplicate", "fields": ["email"]}
        assert "constraint: users_email_key" in str(err)

    def test_closed_taxonomy(self):
        for cls in (NotFoundError, DuplicateError, ForeignKeyViolationError, DatabaseError):
            assert issubclass(cls, RepositoryError)
