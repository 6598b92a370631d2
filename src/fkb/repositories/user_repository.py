"""
User repository for handling user-specific database operations.

Users are the root of ownership: every other table hangs off a user, so this is
the one repository that is not bound to an OwnerScope. Resolving "which user is
calling" belongs to the auth layer; this class only stores and finds accounts.
"""

import logging

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.exceptions.mapper import db_error_handler
from fkb.models.user import User
from fkb.schemas.user import UserCreate, UserUpdate
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(BaseRepository[User, UserCreate, UserUpdate]):
    """
    Repository for User entity operations.

    Inherits the generic CRUD operations; adds lookups by email. Emails are
    stored trimmed and lower-cased, and every lookup normalizes its input the
    same way.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def _before_create(self, values):
        values["email"] = normalize_email(values["email"])
        return values

    # =================================================================================================================
    # Lookup
    # =================================================================================================================

    async def find_by_email(self, email: str) -> User | None:
        """
        Get a user by their email address (case-insensitive).

        Returns:
            The User if found, None otherwise
        """
        async with db_error_handler(self.model_name, "find_by_email"):
            result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
            user = result.scalar_one_or_none()

        logger.debug("repo.user.find_by_email", extra={"found": user is not None})
        return user

    async def email_exists(self, email: str) -> bool:
        """
        True if an account already uses this address.
        """
        async with db_error_handler(self.model_name, "email_exists"):
            result = await self.db.execute(select(exists().where(User.email == normalize_email(email))))
            return bool(result.scalar())
