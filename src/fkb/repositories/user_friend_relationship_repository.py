import logging
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.exceptions.mapper import db_error_handler
from fkb.models.friend import Friend
from fkb.models.user_friend_relationship import UserFriendRelationship
from fkb.schemas.relationship import UserFriendRelationshipCreate, UserFriendRelationshipUpdate
from .base_repository import ScopedRepository
from .scope import OwnerScope

logger = logging.getLogger(__name__)


class UserFriendRelationshipRepository(
    ScopedRepository[UserFriendRelationship, UserFriendRelationshipCreate, UserFriendRelationshipUpdate]
):
    """
    The user's own relationship to each friend. One label per friend: a second
    `create()` for the same friend raises DuplicateError, `set_for_friend()`
    replaces the label instead.
    """

    def __init__(self, db: AsyncSession, scope: OwnerScope):
        super().__init__(UserFriendRelationship, db, scope)

    async def _before_create(self, values: dict[str, Any]) -> dict[str, Any]:
        await self._require_owned(Friend, values["friend_id"], "friend_id")
        return values

    async def find_by_friend(self, friend_id: UUID) -> UserFriendRelationship | None:
        async with db_error_handler(self.model_name, "find_by_friend"):
            result = await self.db.execute(
                self._select().where(UserFriendRelationship.friend_id == friend_id)
            )
            return result.scalar_one_or_none()

    async def find_by_friend_and_type(self, friend_id: UUID, relationship_type: str) -> UserFriendRelationship | None:
        async with db_error_handler(self.model_name, "find_by_friend_and_type"):
            result = await self.db.execute(
                self._select().where(
                    UserFriendRelationship.friend_id == friend_id,
                    UserFriendRelationship.relationship_type == relationship_type,
                )
            )
            return result.scalar_one_or_none()

    async def set_for_friend(self, friend_id: UUID, relationship_type: str) -> UserFriendRelationship:
        """
        Create or replace the label for a friend.

        Raises:
            ForeignKeyViolationError: friend not found in this scope
            pydantic.ValidationError: empty or over-long label, checked before any store
              access (the same rule UserFriendRelationshipCreate applies)
        """
        relationship_type = UserFriendRelationshipCreate(
            friend_id=friend_id, relationship_type=relationship_type
        ).relationship_type

        async with db_error_handler(self.model_name, "set_for_friend"):
            async with self.db.begin_nested():
                await self._require_owned(Friend, friend_id, "friend_id")

                result = await self.db.execute(
                    update(UserFriendRelationship)
                    .where(UserFriendRelationship.friend_id == friend_id, *self._scoped_filters())
                    .values(relationship_type=relationship_type)
                    .execution_options(synchronize_session="fetch")
                )
                inserted = result.rowcount == 0
                if inserted:
                    self.db.add(UserFriendRelationship(friend_id=friend_id, relationship_type=relationship_type))
                    await self.db.flush()

            result = await self.db.execute(
                self._select()
                .where(UserFriendRelationship.friend_id == friend_id)
                .execution_options(populate_existing=True)
            )
            label = result.scalar_one()

        logger.info("repo.user_relationship.set", extra={"friend_id": friend_id, "inserted": inserted})
        return label
