"""
Friend repository: the people a user keeps notes about, plus group membership.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.exceptions.base import NotFoundError
from fkb.exceptions.mapper import db_error_handler
from fkb.models.friend import Friend
from fkb.models.group import FriendGroup, Group
from fkb.schemas.friend import FriendCreate, FriendUpdate
from .base_repository import ScopedRepository
from .scope import OwnerScope

logger = logging.getLogger(__name__)


class FriendRepository(ScopedRepository[Friend, FriendCreate, FriendUpdate]):
    """
    Repository for Friend entity operations within one user's scope.
    """

    def __init__(self, db: AsyncSession, scope: OwnerScope):
        super().__init__(Friend, db, scope)

    async def list_friends(self, offset: int = 0, limit: int = 100) -> list[Friend]:
        """
        The user's friends ordered by first name (then last name).
        """
        query = (
            self._select()
            .order_by(Friend.first_name, Friend.last_name, Friend.id)
            .offset(offset)
            .limit(limit)
        )
        async with db_error_handler(self.model_name, "list_friends"):
            result = await self.db.execute(query)
            friends = list(result.scalars().all())

        logger.debug("repo.friend.list", extra={"count": len(friends)})
        return friends

    # =================================================================================================================
    # Group membership
    # =================================================================================================================

    async def add_to_group(self, friend_id: UUID, group_id: UUID) -> bool:
        """
        Put a friend into a group.

        Returns:
            True if the membership was created, False if it already existed.

        Raises:
            ForeignKeyViolationError: friend or group not found in this scope
        """
        async with db_error_handler("FriendGroup", "add_to_group"):
            async with self.db.begin_nested():
                await self._require_owned(Friend, friend_id, "friend_id")
                await self._require_owned(Group, group_id, "group_id")

                result = await self.db.execute(
                    select(FriendGroup.friend_id).where(
                        FriendGroup.friend_id == friend_id,
                        FriendGroup.group_id == group_id,
                    )
                )
                if result.scalar() is not None:
                    logger.debug("repo.friend.add_to_group.exists", extra={"friend_id": friend_id, "group_id": group_id})
                    return False

                self.db.add(FriendGroup(friend_id=friend_id, group_id=group_id))
                await self.db.flush()

        logger.info("repo.friend.add_to_group", extra={"friend_id": friend_id, "group_id": group_id})
        return True

    async def remove_from_group(self, friend_id: UUID, group_id: UUID) -> None:
        """
        Raises:
            NotFoundError: the friend is not a member of the group (in this scope)
        """
        async with db_error_handler("FriendGroup", "remove_from_group"):
            async with self.db.begin_nested():
                result = await self.db.execute(
                    delete(FriendGroup)
                    .where(
                        FriendGroup.friend_id == friend_id,
                        FriendGroup.group_id == group_id,
                        FriendGroup.owned_by(self.scope.user_id),
                    )
                    .execution_options(synchronize_session="fetch")
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Friend {friend_id} is not a member of group {group_id}")

        logger.info("repo.friend.remove_from_group", extra={"friend_id": friend_id, "group_id": group_id})

    async def list_groups(self, friend_id: UUID) -> list[Group]:
        """Groups the friend belongs to, ordered by name."""
        query = (
            select(Group)
            .join(FriendGroup, FriendGroup.group_id == Group.id)
            .where(FriendGroup.friend_id == friend_id, FriendGroup.owned_by(self.scope.user_id))
            .order_by(Group.name, Group.id)
        )
        async with db_error_handler(self.model_name, "list_groups"):
            result = await self.db.execute(query)
            return list(result.scalars().all())
