import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.exceptions.mapper import db_error_handler
from fkb.models.friend import Friend
from fkb.models.group import FriendGroup, Group
from fkb.schemas.group import GroupCreate, GroupUpdate
from .base_repository import ScopedRepository
from .scope import OwnerScope

logger = logging.getLogger(__name__)


class GroupRepository(ScopedRepository[Group, GroupCreate, GroupUpdate]):
    """
    Repository for Group entity operations within one user's scope.
    Membership changes live on FriendRepository (add_to_group / remove_from_group).
    """

    def __init__(self, db: AsyncSession, scope: OwnerScope):
        super().__init__(Group, db, scope)

    async def list_groups(self, offset: int = 0, limit: int = 100) -> list[Group]:
        """The user's groups ordered by name."""
        query = self._select().order_by(Group.name, Group.id).offset(offset).limit(limit)
        async with db_error_handler(self.model_name, "list_groups"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def list_friends(self, group_id: UUID) -> list[Friend]:
        """Members of a group ordered by first name. Empty for a group outside the scope."""
        query = (
            select(Friend)
            .join(FriendGroup, FriendGroup.friend_id == Friend.id)
            .where(FriendGroup.group_id == group_id, FriendGroup.owned_by(self.scope.user_id))
            .order_by(Friend.first_name, Friend.last_name, Friend.id)
        )
        async with db_error_handler(self.model_name, "list_friends"):
            result = await self.db.execute(query)
            friends = list(result.scalars().all())

        logger.debug("repo.group.list_friends", extra={"group_id": group_id, "count": len(friends)})
        return friends
