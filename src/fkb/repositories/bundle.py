from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .friend_attribute_repository import FriendAttributeRepository
from .friend_relationship_repository import FriendRelationshipRepository
from .friend_repository import FriendRepository
from .group_repository import GroupRepository
from .scope import OwnerScope
from .user_friend_relationship_repository import UserFriendRelationshipRepository


@dataclass(frozen=True)
class ScopedRepositories:
    """Every scoped repository for one session and one user."""
    scope: OwnerScope
    friends: FriendRepository
    groups: GroupRepository
    attributes: FriendAttributeRepository
    relationships: FriendRelationshipRepository
    user_relationships: UserFriendRelationshipRepository

    @classmethod
    def for_user(cls, db: AsyncSession, user_id: UUID) -> "ScopedRepositories":
        scope = OwnerScope(user_id)
        return cls(
            scope=scope,
            friends=FriendRepository(db, scope),
            groups=GroupRepository(db, scope),
            attributes=FriendAttributeRepository(db, scope),
            relationships=FriendRelationshipRepository(db, scope),
            user_relationships=UserFriendRelationshipRepository(db, scope),
        )
