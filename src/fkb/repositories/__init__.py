"""
Repository layer initialization module.

Every repository except UserRepository is bound to an OwnerScope:

    from fkb.repositories import ScopedRepositories, UserRepository

    repos = ScopedRepositories.for_user(session, user.id)
    friend = await repos.friends.create(FriendCreate(first_name="Ada"))
"""

from .base_repository import BaseRepository, Repository, ScopedRepository
from .scope import OwnerScope
from .user_repository import UserRepository
from .friend_repository import FriendRepository
from .group_repository import GroupRepository
from .friend_attribute_repository import DecodedAttribute, FriendAttributeRepository
from .friend_relationship_repository import FriendRelationshipRepository
from .user_friend_relationship_repository import UserFriendRelationshipRepository
from .bundle import ScopedRepositories

__all__ = [
    "Repository",
    "BaseRepository",
    "ScopedRepository",
    "OwnerScope",
    "UserRepository",
    "FriendRepository",
    "GroupRepository",
    "FriendAttributeRepository",
    "DecodedAttribute",
    "FriendRelationshipRepository",
    "UserFriendRelationshipRepository",
    "ScopedRepositories",
]
