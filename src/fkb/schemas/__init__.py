"""
pydantic models describing what goes into and comes out of the repositories.

    from fkb.schemas import FriendCreate, FriendRead
"""

from .user import UserCreate, UserUpdate, UserRead
from .friend import FriendCreate, FriendUpdate, FriendRead
from .group import GroupCreate, GroupUpdate, GroupRead
from .friend_attribute import FriendAttributeCreate, FriendAttributeUpdate, FriendAttributeRead
from .relationship import (
    FriendRelationshipCreate,
    FriendRelationshipUpdate,
    FriendRelationshipRead,
    UserFriendRelationshipCreate,
    UserFriendRelationshipUpdate,
    UserFriendRelationshipRead,
)

__all__ = [
    "UserCreate", "UserUpdate", "UserRead",
    "FriendCreate", "FriendUpdate", "FriendRead",
    "GroupCreate", "GroupUpdate", "GroupRead",
    "FriendAttributeCreate", "FriendAttributeUpdate", "FriendAttributeRead",
    "FriendRelationshipCreate", "FriendRelationshipUpdate", "FriendRelationshipRead",
    "UserFriendRelationshipCreate", "UserFriendRelationshipUpdate", "UserFriendRelationshipRead",
]
