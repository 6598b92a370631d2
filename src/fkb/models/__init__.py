"""
Centralized access to all database models.

Importing this package registers every table with Base.metadata:

    from fkb.models import User, Friend, Group, FriendGroup, FriendAttribute
"""

from .user import User
from .friend import Friend
from .group import Group, FriendGroup
from .friend_attribute import FriendAttribute
from .friend_relationship import FriendRelationship, canonical_pair
from .user_friend_relationship import UserFriendRelationship

__all__ = [
    "User",
    "Friend",
    "Group",
    "FriendGroup",
    "FriendAttribute",
    "FriendRelationship",
    "UserFriendRelationship",
    "canonical_pair",
]
