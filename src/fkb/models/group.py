import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Text, select
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from fkb.database.base import Base, IdMixin, OwnedMixin, TimestampMixin
from fkb.database.types import TZDateTime, utcnow
from typing import TYPE_CHECKING

from .friend import Friend

if TYPE_CHECKING:
    from .user import User


class Group(IdMixin, TimestampMixin, OwnedMixin, Base):
    """
    A named, user-owned tag for organizing friends.
    """
    __tablename__ = "groups"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="groups")

    friends: Mapped[list["Friend"]] = relationship(
        "Friend",
        secondary="friend_groups",
        viewonly=True,
    )

    @classmethod
    def owned_by(cls, user_id: uuid.UUID):
        return cls.user_id == user_id

    def __repr__(self) -> str:
        return f"<Group(id={self.id!r}, user_id={self.user_id!r}, name={self.name!r})>"


class FriendGroup(OwnedMixin, Base):
    """
    Membership of a friend in a group. Composite key, no identity of its own.
    Owned transitively: both sides must belong to the user.
    """
    __tablename__ = "friend_groups"

    friend_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("friends.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    @classmethod
    def owned_by(cls, user_id: uuid.UUID):
        return cls.friend_id.in_(select(Friend.id).where(Friend.user_id == user_id)) & cls.group_id.in_(
            select(Group.id).where(Group.user_id == user_id)
        )

    def __repr__(self) -> str:
        return f"<FriendGroup(friend_id={self.friend_id!r}, group_id={self.group_id!r})>"
