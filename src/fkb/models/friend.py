import uuid
from datetime import date

from sqlalchemy import Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fkb.database.base import Base, IdMixin, OwnedMixin, TimestampMixin
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .user import User
    from .group import Group
    from .friend_attribute import FriendAttribute
    from .user_friend_relationship import UserFriendRelationship


class Friend(IdMixin, TimestampMixin, OwnedMixin, Base):
    """
    A person recorded by a user. Owned directly through `user_id`.
    """
    __tablename__ = "friends"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    likes: Mapped[str | None] = mapped_column(Text, nullable=True)
    dislikes: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Relationships ---

    user: Mapped["User"] = relationship("User", back_populates="friends")

    attributes: Mapped[list["FriendAttribute"]] = relationship(
        "FriendAttribute",
        back_populates="friend",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FriendAttribute.key",
    )

    # Many-to-Many through friend_groups
    groups: Mapped[list["Group"]] = relationship(
        "Group",
        secondary="friend_groups",
        viewonly=True,
    )

    user_relationship: Mapped[Optional["UserFriendRelationship"]] = relationship(
        "UserFriendRelationship",
        back_populates="friend",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    @classmethod
    def owned_by(cls, user_id: uuid.UUID):
        return cls.user_id == user_id

    def __repr__(self) -> str:
        return f"<Friend(id={self.id!r}, user_id={self.user_id!r}, first_name={self.first_name!r})>"
