import uuid

from sqlalchemy import ForeignKey, String, select
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fkb.database.base import Base, IdMixin, OwnedMixin, TimestampMixin

from .friend import Friend


class UserFriendRelationship(IdMixin, TimestampMixin, OwnedMixin, Base):
    """
    How the owning user knows a friend ("colleague", "neighbour", ...).
    One label per friend; owned through the friend.
    """
    __tablename__ = "user_friend_relationships"

    friend_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("friends.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    relationship_type: Mapped[str] = mapped_column(String(100), nullable=False)

    friend: Mapped["Friend"] = relationship("Friend", back_populates="user_relationship")

    @classmethod
    def owned_by(cls, user_id: uuid.UUID):
        return cls.friend_id.in_(select(Friend.id).where(Friend.user_id == user_id))

    def __repr__(self) -> str:
        return (
            f"<UserFriendRelationship(friend_id={self.friend_id!r}, "
            f"relationship_type={self.relationship_type!r})>"
        )
