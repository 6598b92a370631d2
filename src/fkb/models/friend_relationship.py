import uuid

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fkb.database.base import Base, IdMixin, OwnedMixin, TimestampMixin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .user import User


def canonical_pair(x: uuid.UUID, y: uuid.UUID) -> tuple[uuid.UUID, uuid.UUID]:
    """Order-independent key for the unordered pair {x, y}."""
    return (x, y) if x < y else (y, x)


class FriendRelationship(IdMixin, TimestampMixin, OwnedMixin, Base):
    """
    Edge between two friends of the same user.

    `a_to_b` says how A relates to B. `b_to_a` is the reverse label; when it is
    NULL the edge is symmetric and `a_to_b` applies both ways.

    `pair_low_id` / `pair_high_id` hold the two friend ids in sorted order so the
    unique constraint rejects a second edge for the same pair in either direction.
    """
    __tablename__ = "friend_relationships"
    __table_args__ = (
        UniqueConstraint("pair_low_id", "pair_high_id"),
        CheckConstraint("friend_a_id <> friend_b_id", name="distinct_friends"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    friend_a_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("friends.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    friend_b_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("friends.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    pair_low_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    pair_high_id: Mapped[uuid.UUID] = mapped_column(nullable=False)

    a_to_b: Mapped[str] = mapped_column(String(100), nullable=False)
    b_to_a: Mapped[str | None] = mapped_column(String(100), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="friend_relationships")

    @property
    def is_symmetric(self) -> bool:
        return self.b_to_a is None

    def involves(self, friend_id: uuid.UUID) -> bool:
        return friend_id in (self.friend_a_id, self.friend_b_id)

    def label_from(self, from_id: uuid.UUID, to_id: uuid.UUID) -> str:
        """
        Label describing how `from_id` relates to `to_id` on this edge.

        Stored as (A, B): A->B is `a_to_b`; B->A is `b_to_a`, or `a_to_b` again
        when the edge is symmetric.

        Raises:
            ValueError: if (from_id, to_id) are not the two ends of this edge.
        """
        if (from_id, to_id) == (self.friend_a_id, self.friend_b_id):
            return self.a_to_b
        if (from_id, to_id) == (self.friend_b_id, self.friend_a_id):
            return self.b_to_a if self.b_to_a is not None else self.a_to_b
        raise ValueError(f"{from_id} -> {to_id} is not an edge of relationship {self.id}")

    @classmethod
    def owned_by(cls, user_id: uuid.UUID):
        return cls.user_id == user_id

    def __repr__(self) -> str:
        return (
            f"<FriendRelationship(id={self.id!r}, friend_a_id={self.friend_a_id!r}, "
            f"friend_b_id={self.friend_b_id!r}, a_to_b={self.a_to_b!r}, b_to_a={self.b_to_a!r})>"
        )
