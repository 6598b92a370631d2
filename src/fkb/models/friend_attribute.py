import uuid

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, select
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fkb.attributes.coercion import AttributeValue, ValueType, decode
from fkb.database.base import Base, IdMixin, OwnedMixin, TimestampMixin

from .friend import Friend


class FriendAttribute(IdMixin, TimestampMixin, OwnedMixin, Base):
    """
    A per-friend key/value fact.

    `value` holds the canonical text form and `value_type` the tag that says how
    to parse it. Only one row per (friend_id, key).
    """
    __tablename__ = "friend_attributes"
    __table_args__ = (
        UniqueConstraint("friend_id", "key"),
    )

    friend_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("friends.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ValueType.TEXT.value,
        server_default=ValueType.TEXT.value,
    )

    friend: Mapped["Friend"] = relationship("Friend", back_populates="attributes")

    @property
    def typed_value(self) -> AttributeValue:
        """Decoded value; raises SerializationError if text and tag disagree."""
        return decode(self.value, self.value_type, key=self.key)

    @classmethod
    def owned_by(cls, user_id: uuid.UUID):
        return cls.friend_id.in_(select(Friend.id).where(Friend.user_id == user_id))

    def __repr__(self) -> str:
        return f"<FriendAttribute(friend_id={self.friend_id!r}, key={self.key!r}, value_type={self.value_type!r})>"
