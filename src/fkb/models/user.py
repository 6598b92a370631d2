from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fkb.database.base import Base, IdMixin, TimestampMixin
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .friend import Friend
    from .group import Group
    from .friend_relationship import FriendRelationship


class User(IdMixin, TimestampMixin, Base):
    """
    SQLAlchemy model for User.

    The root of ownership: every Friend, Group and FriendRelationship row points
    at exactly one user, and deleting the user deletes all of them.
    """
    __tablename__ = "users"

    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Email address (unique; repositories store it trimmed and lower-cased)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )

    # Hashed password (never store plain-text passwords, never serialize outward)
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )

    # --- Relationships ---
    # passive_deletes: the database cascades (ON DELETE CASCADE), the ORM does not load children first

    friends: Mapped[list["Friend"]] = relationship(
        "Friend",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select"
    )

    groups: Mapped[list["Group"]] = relationship(
        "Group",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select"
    )

    friend_relationships: Mapped[list["FriendRelationship"]] = relationship(
        "FriendRelationship",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select"
    )

    def __repr__(self) -> str:
        # password_hash deliberately left out
        return f"<User(id={self.id!r}, email={self.email!r})>"
