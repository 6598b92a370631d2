"""
This Base class is used as the declarative base for all SQLAlchemy ORM models.
Import this Base class in any model module that defines ORM classes.

Mixins:
  - IdMixin: time-ordered UUID primary key assigned on insert.
  - TimestampMixin: created_at / updated_at, touched on every UPDATE.
  - OwnedMixin: models whose rows belong to a user declare `owned_by(user_id)`.
"""

import uuid
from datetime import datetime

from sqlalchemy import Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import ColumnElement, func
from uuid6 import uuid7

from .types import TZDateTime, utcnow


class Base(DeclarativeBase):
    pass


# Naming convention for constraints and indexes
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


def new_id() -> uuid.UUID:
    """Time-ordered (version 7) UUID, sortable by creation time."""
    return uuid.UUID(int=uuid7().int)


class IdMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=new_id,
    )


class TimestampMixin:
    """
    created_at is set once on insert; updated_at is refreshed on every UPDATE
    statement issued through SQLAlchemy (ORM flush or `update()` construct).
    Repositories never assign either column themselves.

    server_default covers rows inserted outside the ORM; on PostgreSQL the
    trigger from database/triggers.py covers updates outside the ORM.
    """
    created_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class OwnedMixin:
    """
    Marks a model as user-owned data.

    Subclasses return the predicate that restricts rows to one user, either
    directly (`cls.user_id == user_id`) or through the owning Friend/Group.
    ScopedRepository refuses models that do not implement it.
    """

    @classmethod
    def owned_by(cls, user_id: uuid.UUID) -> ColumnElement[bool]:
        raise NotImplementedError(f"{cls.__name__} must implement owned_by()")
