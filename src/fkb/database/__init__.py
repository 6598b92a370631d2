from .base import Base, IdMixin, TimestampMixin, OwnedMixin, new_id
from .session import RepositoryContext, build_engine, get_repository_context

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "OwnedMixin",
    "new_id",
    "RepositoryContext",
    "build_engine",
    "get_repository_context",
]
