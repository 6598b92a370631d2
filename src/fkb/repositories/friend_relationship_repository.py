"""
Friend relationship repository: labelled edges between two friends of one user.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.exceptions.base import DuplicateError
from fkb.exceptions.mapper import db_error_handler
from fkb.models.friend import Friend
from fkb.models.friend_relationship import FriendRelationship, canonical_pair
from fkb.schemas.relationship import FriendRelationshipCreate, FriendRelationshipUpdate
from .base_repository import ScopedRepository
from .scope import OwnerScope

logger = logging.getLogger(__name__)


class FriendRelationshipRepository(
    ScopedRepository[FriendRelationship, FriendRelationshipCreate, FriendRelationshipUpdate]
):
    """
    At most one edge per unordered pair of friends. The edge keeps the direction
    it was created with; `resolve()` reads it from either end.
    """

    def __init__(self, db: AsyncSession, scope: OwnerScope):
        super().__init__(FriendRelationship, db, scope)

    async def _before_create(self, values: dict[str, Any]) -> dict[str, Any]:
        values = await super()._before_create(values)
        friend_a_id, friend_b_id = values["friend_a_id"], values["friend_b_id"]

        await self._require_owned(Friend, friend_a_id, "friend_a_id")
        await self._require_owned(Friend, friend_b_id, "friend_b_id")

        if await self.find_between(friend_a_id, friend_b_id) is not None:
            logger.info(
                "repo.relationship.duplicate_pair",
                extra={"friend_a_id": friend_a_id, "friend_b_id": friend_b_id},
            )
            raise DuplicateError(
                "A relationship between these friends already exists",
                fields=["friend_a_id", "friend_b_id"],
            )

        values["pair_low_id"], values["pair_high_id"] = canonical_pair(friend_a_id, friend_b_id)
        return values

    async def list_relationships(self, offset: int = 0, limit: int = 100) -> list[FriendRelationship]:
        """All edges of the user, newest first."""
        query = (
            self._select()
            .order_by(FriendRelationship.created_at.desc(), FriendRelationship.id.desc())
            .offset(offset)
            .limit(limit)
        )
        async with db_error_handler(self.model_name, "list_relationships"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def list_by_friend(self, friend_id: UUID) -> list[FriendRelationship]:
        """Edges touching a friend on either side, newest first."""
        query = (
            self._select()
            .where(or_(FriendRelationship.friend_a_id == friend_id, FriendRelationship.friend_b_id == friend_id))
            .order_by(FriendRelationship.created_at.desc(), FriendRelationship.id.desc())
        )
        async with db_error_handler(self.model_name, "list_by_friend"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def find_between(self, x: UUID, y: UUID) -> FriendRelationship | None:
        """The edge linking x and y, stored in either order."""
        low, high = canonical_pair(x, y)
        query = self._select().where(
            FriendRelationship.pair_low_id == low,
            FriendRelationship.pair_high_id == high,
        )
        async with db_error_handler(self.model_name, "find_between"):
            result = await self.db.execute(query)
            return result.scalar_one_or_none()

    async def resolve(self, x: UUID, y: UUID) -> str | None:
        """
        How x relates to y, or None when they are not linked.

        Edge (A, B, a_to_b, b_to_a):
            resolve(A, B) -> a_to_b
            resolve(B, A) -> b_to_a, or a_to_b when the edge is symmetric
        """
        edge = await self.find_between(x, y)
        if edge is None:
            return None
        return edge.label_from(x, y)
