"""
Friend attribute repository.

Attributes are stored as (text, tag) pairs and handed out either as rows or as
typed values. All conversion goes through fkb.attributes.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from fkb.attributes.coercion import AttributeValue, ValueType, coerce, encode
from fkb.exceptions.base import SerializationError
from fkb.exceptions.mapper import db_error_handler
from fkb.models.friend import Friend
from fkb.models.friend_attribute import FriendAttribute
from fkb.schemas.friend_attribute import FriendAttributeCreate, FriendAttributeUpdate
from .base_repository import ScopedRepository
from .scope import OwnerScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedAttribute:
    """
    One row of `list_values()`: either `value` or `error` is set, never both.
    """
    attribute: FriendAttribute
    value: AttributeValue | None = None
    error: SerializationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FriendAttributeRepository(ScopedRepository[FriendAttribute, FriendAttributeCreate, FriendAttributeUpdate]):
    """
    Repository for FriendAttribute operations within one user's scope.

    One row per (friend_id, key): `create()` rejects a second one with
    DuplicateError, `upsert()` replaces it in place.
    """

    def __init__(self, db: AsyncSession, scope: OwnerScope):
        super().__init__(FriendAttribute, db, scope)

    def _create_values(self, data: FriendAttributeCreate) -> dict[str, Any]:
        # not model_dump(): tagged variants must reach coerce() as they are
        return {
            "friend_id": data.friend_id,
            "key": data.key,
            "value": data.value,
            "value_type": data.value_type,
        }

    async def _before_create(self, values: dict[str, Any]) -> dict[str, Any]:
        await self._require_owned(Friend, values["friend_id"], "friend_id")
        variant = coerce(values["value"], values["value_type"], key=values["key"])
        values["value"], values["value_type"] = encode(variant)
        return values

    async def _update_values(self, entity_id: UUID, data: FriendAttributeUpdate) -> dict[str, Any]:
        fields = data.model_fields_set
        if "value" not in fields and data.value_type is None:
            return {}

        current = await self.find_by_id_or_raise(entity_id)
        if "value" in fields:
            raw = data.value
        else:
            # re-tag only: the stored text is read under the new tag
            raw = current.value
        variant = coerce(raw, data.value_type, key=current.key)
        text, tag = encode(variant)
        return {"value": text, "value_type": tag}

    # =================================================================================================================
    # Lookup
    # =================================================================================================================

    async def list_by_friend(self, friend_id: UUID) -> list[FriendAttribute]:
        """All attributes of a friend ordered by key."""
        query = self._select().where(FriendAttribute.friend_id == friend_id).order_by(FriendAttribute.key)
        async with db_error_handler(self.model_name, "list_by_friend"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def find_by_friend_and_key(self, friend_id: UUID, key: str) -> FriendAttribute | None:
        query = self._select().where(
            FriendAttribute.friend_id == friend_id,
            FriendAttribute.key == key.strip(),
        )
        async with db_error_handler(self.model_name, "find_by_friend_and_key"):
            result = await self.db.execute(query)
            return result.scalar_one_or_none()

    # =================================================================================================================
    # Typed values
    # =================================================================================================================

    async def get_value(self, friend_id: UUID, key: str) -> AttributeValue | None:
        """
        Typed value of one attribute, None when the friend has no such key.

        Raises:
            SerializationError: the stored text does not parse under its tag
        """
        attribute = await self.find_by_friend_and_key(friend_id, key)
        if attribute is None:
            return None
        return attribute.typed_value

    async def list_values(self, friend_id: UUID) -> list[DecodedAttribute]:
        """
        Decode every attribute of a friend, ordered by key.

        A row that fails to decode is reported in its own DecodedAttribute
        (`error` set, `value` None); the others are unaffected.
        """
        decoded = []
        for attribute in await self.list_by_friend(friend_id):
            try:
                decoded.append(DecodedAttribute(attribute, value=attribute.typed_value))
            except SerializationError as exc:
                decoded.append(DecodedAttribute(attribute, error=exc))

        failed = sum(1 for item in decoded if not item.ok)
        if failed:
            logger.warning(
                "repo.attribute.list_values.partial",
                extra={"friend_id": friend_id, "count": len(decoded), "failed": failed},
            )
        return decoded

    # =================================================================================================================
    # Upsert
    # =================================================================================================================

    async def upsert(
        self,
        friend_id: UUID,
        key: str,
        value: Any,
        value_type: ValueType | str | None = None,
    ) -> FriendAttribute:
        """
        Set an attribute, replacing value and tag of an existing (friend_id, key) row.

        Raises:
            ForeignKeyViolationError: friend not found in this scope
            SerializationError: value not representable under value_type
            DuplicateError: a concurrent insert of the same key won the race
            pydantic.ValidationError: blank key, checked before any store access
              (the same rule FriendAttributeCreate applies)
        """
        key = FriendAttributeCreate(friend_id=friend_id, key=key, value=None).key
        text, tag = encode(coerce(value, value_type, key=key))

        async with db_error_handler(self.model_name, "upsert"):
            async with self.db.begin_nested():
                await self._require_owned(Friend, friend_id, "friend_id")

                result = await self.db.execute(
                    update(FriendAttribute)
                    .where(
                        FriendAttribute.friend_id == friend_id,
                        FriendAttribute.key == key,
                        *self._scoped_filters(),
                    )
                    .values(value=text, value_type=tag)
                    .execution_options(synchronize_session="fetch")
                )
                inserted = result.rowcount == 0
                if inserted:
                    self.db.add(FriendAttribute(friend_id=friend_id, key=key, value=text, value_type=tag))
                    await self.db.flush()

            result = await self.db.execute(
                self._select()
                .where(FriendAttribute.friend_id == friend_id, FriendAttribute.key == key)
                .execution_options(populate_existing=True)
            )
            attribute = result.scalar_one()

        logger.info(
            "repo.attribute.upsert",
            extra={"friend_id": friend_id, "key": key, "value_type": tag, "inserted": inserted},
        )
        return attribute
