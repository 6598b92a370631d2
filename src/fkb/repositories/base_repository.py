"""
Base repository classes providing common database operations.

Three layers:

  - `Repository`: the CRUD contract every entity repository satisfies
    (find_by_id / create / update / delete), parameterized by the entity type,
    its create input and its update input.
  - `BaseRepository`: shared implementation of that contract plus listing
    helpers, error mapping and logging. Used directly only for `User`.
  - `ScopedRepository`: BaseRepository bound to an `OwnerScope`. Every query it
    builds carries the model's `owned_by(user_id)` predicate; there is no way to
    construct one without a scope.

Repositories never commit. Each write runs inside a SAVEPOINT so a failed write
rolls back only itself and the caller's transaction stays usable; the caller
(see `RepositoryContext.run_in_transaction`) decides when to commit.
"""
from fkb.exceptions.base import (
    DuplicateError,
    ForeignKeyViolationError,
    NotFoundError,
)

from fkb.exceptions.mapper import db_error_handler
from fkb.validators.model_validators import find_unique_conflicts, get_non_nullable_columns

import time
from typing import Any, Generic, Protocol, Type, TypeVar
from uuid import UUID
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import Select, delete, func, select, update
import logging

from fkb.database.base import Base, OwnedMixin
from .scope import OwnerScope

# Type variables for the model class and its input schemas
ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

logger = logging.getLogger(__name__)


# helper: mask sensitive keys before values reach a log record
_SENSITIVE_KEYS = {"password", "password_hash", "secret", "token", "access_token", "refresh_token", "ssn"}

def _mask_sensitive(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Return a shallow copy with sensitive values replaced by '***'.
    Only use for low-volume debug logs; prefer logging keys or counts otherwise.
    """
    out = {}
    for k, v in payload.items():
        if k.lower() in _SENSITIVE_KEYS:
            out[k] = "***"
        else:
            out[k] = v
    return out


class Repository(Protocol[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    CRUD contract shared by every entity repository.

    - find_by_id: None when absent or outside the caller's scope
    - create: DuplicateError / ForeignKeyViolationError on constraint problems
    - update: NotFoundError when nothing matches; only provided fields change
    - delete: NotFoundError when nothing matches (also on a repeated delete)
    """

    async def find_by_id(self, entity_id: UUID) -> ModelType | None: ...

    async def create(self, data: CreateSchemaType) -> ModelType: ...

    async def update(self, entity_id: UUID, data: UpdateSchemaType) -> ModelType: ...

    async def delete(self, entity_id: UUID) -> None: ...


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Generic repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
        CreateSchemaType: pydantic model accepted by `create()`.
        UpdateSchemaType: pydantic model accepted by `update()`; unset fields are left alone.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class (User, not User())
            db: The async database session the caller owns
        """
        self.model = model
        self.db = db

    @property
    def model_name(self) -> str:
        return self.model.__name__

    # =================================================================================================================
    # Query building
    # =================================================================================================================

    def _scoped_filters(self) -> list:
        """Predicates every statement of this repository must carry. None for unscoped data."""
        return []

    def _select(self, *entities) -> Select:
        """
        SELECT over this repository's model with the scope filters applied.
        Entity-specific finders build on this instead of calling `select()` directly.
        """
        stmt = select(*entities) if entities else select(self.model)
        filters = self._scoped_filters()
        if filters:
            stmt = stmt.where(*filters)
        return stmt

    def _create_values(self, data: CreateSchemaType) -> dict[str, Any]:
        """Hook: create input -> column values."""
        return data.model_dump()

    async def _before_create(self, values: dict[str, Any]) -> dict[str, Any]:
        """Hook: normalize / complete insert values. May raise domain errors."""
        return values

    async def _update_values(self, entity_id: UUID, data: UpdateSchemaType) -> dict[str, Any]:
        """
        Turn an update input into column values.

        Only fields the caller set are kept. An explicit None is kept for nullable
        columns (clears the value) and dropped for NOT NULL columns.
        """
        provided = data.model_dump(exclude_unset=True)
        required = set(get_non_nullable_columns(self.model))
        return {k: v for k, v in provided.items() if not (v is None and k in required)}

    # =================================================================================================================
    # Create
    # =================================================================================================================

    async def create(self, data: CreateSchemaType) -> ModelType:
        """
        Insert a new row. Logging:
        - DEBUG: start event with model name and provided keys (not values).
        - INFO: expected domain errors (duplicate pre-check hit).
        - INFO: success event with created id and duration_ms.

        Raises:
            DuplicateError: a unique constraint would be (or was) violated
            ForeignKeyViolationError: a referenced parent does not exist / is not visible
            DatabaseError: any other store failure
        """
        values = self._create_values(data)

        logger.debug(
            "repo.create.start",
            extra={
                "model": self.model_name,
                "operation": "create",
                "provided_keys": sorted(values.keys()),
            },
        )

        start = time.perf_counter()

        async with db_error_handler(self.model_name, "create"):
            async with self.db.begin_nested():
                values = await self._before_create(values)

                # best-effort pre-check; the unique constraints remain the final word
                conflicts = await find_unique_conflicts(self.db, self.model, values)
                if conflicts:
                    logger.info(
                        "repo.create.duplicate_precheck",
                        extra={
                            "model": self.model_name,
                            "operation": "create",
                            "conflict_fields": sorted(conflicts),
                        },
                    )
                    raise DuplicateError(
                        f"{self.model_name} already exists for field(s): {', '.join(sorted(conflicts))}",
                        fields=sorted(conflicts),
                    )

                entity = self.model(**values)
                self.db.add(entity)
                await self.db.flush()
                await self.db.refresh(entity)

        logger.info(
            "repo.create.success",
            extra={
                "model": self.model_name,
                "operation": "create",
                "id": getattr(entity, "id", None),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

        # flush() vs commit()
        # | Method      | What it does                | Where it happens                               |
        # | ----------- | --------------------------- | ---------------------------------------------- |
        # | `flush()`   | Sends SQL, runs constraints | here, so constraint errors surface per call    |
        # | `refresh()` | Reloads row from DB         | here, to return server-side defaults           |
        # | `commit()`  | Finalizes the transaction   | RepositoryContext.run_in_transaction / caller  |

    # =================================================================================================================
    # Read (single entity)
    # =================================================================================================================

    async def find_by_id(self, entity_id: UUID) -> ModelType | None:
        """
        Get an entity by its ID.

        Returns:
            The entity, or None if it does not exist or is outside the scope.
        """
        async with db_error_handler(self.model_name, "find_by_id"):
            result = await self.db.execute(
                self._select().where(self.model.id == entity_id)
            )
            entity = result.scalar_one_or_none()

        logger.debug("repo.find_by_id", extra={"model": self.model_name, "id": entity_id, "found": entity is not None})
        return entity

    async def find_by_id_or_raise(self, entity_id: UUID) -> ModelType:
        """
        Get an entity by its ID or raise NotFoundError.
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.model_name} with ID {entity_id} not found")
        return entity

    async def exists(self, entity_id: UUID) -> bool:
        async with db_error_handler(self.model_name, "exists"):
            result = await self.db.execute(
                self._select(self.model.id).where(self.model.id == entity_id)
            )
            return result.scalar() is not None

    # =================================================================================================================
    # Read (multiple entities)
    # =================================================================================================================

    async def get_all(
        self,
        offset: int = 0,                # how many records to skip
        limit: int = 100,               # max number of records to return
        order_by: str | None = None     # mapped column name; invalid names are ignored
    ) -> list[ModelType]:
        """
        Get all visible entities with optional ordering and pagination.

        Ordering:
          - `order_by` given and a mapped column: ORDER BY that column ASC
          - `order_by` given but unknown: ignored (warning logged)
          - not given: newest first by created_at
        """
        query = self._select()

        if order_by:
            if order_by in self.model.__table__.c:
                query = query.order_by(getattr(self.model, order_by))
            else:
                logger.warning(
                    "repo.get_all.invalid_order_by",
                    extra={"model": self.model_name, "order_by": order_by},
                )
        elif "created_at" in self.model.__table__.c:
            query = query.order_by(self.model.created_at.desc(), self.model.id.desc())

        query = query.offset(offset).limit(limit)

        async with db_error_handler(self.model_name, "get_all"):
            result = await self.db.execute(query)
            entities = list(result.scalars().all())

        logger.debug("repo.get_all", extra={"model": self.model_name, "count": len(entities)})
        return entities

    async def count(self, **filters: Any) -> int:
        """
        Count visible entities, optionally filtered by column equality
        (e.g., count(friend_id=...)). Unknown columns are ignored.
        """
        query = self._select(func.count()).select_from(self.model)
        for field, value in filters.items():
            if field in self.model.__table__.c and value is not None:
                query = query.where(getattr(self.model, field) == value)

        async with db_error_handler(self.model_name, "count"):
            result = await self.db.execute(query)
            return result.scalar() or 0

    # =================================================================================================================
    # Update
    # =================================================================================================================

    async def update(self, entity_id: UUID, data: UpdateSchemaType) -> ModelType:
        """
        Merge the provided fields into the row and return the post-update entity.

        updated_at is refreshed by the column's onupdate rule (TimestampMixin).

        Raises:
            NotFoundError: no row with this id in scope
            DuplicateError: the change would violate a unique constraint
        """
        values = await self._update_values(entity_id, data)

        if not values:
            logger.debug("repo.update.noop", extra={"model": self.model_name, "id": entity_id})
            return await self.find_by_id_or_raise(entity_id)

        logger.debug(
            "repo.update.start",
            extra={"model": self.model_name, "id": entity_id, "changes": _mask_sensitive(values)},
        )

        async with db_error_handler(self.model_name, "update"):
            async with self.db.begin_nested():
                stmt = (
                    update(self.model)
                    .where(self.model.id == entity_id, *self._scoped_filters())
                    .values(**values)
                    .execution_options(synchronize_session="fetch")
                )
                result = await self.db.execute(stmt)

                if result.rowcount == 0:
                    logger.info("repo.update.not_found", extra={"model": self.model_name, "id": entity_id})
                    raise NotFoundError(f"{self.model_name} with ID {entity_id} not found")

            # re-read so server-side values (updated_at) replace what the identity map holds
            result = await self.db.execute(
                self._select()
                .where(self.model.id == entity_id)
                .execution_options(populate_existing=True)
            )
            entity = result.scalar_one()

        logger.info("repo.update.success", extra={"model": self.model_name, "id": entity_id})
        return entity

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    async def delete(self, entity_id: UUID) -> None:
        """
        Hard-delete a row; dependent rows go with it (ON DELETE CASCADE).

        Raises:
            NotFoundError: no row with this id in scope, including an id that was
                already deleted. Deleting twice is not silently accepted.
        """
        async with db_error_handler(self.model_name, "delete"):
            async with self.db.begin_nested():
                stmt = (
                    delete(self.model)
                    .where(self.model.id == entity_id, *self._scoped_filters())
                    .execution_options(synchronize_session="fetch")
                )
                result = await self.db.execute(stmt)

                if result.rowcount == 0:
                    logger.info("repo.delete.not_found", extra={"model": self.model_name, "id": entity_id})
                    raise NotFoundError(f"{self.model_name} with ID {entity_id} not found")

        logger.info("repo.delete.success", extra={"model": self.model_name, "id": entity_id})


class ScopedRepository(BaseRepository[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    BaseRepository over user-owned data.

    The scope is a required constructor argument and every statement built by the
    base class (select, update, delete, count) carries `model.owned_by(user_id)`.
    Rows that carry `user_id` themselves get it from the scope on insert; callers
    cannot create rows for another user.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession, scope: OwnerScope):
        if not isinstance(scope, OwnerScope):
            raise TypeError(f"{type(self).__name__} requires an OwnerScope, got {type(scope).__name__}")
        if not (isinstance(model, type) and issubclass(model, OwnedMixin)):
            raise TypeError(f"{model!r} does not declare owned_by(); it cannot be scoped")
        super().__init__(model, db)
        self.scope = scope

    def _scoped_filters(self) -> list:
        return [self.model.owned_by(self.scope.user_id)]

    async def _before_create(self, values: dict[str, Any]) -> dict[str, Any]:
        if "user_id" in self.model.__table__.c:
            values["user_id"] = self.scope.user_id
        return values

    async def _require_owned(self, model: Type[OwnedMixin], entity_id: UUID, field: str) -> None:
        """
        Make sure a referenced parent exists within the scope.

        A parent owned by another user is reported exactly like a missing one.

        Raises:
            ForeignKeyViolationError: parent missing or not visible.
        """
        result = await self.db.execute(
            select(model.id).where(model.id == entity_id, model.owned_by(self.scope.user_id))
        )
        if result.scalar() is None:
            logger.info(
                "repo.parent.not_visible",
                extra={"model": self.model_name, "parent": model.__name__, "field": field},
            )
            raise ForeignKeyViolationError(
                f"{self.model_name} referenced {model.__name__} not found for field(s): {field}",
                fields=[field],
            )
