"""
Translate SQLAlchemy / driver errors into the repository error taxonomy.

Repositories wrap every store call in `db_error_handler()`; nothing raised by
the driver leaves a repository unmapped.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)

from .base import DatabaseError, DuplicateError, ForeignKeyViolationError, RepositoryError
from .integrity_classifier import ConstraintKind, diagnose_integrity_error

logger = logging.getLogger(__name__)


def is_transient(exc: BaseException) -> bool:
    """
    True for store failures a caller may retry: pool exhaustion, dropped or
    invalidated connections, operational errors reported by the driver.
    """
    if isinstance(exc, PoolTimeoutError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (OperationalError, InterfaceError))


def _describe(model: str, what: str, diagnosis) -> str:
    if diagnosis.columns:
        return f"{model} {what} for field(s): {', '.join(diagnosis.columns)}"
    if diagnosis.constraint:
        return f"{model} {what} (constraint: {diagnosis.constraint})"
    return f"{model} {what}"


def map_integrity_error(exc: IntegrityError, model_name: str | None = None) -> RepositoryError:
    """
    IntegrityError -> DuplicateError / ForeignKeyViolationError / DatabaseError,
    with `.fields` and `.constraint` filled in where the driver reported them.
    """
    diagnosis = diagnose_integrity_error(exc)
    model = model_name or "Record"
    event = {"model": model, "fields": diagnosis.columns, "constraint": diagnosis.constraint}

    if diagnosis.kind is ConstraintKind.UNIQUE:
        logger.info("mapper.duplicate_detected", extra=event)
        return DuplicateError(_describe(model, "already exists", diagnosis),
                              fields=diagnosis.columns, constraint=diagnosis.constraint)

    if diagnosis.kind is ConstraintKind.FOREIGN_KEY:
        logger.info("mapper.foreign_key_violation", extra=event)
        return ForeignKeyViolationError(_describe(model, "references a missing entity", diagnosis),
                                        fields=diagnosis.columns, constraint=diagnosis.constraint)

    if diagnosis.kind is ConstraintKind.NOT_NULL:
        logger.info("mapper.not_null_violation", extra=event)
        return DatabaseError(_describe(model, "is missing a required value", diagnosis),
                             fields=diagnosis.columns, constraint=diagnosis.constraint)

    # raw driver text stays at DEBUG: it can carry row values
    logger.debug("mapper.integrity_raw", extra={**event, "raw": str(exc.orig)})
    if diagnosis.kind is ConstraintKind.CHECK:
        return DatabaseError(f"{model} violates a check constraint", constraint=diagnosis.constraint)

    logger.warning("mapper.unknown_integrity_error", extra=event)
    return DatabaseError(f"{model} database integrity error", constraint=diagnosis.constraint)


@asynccontextmanager
async def db_error_handler(model_name: str | None = None, operation: str | None = None) -> AsyncIterator[None]:
    """
    Usage:
        async with db_error_handler(self.model_name, "create"):
            async with self.db.begin_nested():
                ...

    Domain errors raised inside the block pass through untouched. Rolling back is
    the job of the enclosing SAVEPOINT / transaction, not of this handler.
    """
    try:
        yield
    except RepositoryError:
        raise
    except IntegrityError as exc:
        raise map_integrity_error(exc, model_name) from exc
    except SQLAlchemyError as exc:
        transient = is_transient(exc)
        logger.exception(
            "mapper.database_error",
            extra={
                "model": model_name,
                "operation": operation,
                "transient": transient,
                "error_type": type(exc).__name__,
            },
        )
        raise DatabaseError(
            f"Failed to {operation or 'operate on'} {model_name or 'database'}", transient=transient
        ) from exc
    except Exception as exc:
        logger.exception("mapper.unexpected_error", extra={"model": model_name, "operation": operation})
        raise DatabaseError(f"Failed to {operation or 'operate on'} {model_name or 'database'}") from exc
