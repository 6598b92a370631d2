"""
Diagnose an IntegrityError: which kind of constraint failed, its name and the
columns involved, as far as the driver tells us.

PostgreSQL drivers report a SQLSTATE and diagnostics; everything else (SQLite
in tests) only gives a message, so that path is string matching.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class ConstraintKind(str, Enum):
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class IntegrityDiagnosis:
    kind: ConstraintKind
    constraint: str | None = None
    columns: list[str] | None = None


# https://www.postgresql.org/docs/current/errcodes-appendix.html
SQLSTATE_KINDS = {
    "23505": ConstraintKind.UNIQUE,
    "23502": ConstraintKind.NOT_NULL,
    "23503": ConstraintKind.FOREIGN_KEY,
    "23514": ConstraintKind.CHECK,
}

# checked in order; the first keyword hit wins
MESSAGE_KEYWORDS = (
    (ConstraintKind.UNIQUE, ("unique constraint", "unique failed", "unique violation", "duplicate")),
    (ConstraintKind.NOT_NULL, ("not null constraint", "not null", "null value in column")),
    (ConstraintKind.FOREIGN_KEY, ("foreign key constraint", "foreign key", "is not present in table")),
    (ConstraintKind.CHECK, ("check constraint", "check failed")),
)

_PG_NULL_COLUMN = re.compile(r'null value in column "(?P<col>[^"]+)"', re.IGNORECASE)
_PG_KEY_DETAIL = re.compile(r'key \((?P<cols>[^)]+)\)=', re.IGNORECASE)
_SQLITE_FAILED = re.compile(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>[^\n]+)', re.IGNORECASE)


def extract_columns(message: str) -> list[str] | None:
    """
    Column names named in a driver message, e.g.

      'null value in column "email" violates not-null constraint'      -> ["email"]
      'DETAIL:  Key (friend_id, key)=(..., favorite-color) already exists.' -> ["friend_id", "key"]
      'UNIQUE constraint failed: friend_attributes.friend_id, friend_attributes.key'
                                                                        -> ["friend_id", "key"]
    """
    if not message:
        return None

    if m := _PG_NULL_COLUMN.search(message):
        return [m.group("col")]
    if m := _PG_KEY_DETAIL.search(message):
        return [c.strip().strip('"') for c in m.group("cols").split(",")]
    if m := _SQLITE_FAILED.search(message):
        return [c.split(".")[-1].strip() for c in re.split(r",\s*", m.group("cols").strip())]
    return None


def _sqlstate(orig) -> str | None:
    # psycopg 3 exposes `sqlstate`; psycopg2 and asyncpg wrappers expose `pgcode`
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _kind_from_message(message: str) -> ConstraintKind:
    normalized = (message or "").lower()
    for kind, keywords in MESSAGE_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return kind

    logger.warning("integrity.unknown_message", extra={"message_snippet": (message or "")[:200]})
    return ConstraintKind.UNKNOWN


def diagnose_integrity_error(exc: IntegrityError) -> IntegrityDiagnosis:
    orig = exc.orig
    message = str(orig) if orig is not None else str(exc)
    columns = extract_columns(message)

    sqlstate = _sqlstate(orig)
    if sqlstate:
        diag = getattr(orig, "diag", None)
        constraint = getattr(diag, "constraint_name", None) if diag else None
        kind = SQLSTATE_KINDS.get(sqlstate, ConstraintKind.UNKNOWN)
        if kind is ConstraintKind.UNKNOWN:
            logger.warning("integrity.unknown_sqlstate", extra={"sqlstate": sqlstate, "constraint": constraint})
        return IntegrityDiagnosis(kind, constraint, columns)

    return IntegrityDiagnosis(_kind_from_message(message), None, columns)
