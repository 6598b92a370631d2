from typing import Iterable

from sqlalchemy import UniqueConstraint, and_
from sqlalchemy.sql import select


def get_non_nullable_columns(model) -> list[str]:
    """
    Names of NOT NULL columns, primary keys excluded.
    Updates never write NULL into these.
    """
    return [
        col.name
        for col in model.__table__.columns
        if not col.nullable and not col.primary_key
    ]


def get_unique_column_sets(model) -> list[Iterable[str]]:
    """
    Return a list of unique column sets. Each item is a tuple of column names.
    Covers:
      - Column(unique=True)
      - UniqueConstraint in the table
      - Index(..., unique=True)
    Identical sets (unique=True plus its unique index) are reported once.
    """
    unique_sets: list[tuple[str, ...]] = []

    def _add(names):
        names = tuple(names)
        if names and names not in unique_sets:
            unique_sets.append(names)

    # single-column unique attributes
    for col in model.__table__.columns:
        if col.unique:
            _add([col.name])

    # UniqueConstraint objects (multi-column)
    for constraint in model.__table__.constraints:
        if isinstance(constraint, UniqueConstraint):
            _add(c.name for c in constraint.columns)

    # unique indexes
    for idx in model.__table__.indexes:
        if idx.unique:
            _add(c.name for c in idx.columns)

    return unique_sets


async def find_unique_conflicts(db, model, values: dict) -> set[str]:
    """
    Run pre-insert queries to detect existing rows that would violate unique constraints.
    Returns a set of column names that conflict (best-effort; the constraint is authoritative).
    """
    conflicts = set()

    for cols in get_unique_column_sets(model):
        # only check if all columns in this unique set are provided
        if not all(values.get(c) is not None for c in cols):
            continue

        conditions = [getattr(model, c) == values[c] for c in cols]
        res = await db.execute(select(model.id).where(and_(*conditions)).limit(1))
        if res.scalar() is not None:
            # a multi-column set reports all of its columns
            conflicts.update(cols)

    return conflicts
