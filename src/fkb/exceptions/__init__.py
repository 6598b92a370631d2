# exceptions/
# ├── __init__.py
# ├── base.py                    # Domain errors (RepositoryError and its closed set of subclasses)
# ├── integrity_classifier.py    # Diagnose which constraint an IntegrityError violated
# └── mapper.py                  # Map SQL-level / DB-specific errors to domain errors

from .base import (
    RepositoryError,
    NotFoundError,
    DuplicateError,
    ForeignKeyViolationError,
    SerializationError,
    DatabaseError,
)
from .mapper import db_error_handler

__all__ = [
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "ForeignKeyViolationError",
    "SerializationError",
    "DatabaseError",
    "db_error_handler",
]
