"""
Domain exceptions raised by the repository layer.

The set is closed: every store failure that leaves a repository is one of
NotFoundError, DuplicateError, ForeignKeyViolationError, SerializationError
or DatabaseError. Malformed input is rejected earlier by the pydantic schemas
(ValidationError), also when a repository method builds one from its
arguments, as upsert() and set_for_friend() do. Collaborators (controllers,
services) translate these into transport-level responses; raw driver errors
never cross this boundary.
"""

from typing import Iterable


class RepositoryError(Exception):
    """
    Base exception for repository errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['email'])
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'duplicate', 'not_found') used by clients
    """

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict for collaborators.
        Standard shape:
            {
                "detail": "A human-friendly message",
                "code": "duplicate",           # optional canonical code
                "fields": ["email"],           # optional list for client usage
            }
        The constraint name is deliberately left out of the payload.
        """
        payload = {"detail": self.message}
        if self.error_code:
            payload["code"] = self.error_code
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload


class NotFoundError(RepositoryError):
    """Logical absence: no row matches the id within the caller's scope."""

    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="not_found")


class DuplicateError(RepositoryError):
    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="duplicate")


class ForeignKeyViolationError(RepositoryError):
    """A referenced parent row does not exist (or is not visible to the caller)."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="foreign_key_violation")


class SerializationError(RepositoryError):
    """A stored or supplied attribute value cannot be converted under its type tag."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 value_type: str | None = None):
        super().__init__(message, fields=fields, error_code="serialization")
        self.value_type = value_type


class DatabaseError(RepositoryError):
    """
    Catch-all for store failures that are not caller-input problems.

    `transient` is True for failures worth retrying at a higher level
    (connection loss, pool exhaustion); logic errors leave it False.
    """

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, transient: bool = False):
        super().__init__(message, fields=fields, constraint=constraint, error_code="database")
        self.transient = transient

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["transient"] = self.transient
        return payload


__all__ = [
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "ForeignKeyViolationError",
    "SerializationError",
    "DatabaseError",
]


r"""
| Store failure (integrity_classifier.ConstraintKind) | Raised as                                        |
| --------------------------------------------------- | ------------------------------------------------ |
| UNIQUE                                              | DuplicateError                                   |
| FOREIGN_KEY                                         | ForeignKeyViolationError                         |
| NOT_NULL / CHECK / UNKNOWN                          | DatabaseError                                    |
| any other SQLAlchemyError                           | DatabaseError (transient if connection-class)    |

NotFoundError and SerializationError never come from the driver: the first is
raised when an id does not match within the scope, the second by attribute
value coercion.
"""
