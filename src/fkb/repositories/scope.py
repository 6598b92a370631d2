"""
Isolation scope handed to every repository over user-owned data.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class OwnerScope:
    """
    The authenticated user whose rows a repository may see.

    The auth layer resolves the user; the repository layer trusts this id and
    filters every query with it. There is no "unscoped" value.
    """
    user_id: UUID

    def __post_init__(self):
        if self.user_id is None:
            raise ValueError("OwnerScope requires a user_id")
        if not isinstance(self.user_id, UUID):
            # accept the canonical string form, reject anything else
            object.__setattr__(self, "user_id", UUID(str(self.user_id)))

    def __str__(self) -> str:
        return f"user:{self.user_id}"
