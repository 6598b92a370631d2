"""
Input / output models for friend attributes.

`value` accepts plain Python values (str, int, Decimal, float, date, bool) or a
tagged variant from fkb.attributes; the repository encodes it to (text, tag).
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fkb.attributes import ValueType


class FriendAttributeCreate(BaseModel):
    friend_id: UUID
    key: str = Field(..., min_length=1, max_length=255)
    value: Any
    value_type: ValueType | None = None

    @field_validator("key")
    @classmethod
    def _strip_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("key must not be blank")
        return value


class FriendAttributeUpdate(BaseModel):
    value: Any = None
    value_type: ValueType | None = None


class FriendAttributeRead(BaseModel):
    """Stored form: `value` is the canonical text, `value_type` its tag."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    friend_id: UUID
    key: str
    value: str
    value_type: str
    created_at: datetime
    updated_at: datetime
