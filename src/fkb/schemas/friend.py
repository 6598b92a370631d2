"""Input / output models for friends."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FriendCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    date_of_birth: date | None = None
    likes: str | None = None
    dislikes: str | None = None
    notes: str | None = None


class FriendUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    date_of_birth: date | None = None
    likes: str | None = None
    dislikes: str | None = None
    notes: str | None = None


class FriendRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    first_name: str
    last_name: str | None = None
    date_of_birth: date | None = None
    likes: str | None = None
    dislikes: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
