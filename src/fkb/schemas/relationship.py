"""Input / output models for friend-friend and user-friend relationships."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FriendRelationshipCreate(BaseModel):
    """
    One edge between two friends.

    b_to_a = None means symmetric (a_to_b reads the same both ways).
    """
    friend_a_id: UUID
    friend_b_id: UUID
    a_to_b: str = Field(..., min_length=1, max_length=100)
    b_to_a: str | None = Field(None, min_length=1, max_length=100)

    @model_validator(mode="after")
    def _distinct_friends(self):
        if self.friend_a_id == self.friend_b_id:
            raise ValueError("a friend cannot be related to themselves")
        return self


class FriendRelationshipUpdate(BaseModel):
    a_to_b: str | None = Field(None, min_length=1, max_length=100)
    b_to_a: str | None = Field(None, min_length=1, max_length=100)


class FriendRelationshipRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    friend_a_id: UUID
    friend_b_id: UUID
    a_to_b: str
    b_to_a: str | None = None
    created_at: datetime
    updated_at: datetime


class UserFriendRelationshipCreate(BaseModel):
    friend_id: UUID
    relationship_type: str = Field(..., min_length=1, max_length=100)


class UserFriendRelationshipUpdate(BaseModel):
    relationship_type: str | None = Field(None, min_length=1, max_length=100)


class UserFriendRelationshipRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    friend_id: UUID
    relationship_type: str
    created_at: datetime
    updated_at: datetime
