import uuid

import pytest
from pydantic import ValidationError

from fkb.exceptions import DuplicateError, ForeignKeyViolationError
from fkb.schemas import UserFriendRelationshipCreate, UserFriendRelationshipUpdate


@pytest.mark.asyncio
class TestUserFriendRelationship:

    async def test_create_and_find(self, repos, create_friend):
        friend = await create_friend("Grace")
        label = await repos.user_relationships.create(
            UserFriendRelationshipCreate(friend_id=friend.id, relationship_type="colleague")
        )

        assert (await repos.user_relationships.find_by_friend(friend.id)).id == label.id
        assert await repos.user_relationships.find_by_friend_and_type(friend.id, "colleague") is not None
        assert await repos.user_relationships.find_by_friend_and_type(friend.id, "neighbour") is None

    async def test_one_label_per_friend(self, repos, create_friend):
        friend = await create_friend("Grace")
        await repos.user_relationships.create(
            UserFriendRelationshipCreate(friend_id=friend.id, relationship_type="colleague")
        )

        with pytest.raises(DuplicateError) as exc_info:
            await repos.user_relationships.create(
                UserFriendRelationshipCreate(friend_id=friend.id, relationship_type="neighbour")
            )
        assert exc_info.value.fields == ["friend_id"]

    async def test_set_for_friend_replaces(self, repos, create_friend, caplog):
        friend = await create_friend("Grace")

        with caplog.at_level("INFO", logger="fkb"):
            first = await repos.user_relationships.set_for_friend(friend.id, "colleague")
            second = await repos.user_relationships.set_for_friend(friend.id, "neighbour")

        events = [r for r in caplog.records if r.getMessage() == "repo.user_relationship.set"]
        assert [r.inserted for r in events] == [True, False]

        assert second.id == first.id
        assert second.relationship_type == "neighbour"
        assert await repos.user_relationships.count() == 1

    async def test_update(self, repos, create_friend):
        friend = await create_friend("Grace")
        label = await repos.user_relationships.set_for_friend(friend.id, "colleague")

        updated = await repos.user_relationships.update(
            label.id, UserFriendRelationshipUpdate(relationship_type="mentor")
        )
        assert updated.relationship_type == "mentor"

    async def test_missing_friend(self, repos):
        with pytest.raises(ForeignKeyViolationError):
            await repos.user_relationships.set_for_friend(uuid.uuid4(), "colleague")

    async def test_deleting_friend_removes_label(self, repos, create_friend):
        friend = await create_friend("Grace")
        await repos.user_relationships.set_for_friend(friend.id, "colleague")

        await repos.friends.delete(friend.id)

        assert await repos.user_relationships.find_by_friend(friend.id) is None

    async def test_set_for_friend_rejects_empty_label_before_store(self, repos, create_friend):
        friend = await create_friend("Grace")

        with pytest.raises(ValidationError):
            await repos.user_relationships.set_for_friend(friend.id, "")
        assert await repos.user_relationships.count() == 0
