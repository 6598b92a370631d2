import uuid

import pytest

from fkb.exceptions import ForeignKeyViolationError, NotFoundError
from fkb.schemas import FriendRead, GroupCreate


@pytest.mark.asyncio
class TestFriendListing:

    async def test_list_friends_ordered_by_first_name(self, repos, create_friend):
        for name in ("Zoe", "Ada", "Mia"):
            await create_friend(name)

        friends = await repos.friends.list_friends()
        assert [f.first_name for f in friends] == ["Ada", "Mia", "Zoe"]

    async def test_read_model(self, create_friend, created_user):
        friend = await create_friend("Grace", last_name="Hopper")
        data = FriendRead.model_validate(friend)
        assert data.user_id == created_user.id
        assert data.last_name == "Hopper"


@pytest.mark.asyncio
class TestGroupMembership:

    async def test_add_to_group_is_idempotent(self, repos, create_friend):
        friend = await create_friend("Grace")
        group = await repos.groups.create(GroupCreate(name="Book club"))

        assert await repos.friends.add_to_group(friend.id, group.id) is True
        assert await repos.friends.add_to_group(friend.id, group.id) is False
        assert [f.id for f in await repos.groups.list_friends(group.id)] == [friend.id]

    async def test_list_groups_of_friend_ordered_by_name(self, repos, create_friend):
        friend = await create_friend("Grace")
        for name in ("Running", "Book club", "Chess"):
            group = await repos.groups.create(GroupCreate(name=name))
            await repos.friends.add_to_group(friend.id, group.id)

        groups = await repos.friends.list_groups(friend.id)
        assert [g.name for g in groups] == ["Book club", "Chess", "Running"]

    async def test_list_friends_of_group_ordered_by_first_name(self, repos, create_friend):
        group = await repos.groups.create(GroupCreate(name="Book club"))
        for name in ("Zoe", "Ada"):
            friend = await create_friend(name)
            await repos.friends.add_to_group(friend.id, group.id)

        assert [f.first_name for f in await repos.groups.list_friends(group.id)] == ["Ada", "Zoe"]

    async def test_remove_from_group(self, repos, create_friend):
        friend = await create_friend("Grace")
        group = await repos.groups.create(GroupCreate(name="Book club"))
        await repos.friends.add_to_group(friend.id, group.id)

        await repos.friends.remove_from_group(friend.id, group.id)
        assert await repos.groups.list_friends(group.id) == []

        with pytest.raises(NotFoundError):
            await repos.friends.remove_from_group(friend.id, group.id)

    async def test_add_to_missing_group_raises(self, repos, create_friend):
        friend = await create_friend("Grace")
        with pytest.raises(ForeignKeyViolationError) as exc_info:
            await repos.friends.add_to_group(friend.id, uuid.uuid4())
        assert exc_info.value.fields == ["group_id"]

    async def test_deleting_group_removes_memberships(self, repos, create_friend):
        friend = await create_friend("Grace")
        group = await repos.groups.create(GroupCreate(name="Book club"))
        await repos.friends.add_to_group(friend.id, group.id)

        await repos.groups.delete(group.id)

        assert await repos.friends.list_groups(friend.id) == []
        assert await repos.friends.find_by_id(friend.id) is not None

    async def test_list_groups_ordered_by_name(self, repos):
        for name in ("b", "c", "a"):
            await repos.groups.create(GroupCreate(name=name))
        assert [g.name for g in await repos.groups.list_groups()] == ["a", "b", "c"]
