"""
Tests for group creation and membership.

Run with: pytest tests/test_groups.py -v
"""

from babelchat.errors import AuthError, InvalidInputError, NotFoundError
from babelchat.groups import GroupService
from babelchat.models import Group, User


class TestGroupService:

    def test_create_group(self, repo, users, clock):
        service = GroupService(repo, users["bruno"], clock=clock)
        group = service.create_group("Amigos", [users["chen"].id, "user_ghost", users["chen"].id]).value

        assert group.id.startswith("group_")
        assert group.created_by == users["bruno"].id
        assert group.admins == [users["bruno"].id]
        assert [(m.user_id, m.preferred_language) for m in group.members] == [
            (users["bruno"].id, "es"),
            (users["chen"].id, "zh"),
            ("user_ghost", "en"),
        ]
        assert group.members[0].role == "admin"
        assert repo.find_group(group.id).value == group

    def test_requires_name(self, repo, users, clock):
        result = GroupService(repo, users["alice"], clock=clock).create_group("  ", [])
        assert isinstance(result.error, InvalidInputError)

    def test_ids_do_not_collide(self, repo, users):
        service = GroupService(repo, users["alice"], clock=lambda: 7)
        first = service.create_group("One", []).value
        second = service.create_group("Two", []).value
        assert first.id != second.id

    def test_my_groups(self, repo, users, team):
        assert [g.id for g in GroupService(repo, users["chen"]).my_groups().value] == [team.id]
        outsider = User(id="user_zed", username="zed", display_name="Zed")
        assert GroupService(repo, outsider).my_groups().value == []

    def test_add_and_remove_member(self, repo, users, team, clock):
        service = GroupService(repo, users["alice"], clock=clock)
        repo.save_groups([Group(id="group_x", name="X", admins=[users["alice"].id], created_by=users["alice"].id)])

        added = service.add_member("group_x", users["dana"].id).value
        assert added.member(users["dana"].id).preferred_language == "fr"

        removed = service.remove_member("group_x", users["dana"].id).value
        assert removed.member(users["dana"].id) is None

    def test_only_admins_change_members(self, repo, users, team, clock):
        result = GroupService(repo, users["bruno"], clock=clock).add_member(team.id, "user_new")
        assert isinstance(result.error, AuthError)

    def test_creator_cannot_be_removed(self, repo, users, team, clock):
        result = GroupService(repo, users["alice"], clock=clock).remove_member(team.id, users["alice"].id)
        assert isinstance(result.error, InvalidInputError)
        assert repo.find_group(team.id).value.member(users["alice"].id) is not None

    def test_unknown_group(self, repo, users, clock):
        result = GroupService(repo, users["alice"], clock=clock).add_member("group_none", users["bruno"].id)
        assert isinstance(result.error, NotFoundError)

    def test_chat_name(self, repo, users, team):
        service = GroupService(repo, users["alice"])
        assert service.chat_name(users["bruno"].id) == "Bruno"
        assert service.chat_name(team.id) == "Team"
        assert service.chat_name("user_ghost") == "Unknown"
