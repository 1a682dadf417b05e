"""
Group chats: creation and membership.

Members carry their preferred language so a group send can fan out one
translation per distinct language without reading every member's profile.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Optional

from babelchat.errors import AuthError, InvalidInputError, NotFoundError
from babelchat.models import GROUP_ID_PREFIX, Group, GroupMember, User
from babelchat.repository import ChatRepository
from babelchat.results import Result

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class GroupService:
    def __init__(self, repository: ChatRepository, user: User, clock: Callable[[], int] | None = None):
        self.repo = repository
        self.user = user
        self.clock = clock or _now_ms

    def create_group(
        self,
        name: str,
        member_ids: list[str],
        description: str = "",
        is_private: bool = False,
    ) -> Result[Group]:
        """Create a group with the current user as its admin.

        Unknown member ids are kept with the default language ``en``.
        """
        name = (name or "").strip()
        if not name:
            return Result.failure(InvalidInputError("A group needs a name"))

        users = self.repo.users()
        if not users.ok:
            return Result.failure(users.error)
        by_id = {u.id: u for u in users.value}
        groups = self.repo.groups()
        if not groups.ok:
            return Result.failure(groups.error)

        now = self.clock()
        members = [GroupMember(self.user.id, self.user.preferred_language, now, role="admin")]
        for user_id in dict.fromkeys(member_ids):
            if user_id == self.user.id:
                continue
            member = by_id.get(user_id)
            members.append(GroupMember(user_id, member.preferred_language if member else "en", now))

        group_id = f"{GROUP_ID_PREFIX}{now}"
        if any(g.id == group_id for g in groups.value):
            group_id = f"{group_id}_{uuid.uuid4().hex[:4]}"
        group = Group(
            id=group_id,
            name=name,
            description=description.strip() or None,
            members=members,
            admins=[self.user.id],
            created_by=self.user.id,
            created_at=now,
            is_private=is_private,
        )
        saved = self.repo.save_groups(groups.value + [group])
        if not saved.ok:
            return Result.failure(saved.error)
        logger.info(f"Created group {group.id} with {len(members)} member(s)")
        return Result.success(group)

    def my_groups(self) -> Result[list[Group]]:
        groups = self.repo.groups()
        if not groups.ok:
            return Result.failure(groups.error, value=[])
        return Result.success([g for g in groups.value if g.member(self.user.id)])

    def _update(self, group_id: str, change: Callable[[Group], Result[Group]]) -> Result[Group]:
        groups = self.repo.groups()
        if not groups.ok:
            return Result.failure(groups.error)
        rows = groups.value
        for i, group in enumerate(rows):
            if group.id != group_id:
                continue
            if self.user.id not in group.admins:
                return Result.failure(AuthError("Only group admins can change members"))
            changed = change(group)
            if not changed.ok:
                return changed
            rows[i] = changed.value
            saved = self.repo.save_groups(rows)
            if not saved.ok:
                return Result.failure(saved.error)
            return changed
        return Result.failure(NotFoundError(f"No such group: {group_id}"))

    def add_member(self, group_id: str, user_id: str) -> Result[Group]:
        user = self.repo.find_user(user_id).value

        def change(group: Group) -> Result[Group]:
            if group.member(user_id):
                return Result.success(group)
            language = user.preferred_language if user else "en"
            group.members.append(GroupMember(user_id, language, self.clock()))
            return Result.success(group)

        return self._update(group_id, change)

    def remove_member(self, group_id: str, user_id: str) -> Result[Group]:
        def change(group: Group) -> Result[Group]:
            if group.created_by == user_id:
                return Result.failure(InvalidInputError("The group creator cannot be removed"))
            group.members = [m for m in group.members if m.user_id != user_id]
            group.admins = [a for a in group.admins if a != user_id]
            return Result.success(group)

        return self._update(group_id, change)

    def chat_name(self, chat_id: str) -> str:
        """Display name of a user or group chat, ``Unknown`` if neither."""
        user: Optional[User] = self.repo.find_user(chat_id).value
        if user is not None:
            return user.display_name
        group = self.repo.find_group(chat_id).value
        if group is not None:
            return group.name
        return "Unknown"
