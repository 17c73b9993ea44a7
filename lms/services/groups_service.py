from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from lms.models.group import Group
from lms.repos.group_repo import GroupRepo
from lms.repos.user_repo import UserRepo
from lms.services.errors import GroupNotFound, UserNotFound, ValidationFailed
from lms.services.ids import parse_id

logger = logging.getLogger(__name__)


class GroupService:
    """Named sets of students; membership is mirrored on User.groups."""

    def __init__(self, *, groups: GroupRepo, users: UserRepo) -> None:
        self._groups = groups
        self._users = users

    async def create_group(self, *, name: str, description: str = "") -> Group:
        if not name.strip():
            raise ValidationFailed("name must not be empty")
        group = Group.new(name=name.strip(), description=description)
        await self._groups.add(group)
        logger.info("Created group id=%s name=%r", group.id, group.name)
        return group

    async def get_group(self, group_id: str | UUID) -> Group:
        gid = parse_id(group_id, "group_id")
        group = await self._groups.get(gid)
        if group is None:
            raise GroupNotFound(gid)
        return group

    async def list_groups(self) -> list[Group]:
        return await self._groups.list_all()

    async def update_group(
        self,
        group_id: str | UUID,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Group:
        group = await self.get_group(group_id)
        if name is not None and not name.strip():
            raise ValidationFailed("name must not be empty")
        return await self._groups.save(
            replace(
                group,
                name=name.strip() if name is not None else group.name,
                description=(
                    description if description is not None else group.description
                ),
            )
        )

    async def delete_group(self, group_id: str | UUID) -> None:
        group = await self.get_group(group_id)
        for student_id in group.students:
            await self._set_membership(student_id, group.id, member=False)
        await self._groups.delete(group.id)
        logger.info("Deleted group id=%s", group.id)

    async def add_student(self, group_id: str | UUID, student_id: str | UUID) -> Group:
        group = await self.get_group(group_id)
        sid = parse_id(student_id, "student_id")
        if await self._users.get(sid) is None:
            raise UserNotFound(sid)
        if sid in group.students:
            return group
        updated = await self._groups.save(
            replace(group, students=group.students + (sid,))
        )
        await self._set_membership(sid, group.id, member=True)
        return updated

    async def remove_student(
        self, group_id: str | UUID, student_id: str | UUID
    ) -> Group:
        group = await self.get_group(group_id)
        sid = parse_id(student_id, "student_id")
        if sid not in group.students:
            return group
        updated = await self._groups.save(
            replace(group, students=tuple(s for s in group.students if s != sid))
        )
        await self._set_membership(sid, group.id, member=False)
        return updated

    async def _set_membership(
        self, student_id: UUID, group_id: UUID, *, member: bool
    ) -> None:
        user = await self._users.get(student_id)
        if user is None:
            return
        groups = tuple(g for g in user.groups if g != group_id)
        if member:
            groups += (group_id,)
        await self._users.save(replace(user, groups=groups))
