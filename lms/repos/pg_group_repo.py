"""PostgreSQL implementation of GroupRepo."""

from __future__ import annotations

from lms.db.tables import GroupRow
from lms.models.group import Group
from lms.repos.pg_base import PgRepo


class PgGroupRepo(PgRepo[Group]):
    row_cls = GroupRow
    order_by = GroupRow.name

    def _to_model(self, row: GroupRow) -> Group:
        return Group(
            id=row.id,
            name=row.name,
            description=row.description or "",
            students=tuple(row.students or ()),
        )

    def _to_row(self, group: Group) -> GroupRow:
        return GroupRow(
            id=group.id,
            name=group.name,
            description=group.description,
            students=list(group.students),
        )
