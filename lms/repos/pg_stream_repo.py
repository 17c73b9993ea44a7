"""PostgreSQL implementation of StreamRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import case, func, select, update

from lms.db.tables import StreamRow
from lms.models.stream import Stream
from lms.repos.pg_base import PgRepo


class PgStreamRepo(PgRepo[Stream]):
    row_cls = StreamRow
    order_by = StreamRow.start_date

    def _to_model(self, row: StreamRow) -> Stream:
        return Stream(
            id=row.id,
            course_id=row.course_id,
            name=row.name,
            start_date=row.start_date,
            end_date=row.end_date,
            students=tuple(row.students or ()),
        )

    def _to_row(self, stream: Stream) -> StreamRow:
        return StreamRow(
            id=stream.id,
            course_id=stream.course_id,
            name=stream.name,
            start_date=stream.start_date,
            end_date=stream.end_date,
            students=list(stream.students),
        )

    async def list_by_course(self, course_id: UUID) -> list[Stream]:
        stmt = select(StreamRow).where(StreamRow.course_id == course_id)
        return await self._select(self._ordered(stmt))

    async def add_student(self, stream_id: UUID, student_id: UUID) -> Stream | None:
        stmt = (
            update(StreamRow)
            .where(StreamRow.id == stream_id)
            .values(
                students=case(
                    (StreamRow.students.any(student_id), StreamRow.students),
                    else_=func.array_append(StreamRow.students, student_id),
                )
            )
            .returning(StreamRow)
        )
        return await self._update_returning(stmt)
