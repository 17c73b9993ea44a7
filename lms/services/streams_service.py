from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from lms.models.stream import Stream
from lms.repos.stream_repo import StreamRepo
from lms.repos.user_repo import UserRepo
from lms.services.errors import (
    CourseNotFound,
    StreamNotFound,
    UserNotFound,
    ValidationFailed,
)
from lms.services.ids import parse_id
from lms.services.interfaces import CourseSummaryLookup

logger = logging.getLogger(__name__)


def _check_dates(start_date: datetime, end_date: datetime) -> None:
    if end_date <= start_date:
        raise ValidationFailed("end_date must be after start_date")


class StreamService:
    def __init__(
        self, *, streams: StreamRepo, users: UserRepo, courses: CourseSummaryLookup
    ) -> None:
        self._streams = streams
        self._users = users
        self._courses = courses

    async def create_stream(
        self,
        *,
        course_id: str | UUID,
        name: str,
        start_date: datetime,
        end_date: datetime,
    ) -> Stream:
        cid = parse_id(course_id, "course_id")
        if await self._courses.summary(cid) is None:
            raise CourseNotFound(cid)
        if not name.strip():
            raise ValidationFailed("name must not be empty")
        _check_dates(start_date, end_date)
        stream = Stream.new(
            course_id=cid, name=name.strip(), start_date=start_date, end_date=end_date
        )
        await self._streams.add(stream)
        logger.info("Created stream id=%s course=%s", stream.id, cid)
        return stream

    async def get_stream(self, stream_id: str | UUID) -> Stream:
        stid = parse_id(stream_id, "stream_id")
        stream = await self._streams.get(stid)
        if stream is None:
            raise StreamNotFound(stid)
        return stream

    async def list_streams(self, course_id: str | UUID | None = None) -> list[Stream]:
        if course_id is None:
            return await self._streams.list_all()
        return await self._streams.list_by_course(parse_id(course_id, "course_id"))

    async def update_stream(
        self,
        stream_id: str | UUID,
        *,
        name: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Stream:
        stream = await self.get_stream(stream_id)
        updated = replace(
            stream,
            name=name.strip() if name is not None else stream.name,
            start_date=start_date or stream.start_date,
            end_date=end_date or stream.end_date,
        )
        if not updated.name:
            raise ValidationFailed("name must not be empty")
        _check_dates(updated.start_date, updated.end_date)
        return await self._streams.save(updated)

    async def delete_stream(self, stream_id: str | UUID) -> None:
        stream = await self.get_stream(stream_id)
        await self._streams.delete(stream.id)
        logger.info("Deleted stream id=%s", stream.id)

    async def add_student(
        self, stream_id: str | UUID, student_id: str | UUID
    ) -> Stream:
        stream = await self.get_stream(stream_id)
        sid = parse_id(student_id, "student_id")
        if await self._users.get(sid) is None:
            raise UserNotFound(sid)
        updated = await self._streams.add_student(stream.id, sid)
        if updated is None:
            raise StreamNotFound(stream.id)
        return updated
