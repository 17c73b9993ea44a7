from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from lms.models.stream import Stream
from lms.repos.base import InMemoryRepo


class StreamRepo(Protocol):
    async def get(self, stream_id: UUID) -> Stream | None: ...
    async def add(self, stream: Stream) -> None: ...
    async def save(self, stream: Stream) -> Stream: ...
    async def delete(self, stream_id: UUID) -> bool: ...
    async def list_all(self) -> list[Stream]: ...
    async def list_by_course(self, course_id: UUID) -> list[Stream]: ...
    async def add_student(self, stream_id: UUID, student_id: UUID) -> Stream | None: ...


class InMemoryStreamRepo(InMemoryRepo[Stream]):
    async def list_by_course(self, course_id: UUID) -> list[Stream]:
        return self._where(lambda s: s.course_id == course_id)

    async def add_student(self, stream_id: UUID, student_id: UUID) -> Stream | None:
        current = self._rows.get(stream_id)
        if current is None:
            return None
        if student_id in current.students:
            return current
        updated = replace(current, students=current.students + (student_id,))
        self._rows[stream_id] = updated
        return updated
