from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from uuid import UUID

from lms.models.tariff import Tariff
from lms.repos.tariff_repo import TariffRepo
from lms.services.errors import CourseNotFound, TariffNotFound, ValidationFailed
from lms.services.ids import parse_id
from lms.services.interfaces import CourseSummaryLookup

logger = logging.getLogger(__name__)


class TariffService:
    """Price plans of a course.

    includes_points=False turns off point awards for enrollments on the
    plan (see EnrollmentService.award_points).
    """

    def __init__(self, *, tariffs: TariffRepo, courses: CourseSummaryLookup) -> None:
        self._tariffs = tariffs
        self._courses = courses

    async def create_tariff(
        self,
        *,
        course_id: str | UUID,
        name: str,
        price: float,
        accessible_modules: Sequence[str | UUID] = (),
        includes_homeworks: bool = False,
        includes_points: bool = False,
    ) -> Tariff:
        cid = parse_id(course_id, "course_id")
        if await self._courses.summary(cid) is None:
            raise CourseNotFound(cid)
        if not name.strip():
            raise ValidationFailed("name must not be empty")
        if price < 0:
            raise ValidationFailed("price must be >= 0")
        tariff = Tariff.new(
            course_id=cid,
            name=name.strip(),
            price=price,
            accessible_modules=tuple(
                parse_id(m, "accessible_modules") for m in accessible_modules
            ),
            includes_homeworks=includes_homeworks,
            includes_points=includes_points,
        )
        await self._tariffs.add(tariff)
        logger.info("Created tariff id=%s course=%s", tariff.id, cid)
        return tariff

    async def get_tariff(self, tariff_id: str | UUID) -> Tariff:
        tid = parse_id(tariff_id, "tariff_id")
        tariff = await self._tariffs.get(tid)
        if tariff is None:
            raise TariffNotFound(tid)
        return tariff

    async def list_tariffs(self, course_id: str | UUID | None = None) -> list[Tariff]:
        if course_id is None:
            return await self._tariffs.list_all()
        return await self._tariffs.list_by_course(parse_id(course_id, "course_id"))

    async def update_tariff(
        self,
        tariff_id: str | UUID,
        *,
        name: str | None = None,
        price: float | None = None,
        includes_homeworks: bool | None = None,
        includes_points: bool | None = None,
    ) -> Tariff:
        tariff = await self.get_tariff(tariff_id)
        if price is not None and price < 0:
            raise ValidationFailed("price must be >= 0")
        if name is not None and not name.strip():
            raise ValidationFailed("name must not be empty")
        updated = replace(
            tariff,
            name=name.strip() if name is not None else tariff.name,
            price=price if price is not None else tariff.price,
            includes_homeworks=(
                includes_homeworks
                if includes_homeworks is not None
                else tariff.includes_homeworks
            ),
            includes_points=(
                includes_points
                if includes_points is not None
                else tariff.includes_points
            ),
        )
        return await self._tariffs.save(updated)

    async def delete_tariff(self, tariff_id: str | UUID) -> None:
        tariff = await self.get_tariff(tariff_id)
        await self._tariffs.delete(tariff.id)
        logger.info("Deleted tariff id=%s", tariff.id)
