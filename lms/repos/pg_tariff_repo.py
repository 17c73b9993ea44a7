"""PostgreSQL implementation of TariffRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from lms.db.tables import TariffRow
from lms.models.tariff import Tariff
from lms.repos.pg_base import PgRepo


class PgTariffRepo(PgRepo[Tariff]):
    row_cls = TariffRow
    order_by = TariffRow.price

    def _to_model(self, row: TariffRow) -> Tariff:
        return Tariff(
            id=row.id,
            course_id=row.course_id,
            name=row.name,
            price=row.price,
            accessible_modules=tuple(row.accessible_modules or ()),
            includes_homeworks=row.includes_homeworks,
            includes_points=row.includes_points,
        )

    def _to_row(self, tariff: Tariff) -> TariffRow:
        return TariffRow(
            id=tariff.id,
            course_id=tariff.course_id,
            name=tariff.name,
            price=tariff.price,
            accessible_modules=list(tariff.accessible_modules),
            includes_homeworks=tariff.includes_homeworks,
            includes_points=tariff.includes_points,
        )

    async def list_by_course(self, course_id: UUID) -> list[Tariff]:
        stmt = select(TariffRow).where(TariffRow.course_id == course_id)
        return await self._select(self._ordered(stmt))
