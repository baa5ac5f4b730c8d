"""
Staff KPI repository.

Data access layer for StaffKpi model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.enums import StaffKpiStatus
from equity_ledger.models.staff_kpi import StaffKpi
from equity_ledger.repositories.base import BaseRepository


class StaffKpiRepository(BaseRepository[StaffKpi]):
    """Staff KPI repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize staff KPI repository."""
        super().__init__(StaffKpi, session)

    async def get_for_staff_period(
        self, staff_id: int, period: str, period_value: str
    ) -> StaffKpi | None:
        """Get the KPI row of a staff member for a period."""
        return await self.get_by(
            staff_id=staff_id, period=period, period_value=period_value
        )

    async def get_pending_for_period(
        self, period: str, period_value: str
    ) -> list[StaffKpi]:
        """
        Get unprocessed KPI rows of a period, locked until commit.

        Args:
            period: Period type
            period_value: Period value

        Returns:
            Pending KPI rows ordered by staff
        """
        stmt = (
            select(StaffKpi)
            .where(
                StaffKpi.period == period,
                StaffKpi.period_value == period_value,
                StaffKpi.status == StaffKpiStatus.PENDING.value,
            )
            .order_by(StaffKpi.staff_id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_period(
        self, period: str, period_value: str
    ) -> list[StaffKpi]:
        """Get all KPI rows of a period."""
        return await self.find_by(period=period, period_value=period_value)
