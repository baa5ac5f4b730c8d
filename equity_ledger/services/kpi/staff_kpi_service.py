"""
Staff KPI service.

Records quarterly staff KPIs and converts them into share awards.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.config.settings import settings
from equity_ledger.models.enums import (
    STAFF_KPI_STATES,
    ShareChangeType,
    StaffKpiStatus,
)
from equity_ledger.models.staff_kpi import StaffKpi
from equity_ledger.repositories.staff_kpi_repository import StaffKpiRepository
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.kpi.calculator import (
    KpiAward,
    calculate_kpi_award,
    calculate_kpi_points,
    validate_retention,
)
from equity_ledger.services.system_config_service import load_ledger_config
from equity_ledger.utils.db_decorators import with_auto_commit, with_rollback_on_error
from equity_ledger.utils.distributed_lock import DistributedLock, period_lock_name
from equity_ledger.utils.exceptions import InvalidStateError, NotFoundError
from equity_ledger.utils.periods import validate_period


class StaffKpiService(BaseService):
    """Staff KPI -> shares pipeline."""

    def __init__(
        self,
        session: AsyncSession,
        audit: AuditService | None = None,
        lock: DistributedLock | None = None,
    ) -> None:
        """
        Initialize staff KPI service.

        Args:
            session: Async database session
            audit: Shared audit service
            lock: Period lock (process-local when not given)
        """
        super().__init__(session, audit)
        self.kpi_repo = StaffKpiRepository(session)
        self.user_repo = UserRepository(session)
        self.balance_service = BalanceService(session, self.audit)
        self.lock = lock or DistributedLock()

    @with_auto_commit
    async def create_staff_kpi(
        self,
        staff_id: int,
        period: str,
        period_value: str,
        card_sales: int,
        customer_retention: int | float | str | Decimal,
        actor_id: int | None = None,
    ) -> StaffKpi:
        """
        Record KPIs of a staff member for a period.

        Args:
            staff_id: Staff user ID
            period: month, quarter or year
            period_value: e.g. "2024-Q4"
            card_sales: Cards sold, >= 0
            customer_retention: Retention percentage 0-100
            actor_id: Admin recording the KPI

        Returns:
            Pending KPI row with total_points computed

        Raises:
            ValidationError: If inputs or period are malformed
            NotFoundError: If the staff member does not exist
            InvalidStateError: If a row already exists for the period
        """
        validate_period(period, period_value)
        retention = validate_retention(customer_retention)
        total_points = calculate_kpi_points(card_sales, retention)

        if not await self.user_repo.get_by_id(staff_id):
            raise NotFoundError(f"Staff {staff_id} not found", staff_id=staff_id)
        if await self.kpi_repo.get_for_staff_period(staff_id, period, period_value):
            raise InvalidStateError(
                f"KPI for staff {staff_id} in {period_value} already recorded",
                staff_id=staff_id,
                period_value=period_value,
            )

        kpi = await self.kpi_repo.create(
            staff_id=staff_id,
            period=period,
            period_value=period_value,
            card_sales=card_sales,
            customer_retention=retention,
            total_points=total_points,
            status=StaffKpiStatus.PENDING.value,
        )
        await self.audit.record(
            "staff_kpi.create",
            "staff_kpi",
            kpi.id,
            actor_id=actor_id,
            after=snapshot(kpi, ("staff_id", "period_value", "card_sales", "total_points")),
        )
        return kpi

    async def calculate_staff_kpi_points(
        self, staff_id: int, period: str, period_value: str
    ) -> Decimal:
        """
        KPI points of a staff member for a period.

        Raises:
            NotFoundError: If no KPI row exists
        """
        kpi = await self.kpi_repo.get_for_staff_period(staff_id, period, period_value)
        if kpi is None:
            raise NotFoundError(
                f"No KPI for staff {staff_id} in {period_value}", staff_id=staff_id
            )
        return calculate_kpi_points(kpi.card_sales, kpi.customer_retention)

    async def get_staff_kpis(self, period: str, period_value: str) -> list[StaffKpi]:
        """Get all KPI rows of a period."""
        return await self.kpi_repo.get_by_period(period, period_value)

    @with_rollback_on_error
    async def process_quarterly_shares(
        self,
        period: str,
        period_value: str,
        config: LedgerConfig | None = None,
        actor_id: int | None = None,
    ) -> list[KpiAward]:
        """
        Issue KPI shares for every pending row of a period.

        Runs under the period lock and commits once. Rows already processed
        are skipped, so a repeated run returns an empty list.

        Args:
            period: Period type
            period_value: Period value
            config: Configuration snapshot
            actor_id: Admin triggering the run

        Returns:
            Awards of the rows processed by this run
        """
        validate_period(period, period_value)
        config = await load_ledger_config(self.session, config)
        lock_name = period_lock_name("kpi_shares", period, period_value)

        async with self.lock.lock(lock_name, timeout=settings.period_lock_timeout):
            rows = await self.kpi_repo.get_pending_for_period(period, period_value)
            if not rows:
                self.logger.info(f"No pending KPI rows for {period_value}")
                return []

            awards = []
            for kpi in rows:
                awards.append(await self._process_row(kpi, config))

            total = sum(award.shares_awarded for award in awards)
            await self.audit.record(
                "staff_kpi.process_shares",
                "staff_kpi_period",
                lock_name,
                actor_id=actor_id,
                after={"rows": len(awards), "shares_awarded": total},
            )
            await self.commit()

        self.logger.info(
            f"KPI shares for {period_value}: {len(awards)} rows, {total} shares",
            extra={"period": period, "period_value": period_value},
        )
        return awards

    async def _process_row(self, kpi: StaffKpi, config: LedgerConfig) -> KpiAward:
        total_points = calculate_kpi_points(kpi.card_sales, kpi.customer_retention)
        slots, shares = calculate_kpi_award(
            total_points, config.kpi_threshold_points, config.shares_per_slot
        )

        if shares > 0:
            await self.balance_service.apply_share_change(
                kpi.staff_id,
                shares,
                ShareChangeType.KPI_AWARD,
                f"KPI award {kpi.period_value}: {slots} slots",
                transaction_id=f"kpi:{kpi.id}",
            )

        kpi.total_points = total_points
        kpi.slots_earned = slots
        kpi.shares_awarded = shares
        kpi.status = STAFF_KPI_STATES.ensure(
            kpi.state, StaffKpiStatus.PROCESSED
        ).value
        kpi.processed_at = datetime.now(UTC)
        await self.session.flush()

        return KpiAward(
            kpi_id=kpi.id,
            staff_id=kpi.staff_id,
            total_points=total_points,
            slots_earned=slots,
            shares_awarded=shares,
        )
