"""
Ledger service facade.

Single entry point for callers (HTTP layer, admin tooling, jobs): every
ledger operation and read accessor, with audit hooks invoked after each
committed state change.
"""

from collections.abc import Awaitable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.models import (
    AuditLog,
    BusinessTierConfig,
    DepositRequest,
    ProfitDistribution,
    ProfitSharing,
    Referral,
    StaffKpi,
    SystemConfig,
    Transaction,
    User,
    UserBalance,
    UserSharesHistory,
)
from equity_ledger.models.enums import ShareChangeType
from equity_ledger.services.audit_service import AuditHook, AuditService
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.deposit.deposit_request_service import (
    DepositRequestService,
)
from equity_ledger.services.kpi.calculator import KpiAward
from equity_ledger.services.kpi.staff_kpi_service import StaffKpiService
from equity_ledger.services.maxout_guard import MaxoutGuard, MaxoutStatus
from equity_ledger.services.profit_sharing.allocation import ProfitSummary
from equity_ledger.services.profit_sharing.distribution_payment_service import (
    DistributionPaymentService,
)
from equity_ledger.services.profit_sharing.profit_sharing_service import (
    ProfitSharingService,
)
from equity_ledger.services.referral.referral_service import ReferralService
from equity_ledger.services.system_config_service import SystemConfigService
from equity_ledger.services.tier.tier_service import BusinessTierService
from equity_ledger.services.withdrawal.cash_flow_service import (
    CashFlowService,
    WithdrawalValidation,
)
from equity_ledger.utils.distributed_lock import DistributedLock


T = TypeVar("T")


class LedgerService:
    """
    Facade over all ledger workflows.

    Services share one session, one audit trail and one period lock.

    Example:
        async with async_session_maker() as session:
            ledger = LedgerService(session, audit_hooks=[publish_audit])
            await ledger.approve_deposit_request(request_id, approved_by=1)
    """

    def __init__(
        self,
        session: AsyncSession,
        audit_hooks: Sequence[AuditHook] | None = None,
        lock: DistributedLock | None = None,
    ) -> None:
        """
        Initialize ledger facade.

        Args:
            session: Async database session
            audit_hooks: Called with each AuditLog entry after commit
            lock: Period lock (Redis-backed in multi-process deployments)
        """
        self.session = session
        self.audit = AuditService(session, audit_hooks)
        self.lock = lock or DistributedLock()

        self.config_service = SystemConfigService(session, self.audit)
        self.tier_service = BusinessTierService(session, self.audit)
        self.balance_service = BalanceService(session, self.audit)
        self.maxout_guard = MaxoutGuard(session, self.audit)
        self.deposit_service = DepositRequestService(session, self.audit)
        self.kpi_service = StaffKpiService(session, self.audit, self.lock)
        self.profit_service = ProfitSharingService(session, self.audit, self.lock)
        self.payment_service = DistributionPaymentService(session, self.audit)
        self.referral_service = ReferralService(session, self.audit)
        self.cash_flow_service = CashFlowService(session, self.audit)

    async def _mutate(self, operation: Awaitable[T]) -> T:
        try:
            result = await operation
        except Exception:
            self.audit.discard()
            raise
        await self.audit.dispatch()
        return result

    # Configuration

    async def get_config(self) -> LedgerConfig:
        """Current configuration snapshot."""
        return await self.config_service.get_snapshot()

    async def get_system_configs(self) -> list[SystemConfig]:
        """All stored configuration entries."""
        return await self.config_service.get_system_configs()

    async def get_system_config(self, config_key: str) -> SystemConfig | None:
        """Stored configuration entry by key, or None."""
        return await self.config_service.get_system_config(config_key)

    async def update_system_config(
        self, config_key: str, config_value: object, updated_by: int | None = None
    ) -> SystemConfig:
        """
        Validate and store a configuration value.

        Args:
            config_key: Known configuration key
            config_value: New value, checked against the key's type and range
            updated_by: Acting admin

        Returns:
            Updated SystemConfig

        Raises:
            ConfigurationError: If key is unknown or value invalid
        """
        return await self._mutate(
            self.config_service.update_system_config(
                config_key, config_value, updated_by=updated_by
            )
        )

    # Business tiers

    async def get_business_tier_configs(self) -> list[BusinessTierConfig]:
        """All tier configs, highest threshold first."""
        return await self.tier_service.get_business_tier_configs()

    async def get_business_tier_config(self, tier: str) -> BusinessTierConfig | None:
        """Tier config by name, or None."""
        return await self.tier_service.get_business_tier_config(tier)

    async def create_business_tier_config(
        self,
        tier: str,
        min_investment_amount: int,
        share_multiplier: Decimal | int | str,
        max_shares: int | None = None,
        description: str | None = None,
        benefits: str | None = None,
        actor_id: int | None = None,
    ) -> BusinessTierConfig:
        """
        Configure a business tier.

        Args:
            tier: Tier name (founder, angel, branch, customer, staff, affiliate)
            min_investment_amount: Threshold (VND) to reach the tier
            share_multiplier: Shares per 1M VND
            max_shares: Share cap, None for unlimited
            description: Optional description
            benefits: Optional benefits text
            actor_id: Acting admin

        Returns:
            Created BusinessTierConfig

        Raises:
            ValidationError: If values are invalid
            InvalidStateError: If the tier is already configured
        """
        return await self._mutate(
            self.tier_service.create_business_tier_config(
                tier,
                min_investment_amount,
                share_multiplier,
                max_shares=max_shares,
                description=description,
                benefits=benefits,
                actor_id=actor_id,
            )
        )

    async def update_business_tier_config(
        self, tier: str, actor_id: int | None = None, **changes: object
    ) -> BusinessTierConfig:
        """
        Change fields of a configured tier.

        Raises:
            NotFoundError: If the tier is not configured
            ValidationError: If a field is unknown or invalid
        """
        return await self._mutate(
            self.tier_service.update_business_tier_config(
                tier, actor_id=actor_id, **changes
            )
        )

    async def determine_tier(self, investment_amount: int) -> str:
        """Tier reached by an investment amount."""
        return (await self.tier_service.determine_tier(investment_amount)).value

    async def calculate_user_shares(self, user_id: int, amount: int) -> int:
        """
        Shares a user would receive for an amount under their tier.

        Raises:
            NotFoundError: If user or tier config is missing
        """
        return await self.tier_service.calculate_user_shares(user_id, amount)

    async def upgrade_user_business_tier(
        self, user_id: int, tier: str, amount: int, actor_id: int | None = None
    ) -> User:
        """
        Add an investment to a user and re-derive their tier.

        Args:
            user_id: User ID
            tier: Requested tier
            amount: Invested amount (VND)
            actor_id: Acting admin

        Returns:
            Updated user

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If tier or amount is invalid
        """
        return await self._mutate(
            self.tier_service.upgrade_user_business_tier(
                user_id, tier, amount, actor_id=actor_id
            )
        )

    # Balances and shares

    async def get_user_balance(self, user_id: int) -> UserBalance | None:
        """Balance row of a user, or None."""
        return await self.balance_service.get_user_balance(user_id)

    async def add_to_user_balance(
        self, user_id: int, amount: int, description: str, actor_id: int | None = None
    ) -> UserBalance:
        """
        Manually adjust a user's available balance.

        Args:
            user_id: User ID
            amount: Signed amount (VND), non-zero
            description: Reason stored with the adjustment
            actor_id: Acting admin

        Returns:
            Updated UserBalance

        Raises:
            ValidationError: If amount is zero or description empty
            InsufficientFundsError: If a debit exceeds the balance
        """
        return await self._mutate(
            self.balance_service.add_to_user_balance(
                user_id, amount, description, actor_id=actor_id
            )
        )

    async def update_user_shares(
        self,
        user_id: int,
        change_amount: int,
        description: str,
        change_type: ShareChangeType = ShareChangeType.ADJUSTMENT,
        actor_id: int | None = None,
    ) -> UserSharesHistory:
        """
        Append a share ledger entry and update total shares.

        Raises:
            ValidationError: If the change is zero or would go negative
        """
        return await self._mutate(
            self.balance_service.update_user_shares(
                user_id,
                change_amount,
                description,
                change_type=change_type,
                actor_id=actor_id,
            )
        )

    async def get_user_shares_history(self, user_id: int) -> list[UserSharesHistory]:
        """Share ledger of a user."""
        return await self.balance_service.get_user_shares_history(user_id)

    async def check_maxout_limit(
        self, user_id: int, config: LedgerConfig | None = None
    ) -> MaxoutStatus:
        """Payout ceiling state of a user."""
        return await self.maxout_guard.check_maxout_limit(user_id, config)

    # Deposits

    async def create_deposit_request(
        self, user_id: int, amount: int, business_tier: str, notes: str | None = None
    ) -> DepositRequest:
        """
        Create a pending deposit request.

        Raises:
            ValidationError: If amount or tier is invalid
            NotFoundError: If the user does not exist
        """
        return await self._mutate(
            self.deposit_service.create_deposit_request(
                user_id, amount, business_tier, notes=notes
            )
        )

    async def approve_deposit_request(
        self, request_id: int, approved_by: int
    ) -> DepositRequest | None:
        """
        Approve a pending deposit: credit, tier upgrade and share issuance.

        Args:
            request_id: Deposit request ID
            approved_by: Acting admin

        Returns:
            Approved request, or None if it is no longer pending

        Raises:
            NotFoundError: If the request does not exist
        """
        return await self._mutate(
            self.deposit_service.approve_deposit_request(request_id, approved_by)
        )

    async def reject_deposit_request(
        self, request_id: int, approved_by: int, reason: str
    ) -> DepositRequest | None:
        """
        Reject a pending deposit. Returns None if it is no longer pending.

        Raises:
            ValidationError: If reason is empty
            NotFoundError: If the request does not exist
        """
        return await self._mutate(
            self.deposit_service.reject_deposit_request(request_id, approved_by, reason)
        )

    async def get_deposit_request(self, request_id: int) -> DepositRequest | None:
        """Deposit request by ID, or None."""
        return await self.deposit_service.get_deposit_request(request_id)

    async def get_deposit_requests(self, status: str | None = None) -> list[DepositRequest]:
        """Deposit requests, optionally filtered by status."""
        return await self.deposit_service.get_deposit_requests(status)

    async def get_user_deposit_requests(self, user_id: int) -> list[DepositRequest]:
        """Deposit requests of one user."""
        return await self.deposit_service.get_user_deposit_requests(user_id)

    # Staff KPI

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
        Record a staff member's KPI for a period.

        Args:
            staff_id: Staff user ID
            period: month, quarter or year
            period_value: e.g. "2024-Q4"
            card_sales: Cards sold in the period
            customer_retention: Retention percentage (0-100)
            actor_id: Acting admin

        Returns:
            Created StaffKpi with derived points

        Raises:
            ValidationError: If inputs or period are malformed
            NotFoundError: If the staff member does not exist
            InvalidStateError: If a row already exists for the period
        """
        return await self._mutate(
            self.kpi_service.create_staff_kpi(
                staff_id,
                period,
                period_value,
                card_sales,
                customer_retention,
                actor_id=actor_id,
            )
        )

    async def calculate_staff_kpi_points(
        self, staff_id: int, period: str, period_value: str
    ) -> Decimal:
        """Points of a stored KPI row. Raises NotFoundError if there is none."""
        return await self.kpi_service.calculate_staff_kpi_points(
            staff_id, period, period_value
        )

    async def get_staff_kpis(self, period: str, period_value: str) -> list[StaffKpi]:
        """KPI rows of a period."""
        return await self.kpi_service.get_staff_kpis(period, period_value)

    async def process_quarterly_shares(
        self,
        period: str,
        period_value: str,
        config: LedgerConfig | None = None,
        actor_id: int | None = None,
    ) -> list[KpiAward]:
        """
        Award shares for the unprocessed KPI rows of a period.

        Runs under the period lock. Rows already processed are skipped, so a
        repeat run returns an empty list.
        """
        return await self._mutate(
            self.kpi_service.process_quarterly_shares(
                period, period_value, config=config, actor_id=actor_id
            )
        )

    # Profit sharing

    async def calculate_quarterly_profit(
        self, period: str, period_value: str
    ) -> ProfitSummary:
        """Revenue, expenses and profit of a period from approved cash flow."""
        return await self.profit_service.calculate_quarterly_profit(period, period_value)

    async def process_quarterly_profit_sharing(
        self,
        period: str,
        period_value: str,
        processed_by: int | None = None,
        config: LedgerConfig | None = None,
    ) -> ProfitSharing:
        """
        Allocate a period's distributable profit to shareholders.

        Args:
            period: month, quarter or year
            period_value: e.g. "2024-Q4"
            processed_by: Acting admin
            config: Configuration snapshot

        Returns:
            Created ProfitSharing with its distribution rows

        Raises:
            ValidationError: If the period is malformed
            InvalidStateError: If the period was already processed
        """
        return await self._mutate(
            self.profit_service.process_quarterly_profit_sharing(
                period, period_value, processed_by=processed_by, config=config
            )
        )

    async def process_quarterly_profit_sharing_with_maxout(
        self,
        period: str,
        period_value: str,
        respect_maxout: bool,
        processed_by: int | None = None,
        config: LedgerConfig | None = None,
    ) -> ProfitSharing:
        """
        Allocate profit with the maxout clamp switchable (administrative re-runs).

        Raises:
            ValidationError: If the period is malformed
            InvalidStateError: If the period was already processed
        """
        return await self._mutate(
            self.profit_service.process_quarterly_profit_sharing_with_maxout(
                period,
                period_value,
                respect_maxout,
                processed_by=processed_by,
                config=config,
            )
        )

    async def process_all_distribution_payments(
        self,
        profit_sharing_id: int,
        config: LedgerConfig | None = None,
        actor_id: int | None = None,
    ) -> int:
        """
        Pay every unpaid distribution row of a profit sharing record.

        Args:
            profit_sharing_id: ProfitSharing ID
            config: Configuration snapshot
            actor_id: Acting admin

        Returns:
            Total amount credited

        Raises:
            NotFoundError: If the record does not exist
        """
        return await self._mutate(
            self.payment_service.process_all_distribution_payments(
                profit_sharing_id, config=config, actor_id=actor_id
            )
        )

    async def mark_distribution_paid(
        self,
        distribution_id: int,
        config: LedgerConfig | None = None,
        actor_id: int | None = None,
    ) -> ProfitDistribution | None:
        """
        Pay a single distribution row. Returns None if it was already paid.

        Raises:
            NotFoundError: If the distribution does not exist
        """
        return await self._mutate(
            self.payment_service.mark_distribution_paid(
                distribution_id, config=config, actor_id=actor_id
            )
        )

    async def get_profit_sharings(self) -> list[ProfitSharing]:
        """All profit sharing records."""
        return await self.profit_service.get_profit_sharings()

    async def get_profit_sharing(self, profit_sharing_id: int) -> ProfitSharing | None:
        """Profit sharing record by ID, or None."""
        return await self.profit_service.get_profit_sharing(profit_sharing_id)

    async def get_profit_sharing_by_period(
        self, period: str, period_value: str
    ) -> ProfitSharing | None:
        """ProfitSharing of a period, or None if it was not processed."""
        return await self.profit_service.get_profit_sharing_by_period(period, period_value)

    async def get_profit_distributions_by_sharing(
        self, profit_sharing_id: int
    ) -> list[ProfitDistribution]:
        """Distribution rows of a profit sharing record."""
        return await self.profit_service.get_profit_distributions_by_sharing(
            profit_sharing_id
        )

    # Referrals

    async def generate_referral_code(self, referrer_id: int) -> str:
        """Unused REF code for a referrer."""
        return await self.referral_service.generate_referral_code(referrer_id)

    async def create_referral(
        self,
        referrer_id: int,
        customer_name: str | None,
        contribution_value: int,
        commission_rate: int | float | str | Decimal | None = None,
        config: LedgerConfig | None = None,
    ) -> Referral:
        """
        Create a pending referral; the commission is fixed at creation.

        Args:
            referrer_id: Referring user
            customer_name: Referred customer name
            contribution_value: Customer contribution (VND)
            commission_rate: Percentage, configured rate by default
            config: Configuration snapshot

        Returns:
            Created Referral

        Raises:
            ValidationError: If value or rate is invalid
            NotFoundError: If the referrer does not exist
        """
        return await self._mutate(
            self.referral_service.create_referral(
                referrer_id,
                customer_name,
                contribution_value,
                commission_rate=commission_rate,
                config=config,
            )
        )

    async def process_first_transaction(
        self,
        referral_code: str,
        transaction_id: int,
        referred_user_id: int | None = None,
    ) -> Referral:
        """
        Complete a referral with its first qualifying transaction.

        Raises:
            NotFoundError: If code or transaction is unknown
            InvalidStateError: If the referral is already completed
            ValidationError: If the transaction is not approved income
        """
        return await self._mutate(
            self.referral_service.process_first_transaction(
                referral_code, transaction_id, referred_user_id=referred_user_id
            )
        )

    async def calculate_referral_commission(self, referral_id: int) -> int:
        """Commission fixed on a referral at creation."""
        return await self.referral_service.calculate_referral_commission(referral_id)

    async def mark_commission_paid(
        self, referral_id: int, paid_amount: int, actor_id: int | None = None
    ) -> Referral:
        """
        Record a commission payment.

        Raises:
            NotFoundError: If the referral does not exist
            ValidationError: If amount is not positive
            CommissionOverpaymentError: If the total would exceed the commission
        """
        return await self._mutate(
            self.referral_service.mark_commission_paid(
                referral_id, paid_amount, actor_id=actor_id
            )
        )

    async def process_commission_payments(
        self, referrer_id: int, actor_id: int | None = None
    ) -> int:
        """Pay the outstanding commissions of a referrer and return the total."""
        return await self._mutate(
            self.referral_service.process_commission_payments(
                referrer_id, actor_id=actor_id
            )
        )

    async def get_referrals(self) -> list[Referral]:
        """All referrals."""
        return await self.referral_service.get_referrals()

    async def get_referrals_by_referrer(self, referrer_id: int) -> list[Referral]:
        """Referrals made by one user."""
        return await self.referral_service.get_referrals_by_referrer(referrer_id)

    async def get_referral_by_code(self, referral_code: str) -> Referral | None:
        """Referral by code, or None."""
        return await self.referral_service.get_referral_by_code(referral_code)

    # Cash flow and withdrawals

    async def validate_withdrawal_balance(
        self, user_id: int, amount: int, config: LedgerConfig | None = None
    ) -> WithdrawalValidation:
        """Check a withdrawal amount against the minimum and the balance."""
        return await self.cash_flow_service.validate_withdrawal_balance(
            user_id, amount, config
        )

    async def calculate_withdrawal_tax(
        self, amount: int, config: LedgerConfig | None = None
    ) -> int:
        """Tax withheld from a withdrawal of amount."""
        return await self.cash_flow_service.calculate_withdrawal_tax(amount, config)

    async def create_withdrawal_request(
        self,
        user_id: int,
        amount: int,
        description: str | None = None,
        config: LedgerConfig | None = None,
    ) -> Transaction:
        """
        Create a pending withdrawal with tax and net amounts.

        Raises:
            InsufficientFundsError: If amount is below the minimum or
                above the available balance
        """
        return await self._mutate(
            self.cash_flow_service.create_withdrawal_request(
                user_id, amount, description=description, config=config
            )
        )

    async def create_cash_flow_transaction(
        self,
        transaction_type: str,
        amount: int,
        created_by: int,
        description: str | None = None,
        branch_id: str | None = None,
        user_id: int | None = None,
        transaction_date: datetime | None = None,
    ) -> Transaction:
        """
        Record business income or expense, approved on entry.

        Raises:
            ValidationError: If type or amount is invalid
        """
        return await self._mutate(
            self.cash_flow_service.create_cash_flow_transaction(
                transaction_type,
                amount,
                created_by,
                description=description,
                branch_id=branch_id,
                user_id=user_id,
                transaction_date=transaction_date,
            )
        )

    async def approve_cash_flow_transaction(
        self,
        transaction_id: int,
        approved_by: int,
        config: LedgerConfig | None = None,
    ) -> Transaction:
        """
        Approve a pending transaction.

        Withdrawals are debited here. At the payout ceiling the debit is
        clamped and the paid gross is stored in paid_amount.

        Args:
            transaction_id: Transaction ID
            approved_by: Acting admin
            config: Configuration snapshot

        Returns:
            Approved transaction

        Raises:
            NotFoundError: If the transaction does not exist
            InvalidStateError: If it is not pending
            InsufficientFundsError: If the balance no longer covers it
        """
        return await self._mutate(
            self.cash_flow_service.approve_cash_flow_transaction(
                transaction_id, approved_by, config=config
            )
        )

    async def reject_cash_flow_transaction(
        self, transaction_id: int, approved_by: int, reason: str
    ) -> Transaction:
        """
        Reject a pending transaction. No balance is touched.

        Raises:
            ValidationError: If reason is empty
            NotFoundError: If the transaction does not exist
            InvalidStateError: If it is not pending
        """
        return await self._mutate(
            self.cash_flow_service.reject_cash_flow_transaction(
                transaction_id, approved_by, reason
            )
        )

    async def get_cash_flow_transactions(
        self, user_id: int | None = None
    ) -> list[Transaction]:
        """Transactions, optionally of one user, newest first."""
        return await self.cash_flow_service.get_cash_flow_transactions(user_id)

    async def get_cash_flow_transactions_by_type(
        self, transaction_type: str
    ) -> list[Transaction]:
        """Transactions of one type, newest first."""
        return await self.cash_flow_service.get_cash_flow_transactions_by_type(
            transaction_type
        )

    async def get_pending_transactions(self) -> list[Transaction]:
        """Transactions awaiting approval."""
        return await self.cash_flow_service.get_pending_transactions()

    # Audit

    async def get_audit_logs(self, limit: int = 100) -> list[AuditLog]:
        """Latest audit entries, newest first."""
        return await self.audit.get_audit_logs(limit)
