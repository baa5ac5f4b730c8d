"""
Referral service.

Referral codes, commission accrual and commission payments. Commission is
computed once at creation; payments above it are rejected, never clamped.
"""

import secrets
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.models.enums import (
    REFERRAL_STATES,
    ReferralStatus,
    TransactionStatus,
    TransactionType,
)
from equity_ledger.models.referral import Referral
from equity_ledger.repositories.referral_repository import ReferralRepository
from equity_ledger.repositories.transaction_repository import TransactionRepository
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.system_config_service import load_ledger_config
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import (
    CommissionOverpaymentError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from equity_ledger.utils.money import (
    percent_of,
    require_non_negative,
    require_positive,
    to_decimal,
)


REFERRAL_CODE_PREFIX = "REF"
REFERRAL_CODE_ATTEMPTS = 10

COMMISSION_FIELDS = ("commission_amount", "commission_paid", "status")


def calculate_commission(contribution_value: int, commission_rate: int | Decimal) -> int:
    """
    Commission owed for a contribution.

    Formula: floor(contribution_value * commission_rate / 100)

    Example:
        >>> calculate_commission(45_000_000, 8)
        3600000
    """
    return percent_of(contribution_value, commission_rate)


class ReferralService(BaseService):
    """Referral commission lifecycle."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize referral service."""
        super().__init__(session, audit)
        self.referral_repo = ReferralRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)
        self.balance_service = BalanceService(session, self.audit)

    async def generate_referral_code(self, referrer_id: int) -> str:
        """
        Generate an unused referral code, e.g. "REF7F3A9C01".

        Raises:
            InvalidStateError: If no unused code was found
        """
        for _ in range(REFERRAL_CODE_ATTEMPTS):
            code = f"{REFERRAL_CODE_PREFIX}{secrets.token_hex(4).upper()}"
            if not await self.referral_repo.exists(referral_code=code):
                return code

        raise InvalidStateError(
            f"Could not generate a unique referral code for {referrer_id}"
        )

    @with_auto_commit
    async def create_referral(
        self,
        referrer_id: int,
        customer_name: str | None,
        contribution_value: int,
        commission_rate: int | float | str | Decimal | None = None,
        config: LedgerConfig | None = None,
    ) -> Referral:
        """
        Create a pending referral.

        Args:
            referrer_id: Referring user
            customer_name: Referred customer's name
            contribution_value: Value of the referred customer's contribution
            commission_rate: Percentage, defaults to referral_commission_rate
            config: Configuration snapshot

        Returns:
            Pending referral with commission_amount fixed

        Raises:
            ValidationError: If value or rate is invalid
            NotFoundError: If the referrer does not exist
        """
        require_non_negative(contribution_value, "contribution_value")
        if commission_rate is None:
            config = await load_ledger_config(self.session, config)
            rate = config.referral_commission_rate
        else:
            rate = to_decimal(commission_rate)
        if rate < 0 or rate > 100:
            raise ValidationError("commission_rate must be between 0 and 100")

        if not await self.user_repo.get_by_id(referrer_id):
            raise NotFoundError(f"Referrer {referrer_id} not found", referrer_id=referrer_id)

        referral = await self.referral_repo.create(
            referrer_id=referrer_id,
            referral_code=await self.generate_referral_code(referrer_id),
            customer_name=customer_name,
            contribution_value=contribution_value,
            commission_rate=rate,
            commission_amount=calculate_commission(contribution_value, rate),
            commission_paid=0,
            status=ReferralStatus.PENDING.value,
        )
        await self.audit.record(
            "referral.create",
            "referral",
            referral.id,
            actor_id=referrer_id,
            after=snapshot(referral, ("referral_code", *COMMISSION_FIELDS)),
        )

        self.logger.info(
            f"Referral {referral.referral_code} created",
            extra={
                "referrer_id": referrer_id,
                "commission_amount": str(referral.commission_amount),
            },
        )
        return referral

    @with_auto_commit
    async def process_first_transaction(
        self,
        referral_code: str,
        transaction_id: int,
        referred_user_id: int | None = None,
    ) -> Referral:
        """
        Bind the referred customer's first approved income transaction.

        Raises:
            NotFoundError: If code or transaction is unknown
            InvalidStateError: If the referral is already completed
            ValidationError: If the transaction is not approved income
        """
        referral = await self.referral_repo.get_by_code(referral_code, for_update=True)
        if referral is None:
            raise NotFoundError(f"Referral code {referral_code} not found")

        REFERRAL_STATES.ensure(referral.state, ReferralStatus.COMPLETED)

        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if (
            transaction.kind != TransactionType.INCOME
            or transaction.state != TransactionStatus.APPROVED
        ):
            raise ValidationError(
                f"Transaction {transaction_id} is not an approved income transaction"
            )

        before = snapshot(referral, ("status", "first_transaction_id"))
        referral.first_transaction_id = transaction.id
        if referred_user_id is not None:
            referral.referred_user_id = referred_user_id
        elif transaction.user_id is not None:
            referral.referred_user_id = transaction.user_id
        referral.status = ReferralStatus.COMPLETED.value
        referral.completed_at = datetime.now(UTC)
        await self.session.flush()

        await self.audit.record(
            "referral.complete",
            "referral",
            referral.id,
            before=before,
            after=snapshot(referral, ("status", "first_transaction_id")),
        )
        return referral

    async def calculate_referral_commission(self, referral_id: int) -> int:
        """Stored commission amount of a referral."""
        referral = await self.referral_repo.get_by_id(referral_id)
        if referral is None:
            raise NotFoundError(f"Referral {referral_id} not found")
        return referral.commission_amount

    async def _pay_commission(self, referral: Referral, amount: int) -> None:
        require_positive(amount, "paid_amount")
        if referral.commission_paid + amount > referral.commission_amount:
            raise CommissionOverpaymentError(
                f"Payment {amount} exceeds outstanding commission "
                f"{referral.commission_outstanding}",
                referral_id=referral.id,
                outstanding=referral.commission_outstanding,
            )

        await self.balance_service.credit(
            referral.referrer_id,
            amount,
            f"Referral commission {referral.referral_code}",
        )
        referral.commission_paid += amount
        await self.session.flush()

    @with_auto_commit
    async def mark_commission_paid(
        self, referral_id: int, paid_amount: int, actor_id: int | None = None
    ) -> Referral:
        """
        Record a commission payment and credit the referrer.

        Args:
            referral_id: Referral ID
            paid_amount: Amount paid, positive
            actor_id: Admin recording the payment

        Returns:
            Updated referral

        Raises:
            NotFoundError: If the referral does not exist
            ValidationError: If amount is not positive
            CommissionOverpaymentError: If the total would exceed the commission
        """
        referral = await self.referral_repo.get_for_update(referral_id)
        if referral is None:
            raise NotFoundError(f"Referral {referral_id} not found")

        before = snapshot(referral, COMMISSION_FIELDS)
        await self._pay_commission(referral, paid_amount)

        await self.audit.record(
            "referral.commission_paid",
            "referral",
            referral.id,
            actor_id=actor_id,
            before=before,
            after=snapshot(referral, COMMISSION_FIELDS),
        )
        return referral

    @with_auto_commit
    async def process_commission_payments(
        self, referrer_id: int, actor_id: int | None = None
    ) -> int:
        """
        Pay the outstanding commission of every referral of a referrer.

        Returns:
            Total amount paid
        """
        referrals = await self.referral_repo.get_with_outstanding_commission(referrer_id)
        total = 0
        for referral in referrals:
            outstanding = referral.commission_outstanding
            await self._pay_commission(referral, outstanding)
            total += outstanding

        if total:
            await self.audit.record(
                "referral.commission_sweep",
                "user",
                referrer_id,
                actor_id=actor_id,
                after={"referrals": len(referrals), "paid_total": total},
            )
        self.logger.info(
            f"Paid {total} commission to referrer {referrer_id}",
            extra={"referrals": len(referrals)},
        )
        return total

    async def get_referrals(self) -> list[Referral]:
        """Get all referrals, newest first."""
        return await self.referral_repo.get_all_newest_first()

    async def get_referrals_by_referrer(self, referrer_id: int) -> list[Referral]:
        """Get referrals of a referrer."""
        return await self.referral_repo.get_by_referrer(referrer_id)

    async def get_referral_by_code(self, referral_code: str) -> Referral | None:
        """Get referral by code."""
        return await self.referral_repo.get_by_code(referral_code)
