"""
Cash flow service.

Income and expense bookkeeping, and the withdrawal request -> approval
workflow. Withdrawals debit the balance only when approved.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.models.enums import (
    TRANSACTION_STATES,
    TransactionStatus,
    TransactionType,
)
from equity_ledger.models.transaction import Transaction
from equity_ledger.repositories.transaction_repository import TransactionRepository
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.maxout_guard import MaxoutGuard
from equity_ledger.services.system_config_service import load_ledger_config
from equity_ledger.services.withdrawal.tax import calculate_withdrawal_tax
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from equity_ledger.utils.money import require_positive


TRANSACTION_FIELDS = (
    "type",
    "amount",
    "tax_amount",
    "net_amount",
    "paid_amount",
    "status",
    "approved_by",
    "notes",
)


@dataclass
class WithdrawalValidation:
    """Result of withdrawal validation."""

    valid: bool
    available_balance: int
    error_message: str | None = None

    @classmethod
    def success(cls, available_balance: int) -> "WithdrawalValidation":
        """Create a successful validation result."""
        return cls(valid=True, available_balance=available_balance)

    @classmethod
    def error(cls, available_balance: int, message: str) -> "WithdrawalValidation":
        """Create a failed validation result."""
        return cls(
            valid=False, available_balance=available_balance, error_message=message
        )


def parse_transaction_type(value: str | TransactionType) -> TransactionType:
    """Validate a transaction type."""
    try:
        return TransactionType(value)
    except ValueError as e:
        raise ValidationError(f"Unknown transaction type: {value}") from e


class CashFlowService(BaseService):
    """Cash flow and withdrawal service."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize cash flow service."""
        super().__init__(session, audit)
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)
        self.balance_service = BalanceService(session, self.audit)
        self.maxout_guard = MaxoutGuard(session, self.audit)

    async def validate_withdrawal_balance(
        self,
        user_id: int,
        amount: int,
        config: LedgerConfig | None = None,
        for_update: bool = False,
    ) -> WithdrawalValidation:
        """
        Check a withdrawal amount against the minimum and the balance.

        Args:
            user_id: User ID
            amount: Requested amount (VND)
            config: Configuration snapshot
            for_update: Lock the balance row until commit

        Returns:
            WithdrawalValidation

        Raises:
            NotFoundError: If the user does not exist
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("amount must be an integer", value=amount)
        if not await self.user_repo.get_by_id(user_id):
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        config = await load_ledger_config(self.session, config)
        if for_update:
            balance = await self.balance_service.get_locked_balance(user_id)
        else:
            balance = await self.balance_service.get_user_balance(user_id)
        available = balance.available_balance if balance else 0

        if amount < config.withdrawal_minimum:
            return WithdrawalValidation.error(
                available,
                f"Minimum withdrawal is {config.withdrawal_minimum}",
            )
        if amount > available:
            return WithdrawalValidation.error(
                available, f"Insufficient balance: {available} < {amount}"
            )
        return WithdrawalValidation.success(available)

    async def calculate_withdrawal_tax(
        self, amount: int, config: LedgerConfig | None = None
    ) -> int:
        """Tax withheld from a withdrawal under the current tax rate."""
        config = await load_ledger_config(self.session, config)
        return calculate_withdrawal_tax(amount, config.withdrawal_tax_rate)

    @with_auto_commit
    async def create_withdrawal_request(
        self,
        user_id: int,
        amount: int,
        description: str | None = None,
        config: LedgerConfig | None = None,
    ) -> Transaction:
        """
        Create a pending withdrawal. The balance is untouched until approval.

        Returns:
            Pending withdrawal transaction with tax and net amounts

        Raises:
            InsufficientFundsError: If amount is below the minimum or
                above the available balance
        """
        config = await load_ledger_config(self.session, config)
        validation = await self.validate_withdrawal_balance(user_id, amount, config)
        if not validation.valid:
            raise InsufficientFundsError(
                validation.error_message,
                user_id=user_id,
                amount=amount,
                available=validation.available_balance,
            )

        tax = calculate_withdrawal_tax(amount, config.withdrawal_tax_rate)
        transaction = await self.transaction_repo.create(
            type=TransactionType.WITHDRAWAL.value,
            amount=amount,
            tax_amount=tax,
            net_amount=amount - tax,
            status=TransactionStatus.PENDING.value,
            user_id=user_id,
            description=description,
            created_by=user_id,
        )
        await self.audit.record(
            "withdrawal.request",
            "transaction",
            transaction.id,
            actor_id=user_id,
            after=snapshot(transaction, ("amount", "tax_amount", "net_amount", "status")),
        )

        self.logger.info(
            f"Withdrawal {transaction.id} requested",
            extra={"user_id": user_id, "amount": str(amount), "tax": str(tax)},
        )
        return transaction

    @with_auto_commit
    async def create_cash_flow_transaction(
        self,
        transaction_type: str | TransactionType,
        amount: int,
        created_by: int,
        description: str | None = None,
        branch_id: str | None = None,
        user_id: int | None = None,
        transaction_date: datetime | None = None,
    ) -> Transaction:
        """
        Record business income or expense, approved by the recording actor.

        Args:
            transaction_type: income or expense
            amount: Amount (VND), positive
            created_by: Recording admin
            description: Optional description
            branch_id: Optional branch
            user_id: Optional related user (e.g. paying customer)
            transaction_date: Date used for period bucketing (now by default)

        Returns:
            Approved transaction

        Raises:
            ValidationError: If type or amount is invalid
        """
        kind = parse_transaction_type(transaction_type)
        if kind == TransactionType.WITHDRAWAL:
            raise ValidationError("Withdrawals go through create_withdrawal_request")
        require_positive(amount)

        now = datetime.now(UTC)
        transaction = await self.transaction_repo.create(
            type=kind.value,
            amount=amount,
            tax_amount=0,
            net_amount=amount,
            status=TransactionStatus.APPROVED.value,
            user_id=user_id,
            branch_id=branch_id,
            description=description,
            created_by=created_by,
            approved_by=created_by,
            approved_at=now,
            transaction_date=transaction_date or now,
        )
        await self.audit.record(
            f"cash_flow.{kind.value}",
            "transaction",
            transaction.id,
            actor_id=created_by,
            after=snapshot(transaction, TRANSACTION_FIELDS),
        )
        return transaction

    async def _get_locked(self, transaction_id: int) -> Transaction:
        transaction = await self.transaction_repo.get_for_update(transaction_id)
        if transaction is None:
            raise NotFoundError(
                f"Transaction {transaction_id} not found",
                transaction_id=transaction_id,
            )
        return transaction

    @with_auto_commit
    async def approve_cash_flow_transaction(
        self,
        transaction_id: int,
        approved_by: int,
        config: LedgerConfig | None = None,
    ) -> Transaction:
        """
        Approve a pending transaction.

        Withdrawals are re-validated under the balance lock and checked
        against the payout ceiling. At the ceiling the payout is clamped to
        the remaining room (possibly 0) and tax is recomputed on it; the
        gross actually debited is stored in paid_amount.

        Raises:
            NotFoundError: If the transaction does not exist
            InvalidStateError: If it is not pending
            InsufficientFundsError: If the balance no longer covers it
        """
        transaction = await self._get_locked(transaction_id)
        target = TRANSACTION_STATES.ensure(transaction.state, TransactionStatus.APPROVED)
        before = snapshot(transaction, TRANSACTION_FIELDS)

        if transaction.kind == TransactionType.WITHDRAWAL:
            await self._settle_withdrawal(transaction, config)

        transaction.status = target.value
        transaction.approved_by = approved_by
        transaction.approved_at = datetime.now(UTC)
        await self.session.flush()

        await self.audit.record(
            "cash_flow.approve",
            "transaction",
            transaction.id,
            actor_id=approved_by,
            before=before,
            after=snapshot(transaction, TRANSACTION_FIELDS),
        )
        self.logger.info(f"Transaction {transaction.id} approved")
        return transaction

    async def _settle_withdrawal(
        self, transaction: Transaction, config: LedgerConfig | None
    ) -> None:
        config = await load_ledger_config(self.session, config)
        validation = await self.validate_withdrawal_balance(
            transaction.user_id, transaction.amount, config, for_update=True
        )
        if not validation.valid:
            raise InsufficientFundsError(
                validation.error_message,
                transaction_id=transaction.id,
                available=validation.available_balance,
            )

        status = await self.maxout_guard.check_maxout_limit(transaction.user_id, config)
        payout = transaction.amount
        if status.reached:
            payout = status.clamp(transaction.amount)
            self.logger.warning(
                f"Withdrawal {transaction.id} clamped at maxout: "
                f"{payout} of {transaction.amount} "
                f"({status.current}/{status.limit})",
                extra={"user_id": transaction.user_id},
            )
            transaction.notes = (
                f"Clamped at maxout limit {status.limit}: "
                f"paid {payout} of {transaction.amount}"
            )

        tax = calculate_withdrawal_tax(payout, config.withdrawal_tax_rate)
        transaction.paid_amount = payout
        transaction.tax_amount = tax
        transaction.net_amount = payout - tax

        if payout > 0:
            balance = await self.balance_service.debit(
                transaction.user_id,
                payout,
                f"Withdrawal #{transaction.id}",
            )
        else:
            balance = await self.balance_service.get_locked_balance(
                transaction.user_id
            )
        balance.total_withdrawn += payout
        if status.reached:
            self.maxout_guard.refresh_flag(balance, status, payout)

    @with_auto_commit
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
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")

        transaction = await self._get_locked(transaction_id)
        target = TRANSACTION_STATES.ensure(transaction.state, TransactionStatus.REJECTED)
        before = snapshot(transaction, TRANSACTION_FIELDS)

        transaction.status = target.value
        transaction.approved_by = approved_by
        transaction.approved_at = datetime.now(UTC)
        transaction.notes = reason.strip()
        await self.session.flush()

        await self.audit.record(
            "cash_flow.reject",
            "transaction",
            transaction.id,
            actor_id=approved_by,
            before=before,
            after=snapshot(transaction, TRANSACTION_FIELDS),
        )
        return transaction

    async def get_cash_flow_transactions(
        self, user_id: int | None = None
    ) -> list[Transaction]:
        """Get transactions, optionally of one user, newest first."""
        return await self.transaction_repo.get_transactions(user_id=user_id)

    async def get_cash_flow_transactions_by_type(
        self, transaction_type: str | TransactionType
    ) -> list[Transaction]:
        """Get transactions of one type, newest first."""
        kind = parse_transaction_type(transaction_type)
        return await self.transaction_repo.get_transactions(transaction_type=kind.value)

    async def get_pending_transactions(self) -> list[Transaction]:
        """Get transactions awaiting approval."""
        return await self.transaction_repo.get_transactions(
            status=TransactionStatus.PENDING.value
        )
