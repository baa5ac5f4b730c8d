"""
Balance service.

Balance and share adjustments. Every mutation records a description;
share changes also append a UserSharesHistory entry.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.enums import ShareChangeType
from equity_ledger.models.user_balance import UserBalance
from equity_ledger.models.user_shares_history import UserSharesHistory
from equity_ledger.repositories.user_balance_repository import (
    UserBalanceRepository,
)
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.repositories.user_shares_history_repository import (
    UserSharesHistoryRepository,
)
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.base_service import BaseService
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from equity_ledger.utils.money import require_positive


BALANCE_FIELDS = (
    "available_balance",
    "total_shares",
    "total_distributed",
    "total_withdrawn",
    "maxout_reached",
)


class BalanceService(BaseService):
    """
    User balance service.

    Public operations commit; the lower-level credit/debit/share helpers
    only flush so workflows can combine them into one commit.
    """

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize balance service."""
        super().__init__(session, audit)
        self.balance_repo = UserBalanceRepository(session)
        self.history_repo = UserSharesHistoryRepository(session)
        self.user_repo = UserRepository(session)

    async def get_user_balance(self, user_id: int) -> UserBalance | None:
        """Get balance of a user, None if none exists yet."""
        return await self.balance_repo.get_by_user_id(user_id)

    async def get_locked_balance(self, user_id: int) -> UserBalance:
        """
        Get the user's balance row locked until commit, creating it if needed.

        Raises:
            NotFoundError: If the user does not exist
        """
        balance = await self.balance_repo.get_by_user_id(user_id, for_update=True)
        if balance is not None:
            return balance

        if not await self.user_repo.get_by_id(user_id):
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        return await self.balance_repo.create(
            user_id=user_id,
            available_balance=0,
            total_shares=0,
            total_distributed=0,
            total_withdrawn=0,
            maxout_reached=False,
        )

    async def credit(
        self, user_id: int, amount: int, description: str
    ) -> UserBalance:
        """Add a positive amount to available balance (no commit)."""
        require_positive(amount)
        balance = await self.get_locked_balance(user_id)
        balance.available_balance += amount
        balance.description = description
        await self.session.flush()
        return balance

    async def debit(
        self, user_id: int, amount: int, description: str
    ) -> UserBalance:
        """
        Subtract a positive amount from available balance (no commit).

        Raises:
            InsufficientFundsError: If balance is lower than amount
        """
        require_positive(amount)
        balance = await self.get_locked_balance(user_id)
        if balance.available_balance < amount:
            raise InsufficientFundsError(
                f"Insufficient balance: {balance.available_balance} < {amount}",
                user_id=user_id,
                available=balance.available_balance,
                amount=amount,
            )
        balance.available_balance -= amount
        balance.description = description
        await self.session.flush()
        return balance

    async def apply_share_change(
        self,
        user_id: int,
        change_amount: int,
        change_type: ShareChangeType,
        description: str,
        transaction_id: str | None = None,
    ) -> UserSharesHistory:
        """
        Append a share ledger entry and update total_shares (no commit).

        Raises:
            ValidationError: If the change is zero or would go negative
        """
        if isinstance(change_amount, bool) or not isinstance(change_amount, int):
            raise ValidationError("change_amount must be an integer")
        if change_amount == 0:
            raise ValidationError("change_amount must not be zero")

        balance = await self.get_locked_balance(user_id)
        if balance.total_shares + change_amount < 0:
            raise ValidationError(
                f"User {user_id} holds {balance.total_shares} shares, "
                f"cannot apply {change_amount}",
                user_id=user_id,
            )

        balance.total_shares += change_amount
        entry = await self.history_repo.create(
            user_id=user_id,
            change_amount=change_amount,
            change_type=ShareChangeType(change_type).value,
            description=description,
            transaction_id=transaction_id,
        )

        self.logger.info(
            f"Shares {change_amount:+d} for user {user_id} ({entry.change_type})",
            extra={"user_id": user_id, "total_shares": balance.total_shares},
        )
        return entry

    @with_auto_commit
    async def add_to_user_balance(
        self,
        user_id: int,
        amount: int,
        description: str,
        actor_id: int | None = None,
    ) -> UserBalance:
        """
        Adjust a user's available balance.

        Args:
            user_id: User ID
            amount: Signed amount (VND), non-zero
            description: Reason, stored on the balance row
            actor_id: Admin performing the adjustment

        Returns:
            Updated balance

        Raises:
            ValidationError: If amount is zero or description empty
            InsufficientFundsError: If a debit exceeds the balance
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise ValidationError("amount must be a non-zero integer", value=amount)
        if not description or not description.strip():
            raise ValidationError("description is required")

        before = await self.get_locked_balance(user_id)
        before_state = snapshot(before, BALANCE_FIELDS)

        if amount > 0:
            balance = await self.credit(user_id, amount, description)
        else:
            balance = await self.debit(user_id, -amount, description)

        await self.audit.record(
            "balance.adjust",
            "user_balance",
            user_id,
            actor_id=actor_id,
            before=before_state,
            after=snapshot(balance, BALANCE_FIELDS),
        )
        return balance

    @with_auto_commit
    async def update_user_shares(
        self,
        user_id: int,
        change_amount: int,
        description: str,
        change_type: ShareChangeType = ShareChangeType.ADJUSTMENT,
        transaction_id: str | None = None,
        actor_id: int | None = None,
    ) -> UserSharesHistory:
        """
        Manually adjust a user's share count.

        Args:
            user_id: User ID
            change_amount: Signed share delta
            description: Reason
            change_type: Ledger entry type (adjustment by default)
            transaction_id: Optional originating record
            actor_id: Admin performing the adjustment

        Returns:
            Created history entry
        """
        if not description or not description.strip():
            raise ValidationError("description is required")

        entry = await self.apply_share_change(
            user_id, change_amount, change_type, description, transaction_id
        )
        await self.audit.record(
            "shares.adjust",
            "user_shares_history",
            entry.id,
            actor_id=actor_id,
            after=snapshot(entry, ("user_id", "change_amount", "change_type")),
        )
        return entry

    async def get_user_shares_history(
        self, user_id: int
    ) -> list[UserSharesHistory]:
        """Get share ledger entries of a user, newest first."""
        return await self.history_repo.get_by_user(user_id)
