"""
Maxout guard.

Payout ceilings per business tier. Profit distributions are clamped to
the remaining room under the ceiling, and withdrawals made at the ceiling
are clamped to zero, instead of being rejected.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.business_constants import CapBasis, get_tier_rule
from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.models.user import User
from equity_ledger.models.user_balance import UserBalance
from equity_ledger.repositories.profit_sharing_repository import (
    ProfitDistributionRepository,
)
from equity_ledger.repositories.user_balance_repository import (
    UserBalanceRepository,
)
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.services.audit_service import AuditService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.system_config_service import load_ledger_config
from equity_ledger.utils.exceptions import NotFoundError
from equity_ledger.utils.money import percent_of


@dataclass(frozen=True)
class MaxoutStatus:
    """Payout ceiling state of a user. limit is None when unlimited."""

    reached: bool
    limit: int | None
    current: int

    @property
    def remaining_room(self) -> int | None:
        """Amount that can still be paid out, None when unlimited."""
        if self.limit is None:
            return None
        return max(self.limit - self.current, 0)

    def clamp(self, amount: int) -> int:
        """Largest part of amount that fits under the ceiling."""
        room = self.remaining_room
        if room is None:
            return amount
        return max(min(amount, room), 0)


def compute_paid_out(
    total_distributed: int, total_withdrawn: int, unpaid: int
) -> int:
    """
    Amount counted against the payout ceiling.

    Credited distributions and withdrawals overlap when a user withdraws
    distributed money, so only the larger of the two is counted. Capped
    amounts allocated but not yet paid are added on top.
    """
    return max(total_distributed, total_withdrawn) + unpaid


def compute_maxout_limit(user: User, config: LedgerConfig) -> int | None:
    """
    Payout ceiling of a user.

    customer: maxout_limit_percentage of card price (default 210%)
    angel: 500% of investment
    founder, branch, staff, affiliate, no tier: unlimited (None)
    """
    rule = get_tier_rule(user.business_tier)
    if rule is None or rule.cap_basis == CapBasis.UNLIMITED:
        return None
    if rule.cap_basis == CapBasis.CARD_PRICE:
        percentage = rule.cap_percentage or config.maxout_limit_percentage
        return percent_of(user.card_price, percentage)
    return percent_of(user.investment_amount, rule.cap_percentage)


class MaxoutGuard(BaseService):
    """Maxout guard service."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize maxout guard."""
        super().__init__(session, audit)
        self.user_repo = UserRepository(session)
        self.balance_repo = UserBalanceRepository(session)
        self.distribution_repo = ProfitDistributionRepository(session)

    async def check_maxout_limit(
        self,
        user_id: int,
        config: LedgerConfig | None = None,
        exclude_distribution_id: int | None = None,
    ) -> MaxoutStatus:
        """
        Check a user's payout ceiling.

        current = max(credited distributions, withdrawals) + capped
        amounts allocated to the user but not yet paid.

        Args:
            user_id: User ID
            config: Configuration snapshot
            exclude_distribution_id: Unpaid row being paid right now

        Returns:
            MaxoutStatus

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        config = await load_ledger_config(self.session, config)
        limit = compute_maxout_limit(user, config)

        balance = await self.balance_repo.get_by_user_id(user_id)
        unpaid = await self.distribution_repo.sum_unpaid_for_shareholder(
            user_id, exclude_id=exclude_distribution_id
        )
        if balance is None:
            current = unpaid
        else:
            current = compute_paid_out(
                balance.total_distributed, balance.total_withdrawn, unpaid
            )

        reached = limit is not None and current >= limit
        return MaxoutStatus(reached=reached, limit=limit, current=current)

    def refresh_flag(
        self, balance: UserBalance, status: MaxoutStatus, paid: int
    ) -> None:
        """Set maxout_reached once a payout fills the ceiling."""
        if status.limit is not None and status.current + paid >= status.limit:
            if not balance.maxout_reached:
                self.logger.info(
                    f"User {balance.user_id} reached maxout limit {status.limit}",
                    extra={"user_id": balance.user_id},
                )
            balance.maxout_reached = True
