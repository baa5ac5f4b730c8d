"""
Deposit request service.

Pending deposit -> balance credit, tier upgrade and share issuance, all in
one commit.
"""

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.deposit_request import DepositRequest
from equity_ledger.models.enums import (
    DEPOSIT_REQUEST_STATES,
    DepositRequestStatus,
    ShareChangeType,
)
from equity_ledger.repositories.deposit_request_repository import (
    DepositRequestRepository,
)
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.tier.calculator import calculate_shares
from equity_ledger.services.tier.tier_service import BusinessTierService, parse_tier
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import NotFoundError, ValidationError
from equity_ledger.utils.money import require_positive


REQUEST_FIELDS = ("status", "approved_by", "notes")


class DepositRequestService(BaseService):
    """Deposit approval workflow."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize deposit request service."""
        super().__init__(session, audit)
        self.request_repo = DepositRequestRepository(session)
        self.user_repo = UserRepository(session)
        self.balance_service = BalanceService(session, self.audit)
        self.tier_service = BusinessTierService(session, self.audit)

    @with_auto_commit
    async def create_deposit_request(
        self,
        user_id: int,
        amount: int,
        business_tier: str,
        notes: str | None = None,
    ) -> DepositRequest:
        """
        Submit a deposit request.

        Args:
            user_id: Depositing user
            amount: Amount (VND), positive
            business_tier: Tier the user is buying into
            notes: Optional notes

        Returns:
            Pending deposit request

        Raises:
            ValidationError: If amount or tier is invalid
            NotFoundError: If the user does not exist
        """
        require_positive(amount)
        tier = parse_tier(business_tier)
        if not await self.user_repo.get_by_id(user_id):
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        request = await self.request_repo.create(
            user_id=user_id,
            amount=amount,
            business_tier=tier.value,
            status=DepositRequestStatus.PENDING.value,
            notes=notes,
        )
        await self.audit.record(
            "deposit_request.create",
            "deposit_request",
            request.id,
            actor_id=user_id,
            after=snapshot(request, ("user_id", "amount", "business_tier", "status")),
        )

        self.logger.info(
            f"Deposit request {request.id} created",
            extra={"user_id": user_id, "amount": str(amount), "tier": tier.value},
        )
        return request

    async def _get_pending_locked(self, request_id: int) -> DepositRequest | None:
        request = await self.request_repo.get_for_update(request_id)
        if request is None:
            raise NotFoundError(
                f"Deposit request {request_id} not found", request_id=request_id
            )
        if request.state != DepositRequestStatus.PENDING:
            self.logger.warning(
                f"Deposit request {request_id} already {request.status}, skipping"
            )
            return None
        return request

    @with_auto_commit
    async def approve_deposit_request(
        self, request_id: int, approved_by: int
    ) -> DepositRequest | None:
        """
        Approve a pending deposit request.

        Credits the amount, upgrades the user's tier and issues shares for
        the amount under the resulting tier. Shares beyond the tier's
        max_shares headroom are dropped.

        Args:
            request_id: Deposit request ID
            approved_by: Admin user ID

        Returns:
            Approved request, or None if it was not pending

        Raises:
            NotFoundError: If the request does not exist
        """
        request = await self._get_pending_locked(request_id)
        if request is None:
            return None

        before = snapshot(request, REQUEST_FIELDS)
        description = f"Deposit request #{request.id} approved"

        await self.balance_service.credit(request.user_id, request.amount, description)
        user = await self.tier_service.apply_tier_upgrade(
            request.user_id, request.business_tier, request.amount
        )

        tier_config = await self.tier_service.require_tier_config(user.business_tier)
        shares = calculate_shares(tier_config, request.amount)
        if tier_config.max_shares is not None:
            balance = await self.balance_service.get_locked_balance(request.user_id)
            shares = min(shares, max(tier_config.max_shares - balance.total_shares, 0))

        if shares > 0:
            await self.balance_service.apply_share_change(
                request.user_id,
                shares,
                ShareChangeType.DEPOSIT,
                description,
                transaction_id=str(request.id),
            )

        request.status = DEPOSIT_REQUEST_STATES.ensure(
            request.state, DepositRequestStatus.APPROVED
        ).value
        request.approved_by = approved_by
        request.approved_at = datetime.now(UTC)
        await self.session.flush()

        await self.audit.record(
            "deposit_request.approve",
            "deposit_request",
            request.id,
            actor_id=approved_by,
            before=before,
            after={**snapshot(request, REQUEST_FIELDS), "shares_issued": shares},
        )

        self.logger.info(
            f"Deposit request {request.id} approved: {shares} shares",
            extra={
                "user_id": request.user_id,
                "amount": str(request.amount),
                "tier": user.business_tier,
            },
        )
        return request

    @with_auto_commit
    async def reject_deposit_request(
        self, request_id: int, approved_by: int, reason: str
    ) -> DepositRequest | None:
        """
        Reject a pending deposit request. No balance is touched.

        Args:
            request_id: Deposit request ID
            approved_by: Admin user ID
            reason: Rejection reason, stored in notes

        Returns:
            Rejected request, or None if it was not pending

        Raises:
            ValidationError: If reason is empty
            NotFoundError: If the request does not exist
        """
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")

        request = await self._get_pending_locked(request_id)
        if request is None:
            return None

        before = snapshot(request, REQUEST_FIELDS)
        request.status = DEPOSIT_REQUEST_STATES.ensure(
            request.state, DepositRequestStatus.REJECTED
        ).value
        request.approved_by = approved_by
        request.approved_at = datetime.now(UTC)
        request.notes = reason.strip()
        await self.session.flush()

        await self.audit.record(
            "deposit_request.reject",
            "deposit_request",
            request.id,
            actor_id=approved_by,
            before=before,
            after=snapshot(request, REQUEST_FIELDS),
        )
        self.logger.info(f"Deposit request {request.id} rejected: {request.notes}")
        return request

    async def get_deposit_request(self, request_id: int) -> DepositRequest | None:
        """Get deposit request by ID."""
        return await self.request_repo.get_by_id(request_id)

    async def get_deposit_requests(
        self, status: str | DepositRequestStatus | None = None
    ) -> list[DepositRequest]:
        """Get deposit requests, newest first, optionally by status."""
        if status is not None:
            status = DepositRequestStatus(status).value
        return await self.request_repo.get_requests(status=status)

    async def get_user_deposit_requests(self, user_id: int) -> list[DepositRequest]:
        """Get deposit requests of a user, newest first."""
        return await self.request_repo.get_requests(user_id=user_id)
