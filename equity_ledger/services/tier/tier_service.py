"""
Business tier service.

Tier configuration CRUD, user tier upgrades and share calculation.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.business_constants import DEFAULT_TIER_CONFIGS, TierName
from equity_ledger.models.business_tier_config import BusinessTierConfig
from equity_ledger.models.user import User
from equity_ledger.repositories.business_tier_config_repository import (
    BusinessTierConfigRepository,
)
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.tier.calculator import calculate_shares, determine_tier
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from equity_ledger.utils.money import require_non_negative, to_decimal


TIER_CONFIG_FIELDS = (
    "min_investment_amount",
    "share_multiplier",
    "max_shares",
    "description",
    "benefits",
)


def parse_tier(tier: str | TierName) -> TierName:
    """Validate a tier name."""
    try:
        return TierName(tier)
    except ValueError as e:
        raise ValidationError(f"Unknown business tier: {tier}", tier=str(tier)) from e


class BusinessTierService(BaseService):
    """Business tier service."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize business tier service."""
        super().__init__(session, audit)
        self.tier_repo = BusinessTierConfigRepository(session)
        self.user_repo = UserRepository(session)

    async def get_business_tier_configs(self) -> list[BusinessTierConfig]:
        """Get all tier configs, highest threshold first."""
        return await self.tier_repo.get_all_ordered()

    async def get_business_tier_config(
        self, tier: str | TierName
    ) -> BusinessTierConfig | None:
        """Get config of a tier, None if not configured."""
        return await self.tier_repo.get_by_id(parse_tier(tier).value)

    async def require_tier_config(self, tier: str | TierName) -> BusinessTierConfig:
        """Get config of a tier or raise NotFoundError."""
        config = await self.get_business_tier_config(tier)
        if config is None:
            raise NotFoundError(f"Business tier {tier} is not configured", tier=str(tier))
        return config

    @with_auto_commit
    async def create_business_tier_config(
        self,
        tier: str | TierName,
        min_investment_amount: int,
        share_multiplier: Decimal | int | str,
        max_shares: int | None = None,
        description: str | None = None,
        benefits: str | None = None,
        actor_id: int | None = None,
    ) -> BusinessTierConfig:
        """
        Create a tier config.

        Raises:
            ValidationError: If values are invalid
            InvalidStateError: If the tier is already configured
        """
        tier_name = parse_tier(tier)
        values = self._validate_values(
            min_investment_amount=min_investment_amount,
            share_multiplier=share_multiplier,
            max_shares=max_shares,
        )
        if await self.tier_repo.get_by_id(tier_name.value):
            raise InvalidStateError(
                f"Business tier {tier_name.value} already configured"
            )

        config = await self.tier_repo.create(
            tier_name=tier_name.value,
            description=description,
            benefits=benefits,
            **values,
        )
        await self.audit.record(
            "tier_config.create",
            "business_tier_config",
            tier_name.value,
            actor_id=actor_id,
            after=snapshot(config, TIER_CONFIG_FIELDS),
        )
        return config

    @with_auto_commit
    async def update_business_tier_config(
        self,
        tier: str | TierName,
        actor_id: int | None = None,
        **changes: object,
    ) -> BusinessTierConfig:
        """
        Update fields of a tier config.

        Args:
            tier: Tier name
            actor_id: Admin user ID
            **changes: Any of min_investment_amount, share_multiplier,
                max_shares, description, benefits

        Raises:
            NotFoundError: If the tier is not configured
            ValidationError: If a field is unknown or invalid
        """
        unknown = set(changes) - set(TIER_CONFIG_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown tier config fields: {sorted(unknown)}")

        config = await self.tier_repo.get_for_update(parse_tier(tier).value)
        if config is None:
            raise NotFoundError(f"Business tier {tier} is not configured")

        before = snapshot(config, TIER_CONFIG_FIELDS)
        numeric = {
            key: changes[key]
            for key in ("min_investment_amount", "share_multiplier", "max_shares")
            if key in changes
        }
        changes.update(self._validate_values(**numeric))

        for key, value in changes.items():
            setattr(config, key, value)
        await self.session.flush()

        await self.audit.record(
            "tier_config.update",
            "business_tier_config",
            config.tier_name,
            actor_id=actor_id,
            before=before,
            after=snapshot(config, TIER_CONFIG_FIELDS),
        )
        self.logger.info(f"Tier config {config.tier_name} updated")
        return config

    def _validate_values(self, **values: object) -> dict[str, object]:
        validated: dict[str, object] = {}
        if "min_investment_amount" in values:
            validated["min_investment_amount"] = require_non_negative(
                values["min_investment_amount"], "min_investment_amount"
            )
        if "share_multiplier" in values:
            multiplier = to_decimal(values["share_multiplier"])
            if multiplier < 0:
                raise ValidationError("share_multiplier must not be negative")
            validated["share_multiplier"] = multiplier
        if "max_shares" in values and values["max_shares"] is not None:
            validated["max_shares"] = require_non_negative(
                values["max_shares"], "max_shares"
            )
        elif "max_shares" in values:
            validated["max_shares"] = None
        return validated

    @with_auto_commit
    async def seed_default_tiers(self) -> int:
        """
        Insert default tier configs that are missing.

        Returns:
            Number of tiers created
        """
        created = 0
        for default in DEFAULT_TIER_CONFIGS:
            if await self.tier_repo.get_by_id(default.tier_name.value):
                continue
            await self.tier_repo.create(
                tier_name=default.tier_name.value,
                min_investment_amount=default.min_investment_amount,
                share_multiplier=default.share_multiplier,
                max_shares=default.max_shares,
                description=default.description,
                benefits=default.benefits,
            )
            created += 1

        if created:
            self.logger.info(f"Seeded {created} business tier configs")
        return created

    async def determine_tier(self, investment_amount: int) -> TierName:
        """Tier reached by an investment under the stored configs."""
        return determine_tier(investment_amount, await self.tier_repo.get_all_ordered())

    async def calculate_user_shares(self, user_id: int, amount: int) -> int:
        """
        Shares an amount would buy under the user's current tier.

        Users without a tier are classified by the amount itself.

        Raises:
            NotFoundError: If user or tier config is missing
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        tier = user.business_tier or await self.determine_tier(amount)
        config = await self.require_tier_config(tier)
        return calculate_shares(config, amount)

    async def apply_tier_upgrade(
        self, user_id: int, tier: str | TierName, amount: int
    ) -> User:
        """
        Add an approved investment to the user and resolve the new tier
        (no commit).

        The requested tier is kept when the cumulative investment covers its
        threshold; otherwise the tier is re-derived from the investment.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If tier or amount is invalid
        """
        requested = parse_tier(tier)
        require_non_negative(amount)

        user = await self.user_repo.get_for_update(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        configs = await self.tier_repo.get_all_ordered()
        investment = user.investment_amount + amount
        requested_config = next(
            (c for c in configs if c.tier_name == requested.value), None
        )

        if requested_config is not None and (
            requested_config.min_investment_amount <= investment
        ):
            new_tier = requested
        else:
            new_tier = determine_tier(investment, configs)

        previous = user.business_tier
        user.investment_amount = investment
        user.business_tier = new_tier.value
        await self.session.flush()

        if previous != new_tier.value:
            self.logger.info(
                f"User {user_id} tier {previous} -> {new_tier.value}",
                extra={"user_id": user_id, "investment": str(investment)},
            )
        return user

    @with_auto_commit
    async def upgrade_user_business_tier(
        self,
        user_id: int,
        tier: str | TierName,
        amount: int,
        actor_id: int | None = None,
    ) -> User:
        """
        Record an investment and upgrade the user's tier.

        Args:
            user_id: User ID
            tier: Requested tier
            amount: Investment amount (VND)
            actor_id: Admin user ID

        Returns:
            Updated user
        """
        user = await self.user_repo.get_by_id(user_id)
        before = snapshot(user, ("business_tier", "investment_amount")) if user else None
        user = await self.apply_tier_upgrade(user_id, tier, amount)
        await self.audit.record(
            "user.tier_upgrade",
            "user",
            user_id,
            actor_id=actor_id,
            before=before,
            after=snapshot(user, ("business_tier", "investment_amount")),
        )
        return user
