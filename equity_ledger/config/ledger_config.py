"""
Ledger configuration snapshot.

Business configuration read once per workflow from system_configs (with
Settings defaults for missing keys) and passed into calculations.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from equity_ledger.config.business_constants import (
    CONFIG_KINDS,
    ConfigKey,
    ConfigKind,
)
from equity_ledger.config.settings import Settings, settings
from equity_ledger.utils.exceptions import ConfigurationError, ValidationError
from equity_ledger.utils.money import to_decimal


class LedgerConfig(BaseModel):
    """Immutable business configuration used by one operation."""

    model_config = ConfigDict(frozen=True)

    maxout_limit_percentage: int = Field(gt=0)
    kpi_threshold_points: int = Field(gt=0)
    profit_share_rate: Decimal = Field(ge=0, le=100)
    withdrawal_minimum: int = Field(gt=0)
    withdrawal_tax_rate: Decimal = Field(ge=0, le=100)
    corporate_tax_rate: Decimal = Field(ge=0, le=100)
    referral_commission_rate: Decimal = Field(ge=0, le=100)
    shares_per_slot: int = Field(gt=0)

    @classmethod
    def defaults(cls, source: Settings | None = None) -> "LedgerConfig":
        """Build a snapshot from process settings only."""
        source = source or settings
        return cls(
            maxout_limit_percentage=source.default_maxout_limit_percentage,
            kpi_threshold_points=source.default_kpi_threshold_points,
            profit_share_rate=Decimal(source.default_profit_share_rate),
            withdrawal_minimum=source.default_withdrawal_minimum,
            withdrawal_tax_rate=Decimal(source.default_withdrawal_tax_rate),
            corporate_tax_rate=Decimal(source.default_corporate_tax_rate),
            referral_commission_rate=Decimal(
                source.default_referral_commission_rate
            ),
            shares_per_slot=source.default_shares_per_slot,
        )

    def with_values(self, values: dict[ConfigKey, int | Decimal]) -> "LedgerConfig":
        """Return a copy with the given keys replaced."""
        return self.model_copy(
            update={key.value: value for key, value in values.items()}
        )


def parse_config_value(key: ConfigKey, raw: object) -> int | Decimal:
    """
    Parse and validate a configuration value.

    Percentages must lie in [0, 100] and may be fractional; every other
    key must be a positive integer.

    Args:
        key: Configuration key
        raw: Value as stored or submitted

    Returns:
        Decimal for percentages, int otherwise

    Raises:
        ConfigurationError: If the value is not valid for the key
    """
    if isinstance(raw, bool):
        raise ConfigurationError(f"{key.value} must be a number", value=raw)
    try:
        value = to_decimal(str(raw).strip())
    except ValidationError as e:
        raise ConfigurationError(
            f"{key.value} must be a number", value=raw
        ) from e

    if not value.is_finite():
        raise ConfigurationError(f"{key.value} must be a number", value=raw)

    if CONFIG_KINDS[key] == ConfigKind.PERCENTAGE:
        if value < 0 or value > 100:
            raise ConfigurationError(
                f"{key.value} must be between 0 and 100", value=raw
            )
        return value

    if value != value.to_integral_value() or value <= 0:
        raise ConfigurationError(
            f"{key.value} must be a positive integer", value=raw
        )
    return int(value)
