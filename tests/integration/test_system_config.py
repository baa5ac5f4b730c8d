"""Integration tests for runtime system configuration."""

from decimal import Decimal

import pytest

from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.exceptions import ConfigurationError


@pytest.mark.asyncio
async def test_defaults_without_rows(session) -> None:
    """An empty table yields settings defaults."""
    config = await LedgerService(session).get_config()

    assert config.maxout_limit_percentage == 210
    assert config.kpi_threshold_points == 50
    assert config.profit_share_rate == Decimal("49")
    assert config.withdrawal_minimum == 5_000_000


@pytest.mark.asyncio
async def test_update_and_read_back(session, admin_id) -> None:
    """Stored values replace defaults in the next snapshot."""
    ledger = LedgerService(session)

    entry = await ledger.update_system_config("profit_share_rate", "45.5", admin_id)
    assert entry.config_value == "45.5"
    assert entry.updated_by == admin_id

    await ledger.update_system_config("kpi_threshold_points", 40, admin_id)
    config = await ledger.get_config()
    assert config.profit_share_rate == Decimal("45.5")
    assert config.kpi_threshold_points == 40

    assert (await ledger.get_system_config("profit_share_rate")).config_value == "45.5"
    assert len(await ledger.get_system_configs()) == 2


@pytest.mark.asyncio
async def test_invalid_values_rejected(session, admin_id) -> None:
    """Out of range values and unknown keys are refused and not stored."""
    ledger = LedgerService(session)

    with pytest.raises(ConfigurationError):
        await ledger.update_system_config("profit_share_rate", "150", admin_id)
    with pytest.raises(ConfigurationError):
        await ledger.update_system_config("withdrawal_minimum", "-5", admin_id)
    with pytest.raises(ConfigurationError):
        await ledger.update_system_config("bonus_rate", "5", admin_id)

    assert await ledger.get_system_configs() == []


@pytest.mark.asyncio
async def test_config_drives_workflows(session, make_user, admin_id) -> None:
    """A raised minimum applies to the next withdrawal validation."""
    user = await make_user(available_balance=8_000_000)
    ledger = LedgerService(session)

    assert (await ledger.validate_withdrawal_balance(user.id, 6_000_000)).valid is True

    await ledger.update_system_config("withdrawal_minimum", 7_000_000, admin_id)

    assert (await ledger.validate_withdrawal_balance(user.id, 6_000_000)).valid is False


@pytest.mark.asyncio
async def test_seed_defaults(session) -> None:
    """Seeding writes every key once."""
    ledger = LedgerService(session)

    assert await ledger.config_service.seed_defaults() == 8
    assert await ledger.config_service.seed_defaults() == 0
    assert (await ledger.get_system_config("shares_per_slot")).config_value == "50"
