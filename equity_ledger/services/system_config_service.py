"""
System config service.

Reads and writes runtime business configuration (system_configs table)
and builds the LedgerConfig snapshot used by workflows.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.business_constants import CONFIG_DESCRIPTIONS, ConfigKey
from equity_ledger.config.ledger_config import LedgerConfig, parse_config_value
from equity_ledger.models.system_config import SystemConfig
from equity_ledger.repositories.system_config_repository import (
    SystemConfigRepository,
)
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.base_service import BaseService
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import ConfigurationError


def _parse_key(config_key: str | ConfigKey) -> ConfigKey:
    try:
        return ConfigKey(config_key)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown config key: {config_key}", config_key=str(config_key)
        ) from e


class SystemConfigService(BaseService):
    """System configuration service."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize system config service."""
        super().__init__(session, audit)
        self.config_repo = SystemConfigRepository(session)

    async def get_snapshot(self) -> LedgerConfig:
        """
        Build the current configuration snapshot.

        Keys without a row fall back to Settings defaults.

        Returns:
            Frozen LedgerConfig

        Raises:
            ConfigurationError: If a stored value is invalid
        """
        values = {}
        for entry in await self.config_repo.get_all_by_key():
            try:
                key = ConfigKey(entry.config_key)
            except ValueError:
                self.logger.warning(
                    f"Ignoring unknown config key {entry.config_key}"
                )
                continue
            values[key] = parse_config_value(key, entry.config_value)

        return LedgerConfig.defaults().with_values(values)

    async def get_system_configs(self) -> list[SystemConfig]:
        """Get all stored config entries ordered by key."""
        return await self.config_repo.get_all_by_key()

    async def get_system_config(
        self, config_key: str | ConfigKey
    ) -> SystemConfig | None:
        """Get a stored config entry, None if not set."""
        key = _parse_key(config_key)
        return await self.config_repo.get_by_key(key.value)

    @with_auto_commit
    async def update_system_config(
        self,
        config_key: str | ConfigKey,
        config_value: object,
        updated_by: int | None = None,
        description: str | None = None,
    ) -> SystemConfig:
        """
        Create or update a config entry.

        Args:
            config_key: One of ConfigKey
            config_value: New value (percentages 0-100, others positive ints)
            updated_by: Admin user ID
            description: Optional description override

        Returns:
            Stored config entry

        Raises:
            ConfigurationError: If key is unknown or value invalid
        """
        key = _parse_key(config_key)
        value = parse_config_value(key, config_value)
        stored_value = str(value)

        entry = await self.config_repo.get_by_key(key.value)
        before = snapshot(entry, ("config_value",)) if entry else None

        if entry is None:
            entry = await self.config_repo.create(
                config_key=key.value,
                config_value=stored_value,
                description=description or CONFIG_DESCRIPTIONS[key],
                updated_by=updated_by,
            )
        else:
            entry.config_value = stored_value
            entry.updated_by = updated_by
            if description:
                entry.description = description
            await self.session.flush()

        await self.audit.record(
            "system_config.update",
            "system_config",
            key.value,
            actor_id=updated_by,
            before=before,
            after=snapshot(entry, ("config_value",)),
        )

        self.logger.info(
            f"Config {key.value} set to {stored_value}",
            extra={"config_key": key.value, "updated_by": updated_by},
        )
        return entry

    @with_auto_commit
    async def seed_defaults(self) -> int:
        """
        Insert Settings defaults for keys without a row.

        Returns:
            Number of entries created
        """
        defaults = LedgerConfig.defaults()
        created = 0
        for key in ConfigKey:
            if await self.config_repo.get_by_key(key.value):
                continue
            await self.config_repo.create(
                config_key=key.value,
                config_value=str(getattr(defaults, key.value)),
                description=CONFIG_DESCRIPTIONS[key],
            )
            created += 1

        if created:
            self.logger.info(f"Seeded {created} system config defaults")
        return created


async def load_ledger_config(
    session: AsyncSession, config: LedgerConfig | None = None
) -> LedgerConfig:
    """Return the given snapshot, or read the current one."""
    if config is not None:
        return config
    return await SystemConfigService(session).get_snapshot()
