"""
Repositories.

Data access layer over ledger models.
"""

from equity_ledger.repositories.audit_log_repository import AuditLogRepository
from equity_ledger.repositories.base import BaseRepository
from equity_ledger.repositories.business_tier_config_repository import (
    BusinessTierConfigRepository,
)
from equity_ledger.repositories.deposit_request_repository import (
    DepositRequestRepository,
)
from equity_ledger.repositories.profit_sharing_repository import (
    ProfitDistributionRepository,
    ProfitSharingRepository,
)
from equity_ledger.repositories.referral_repository import ReferralRepository
from equity_ledger.repositories.staff_kpi_repository import StaffKpiRepository
from equity_ledger.repositories.system_config_repository import (
    SystemConfigRepository,
)
from equity_ledger.repositories.transaction_repository import (
    TransactionRepository,
)
from equity_ledger.repositories.user_balance_repository import (
    UserBalanceRepository,
)
from equity_ledger.repositories.user_repository import UserRepository
from equity_ledger.repositories.user_shares_history_repository import (
    UserSharesHistoryRepository,
)


__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "BusinessTierConfigRepository",
    "DepositRequestRepository",
    "ProfitDistributionRepository",
    "ProfitSharingRepository",
    "ReferralRepository",
    "StaffKpiRepository",
    "SystemConfigRepository",
    "TransactionRepository",
    "UserBalanceRepository",
    "UserRepository",
    "UserSharesHistoryRepository",
]
