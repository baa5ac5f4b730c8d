"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from equity_ledger.models.audit_log import AuditLog
from equity_ledger.models.base import Base
from equity_ledger.models.business_tier_config import BusinessTierConfig
from equity_ledger.models.deposit_request import DepositRequest
from equity_ledger.models.enums import (
    DepositRequestStatus,
    ProfitSharingStatus,
    ReferralStatus,
    ShareChangeType,
    StaffKpiStatus,
    TransactionStatus,
    TransactionType,
    UserRole,
)
from equity_ledger.models.profit_sharing import ProfitDistribution, ProfitSharing
from equity_ledger.models.referral import Referral
from equity_ledger.models.staff_kpi import StaffKpi
from equity_ledger.models.system_config import SystemConfig
from equity_ledger.models.transaction import Transaction
from equity_ledger.models.user import User
from equity_ledger.models.user_balance import UserBalance
from equity_ledger.models.user_shares_history import UserSharesHistory


__all__ = [
    # Base
    "Base",
    # Enums
    "DepositRequestStatus",
    "ProfitSharingStatus",
    "ReferralStatus",
    "ShareChangeType",
    "StaffKpiStatus",
    "TransactionStatus",
    "TransactionType",
    "UserRole",
    # Core Models
    "User",
    "UserBalance",
    "UserSharesHistory",
    "BusinessTierConfig",
    "DepositRequest",
    "StaffKpi",
    "ProfitSharing",
    "ProfitDistribution",
    "Referral",
    "Transaction",
    # System Models
    "SystemConfig",
    "AuditLog",
]
