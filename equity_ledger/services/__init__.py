"""
Services module.

Ledger workflows. LedgerService is the facade callers use.
"""

from equity_ledger.services.audit_service import AuditService
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.deposit import DepositRequestService
from equity_ledger.services.kpi import StaffKpiService
from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.services.maxout_guard import MaxoutGuard, MaxoutStatus
from equity_ledger.services.profit_sharing import (
    DistributionPaymentService,
    ProfitSharingService,
)
from equity_ledger.services.referral import ReferralService
from equity_ledger.services.system_config_service import SystemConfigService
from equity_ledger.services.tier import BusinessTierService
from equity_ledger.services.withdrawal import CashFlowService


__all__ = [
    "AuditService",
    "BalanceService",
    "BaseService",
    "BusinessTierService",
    "CashFlowService",
    "DepositRequestService",
    "DistributionPaymentService",
    "LedgerService",
    "MaxoutGuard",
    "MaxoutStatus",
    "ProfitSharingService",
    "ReferralService",
    "StaffKpiService",
    "SystemConfigService",
]
