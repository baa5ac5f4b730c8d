"""
Model enumerations and state transition tables.
"""

from enum import Enum

from equity_ledger.utils.state_machine import StateMachine


class UserRole(str, Enum):
    """User roles."""

    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"
    INVESTOR = "investor"
    AFFILIATE = "affiliate"


class DepositRequestStatus(str, Enum):
    """Deposit request lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ShareChangeType(str, Enum):
    """Reason for a share ledger entry."""

    DEPOSIT = "deposit"
    KPI_AWARD = "kpi-award"
    ADJUSTMENT = "adjustment"


class StaffKpiStatus(str, Enum):
    """Staff KPI row lifecycle."""

    PENDING = "pending"
    PROCESSED = "processed"


class ProfitSharingStatus(str, Enum):
    """Profit sharing period lifecycle."""

    CALCULATED = "calculated"
    PAID = "paid"


class ReferralStatus(str, Enum):
    """Referral lifecycle."""

    PENDING = "pending"
    COMPLETED = "completed"


class TransactionType(str, Enum):
    """Cash flow transaction types."""

    INCOME = "income"
    EXPENSE = "expense"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, Enum):
    """Cash flow transaction lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


DEPOSIT_REQUEST_STATES = StateMachine(
    "deposit_request",
    {
        DepositRequestStatus.PENDING: {
            DepositRequestStatus.APPROVED,
            DepositRequestStatus.REJECTED,
        },
    },
)

STAFF_KPI_STATES = StateMachine(
    "staff_kpi",
    {StaffKpiStatus.PENDING: {StaffKpiStatus.PROCESSED}},
)

PROFIT_SHARING_STATES = StateMachine(
    "profit_sharing",
    {ProfitSharingStatus.CALCULATED: {ProfitSharingStatus.PAID}},
)

REFERRAL_STATES = StateMachine(
    "referral",
    {ReferralStatus.PENDING: {ReferralStatus.COMPLETED}},
)

TRANSACTION_STATES = StateMachine(
    "transaction",
    {
        TransactionStatus.PENDING: {
            TransactionStatus.APPROVED,
            TransactionStatus.REJECTED,
        },
    },
)
