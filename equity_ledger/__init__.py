"""
Equity ledger.

Accounting and business rules engine for shares, tiers, quarterly profit
sharing, staff KPI awards, referral commissions and withdrawals.
"""

__version__ = "1.0.0"
