"""
Dramatiq worker entry point.

Run with:
    dramatiq jobs.worker
"""

from equity_ledger.config.logging import setup_logging

setup_logging("logs/worker.log")

from jobs.tasks import quarterly_processing  # noqa: E402,F401
