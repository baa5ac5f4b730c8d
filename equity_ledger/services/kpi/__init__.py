"""Staff KPI -> shares pipeline."""

from equity_ledger.services.kpi.calculator import (
    KpiAward,
    calculate_kpi_award,
    calculate_kpi_points,
)
from equity_ledger.services.kpi.staff_kpi_service import StaffKpiService


__all__ = [
    "KpiAward",
    "StaffKpiService",
    "calculate_kpi_award",
    "calculate_kpi_points",
]
