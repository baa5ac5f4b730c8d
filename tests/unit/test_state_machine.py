"""Tests for entity state transition tables."""

import pytest

from equity_ledger.models.enums import (
    DEPOSIT_REQUEST_STATES,
    REFERRAL_STATES,
    STAFF_KPI_STATES,
    DepositRequestStatus,
    ReferralStatus,
    StaffKpiStatus,
)
from equity_ledger.utils.exceptions import InvalidStateError


def test_deposit_request_transitions() -> None:
    """Pending requests can be approved or rejected, nothing else."""
    assert DEPOSIT_REQUEST_STATES.ensure(
        DepositRequestStatus.PENDING, DepositRequestStatus.APPROVED
    ) == DepositRequestStatus.APPROVED
    assert DEPOSIT_REQUEST_STATES.can_transition(
        DepositRequestStatus.PENDING, DepositRequestStatus.REJECTED
    )
    assert DEPOSIT_REQUEST_STATES.is_terminal(DepositRequestStatus.APPROVED)

    with pytest.raises(InvalidStateError):
        DEPOSIT_REQUEST_STATES.ensure(
            DepositRequestStatus.APPROVED, DepositRequestStatus.REJECTED
        )


def test_processed_kpi_cannot_be_processed_again() -> None:
    """StaffKpi is processed exactly once."""
    with pytest.raises(InvalidStateError) as exc_info:
        STAFF_KPI_STATES.ensure(StaffKpiStatus.PROCESSED, StaffKpiStatus.PROCESSED)

    assert exc_info.value.context["current"] == "processed"


def test_referral_completes_once() -> None:
    """Completed referrals are terminal."""
    assert not REFERRAL_STATES.can_transition(
        ReferralStatus.COMPLETED, ReferralStatus.COMPLETED
    )
