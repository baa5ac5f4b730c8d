"""
Ledger exception types.

Defines the error taxonomy raised by ledger services. Every error is
raised before any state is mutated, or the surrounding unit of work is
rolled back.
"""


class LedgerError(Exception):
    """Base class for ledger errors."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(LedgerError):
    """Malformed or out-of-range input."""

    code = "VALIDATION_ERROR"


class ConfigurationError(ValidationError):
    """Invalid system configuration value."""

    code = "INVALID_CONFIG"


class CommissionOverpaymentError(ValidationError):
    """Referral payment would exceed the commission amount."""

    code = "COMMISSION_OVERPAYMENT"


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    code = "NOT_FOUND"


class InvalidStateError(LedgerError):
    """Transition attempted from a non-eligible state."""

    code = "INVALID_STATE"


class InsufficientFundsError(LedgerError):
    """Withdrawal exceeds available balance or is below the minimum."""

    code = "INSUFFICIENT_FUNDS"


# Errors raised on purpose by services (caller mistakes, not failures)
EXPECTED_ERRORS = (
    ValidationError,
    NotFoundError,
    InvalidStateError,
    InsufficientFundsError,
)


def is_expected(exc: Exception) -> bool:
    """
    Check if exception is an expected business rule rejection.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a ledger rule rejection
    """
    return isinstance(exc, EXPECTED_ERRORS)
