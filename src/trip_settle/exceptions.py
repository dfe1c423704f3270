"""
Exception classes for the trip settlement package.
"""
from typing import Optional


class TripSettleError(Exception):
    """Base exception class for all trip settlement errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        if original_error:
            message = f"{message} - Original error: {original_error!s}"
        super().__init__(message)


class LedgerValidationError(TripSettleError, ValueError):
    """Raised when a ledger record or expense cannot be accepted."""
    pass


class ExchangeRateError(TripSettleError):
    """Raised when exchange rates cannot be fetched."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        self.status_code = status_code
        status_str = f" (status: {status_code})" if status_code else ""
        super().__init__(f"Exchange rate lookup failed{status_str}: {message}", original_error)


class ConfigurationError(TripSettleError):
    """Raised when configuration values are invalid."""
    pass
