"""Custom exceptions for SpendSplit."""


class SpendSplitError(Exception):
    """Base exception for all SpendSplit errors."""

    pass


class ConfigurationError(SpendSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationFailure(SpendSplitError):
    """Raised when expense input violates a constraint.

    The ledger currently imposes no input constraints (negative amounts and
    empty strings are accepted), so nothing in the core raises this yet.
    """

    pass


class GatewayError(SpendSplitError):
    """Base class for failures reported by a ledger gateway."""

    pass


class TransportFailure(GatewayError):
    """Raised when the backing store or network is unreachable."""

    pass


class AuthorizationFailure(GatewayError):
    """Raised when the caller is not authenticated or not permitted."""

    pass


class NotFound(GatewayError):
    """Raised when a referenced expense does not exist remotely."""

    def __init__(self, expense_id: str, message: str | None = None):
        self.expense_id = expense_id
        super().__init__(message or f"Expense {expense_id} not found")
