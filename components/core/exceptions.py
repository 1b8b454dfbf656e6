"""Domain errors raised by repositories and rendered by the API layer."""

from typing import Optional


class LedgerError(Exception):
    """Base class for errors that carry an HTTP status and a short title."""

    status_code = 400
    title = "Error"

    def __init__(self, detail: str, title: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if title is not None:
            self.title = title


class NotFoundError(LedgerError):
    status_code = 404
    title = "Not found"


class PermissionDeniedError(LedgerError):
    status_code = 403
    title = "Access denied"


class AuthenticationError(LedgerError):
    status_code = 401
    title = "Authentication failed"


class ReauthenticationError(AuthenticationError):
    title = "Password confirmation failed"


class LedgerValidationError(LedgerError):
    status_code = 422
    title = "Invalid input"


class PaymentExceedsOutstandingError(LedgerValidationError):
    title = "Payment exceeds outstanding"


class AmountBelowPaidError(LedgerValidationError):
    title = "Amount below paid total"


class ConfirmationRequiredError(LedgerError):
    status_code = 400
    title = "Confirmation required"


class CreditAlreadyPaidError(LedgerError):
    status_code = 409
    title = "Already paid"


class InvalidStatusTransitionError(LedgerError):
    status_code = 409
    title = "Invalid status change"


class ConcurrentModificationError(LedgerError):
    status_code = 409
    title = "Credit changed"


class CustomerConflictError(LedgerError):
    status_code = 409
    title = "Customer conflict"
