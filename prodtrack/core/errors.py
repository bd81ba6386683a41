"""
Domain Errors - raised by services, rendered by the API exception handler
"""


class LedgerError(Exception):
    """Base class for every refusal the ledger reports to the acting user"""
    status_code = 400
    code = "LEDGER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Missing reason/confirmation, bad field value or illegal transition"""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthorizationError(LedgerError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"


class NotFoundError(LedgerError):
    status_code = 404
    code = "NOT_FOUND"


class QuantityExceededError(LedgerError):
    status_code = 409
    code = "QUANTITY_EXCEEDED"


class InsufficientStockError(LedgerError):
    status_code = 409
    code = "INSUFFICIENT_STOCK"


class ConcurrencyError(LedgerError):
    status_code = 409
    code = "CONCURRENT_UPDATE"


__all__ = [
    "LedgerError", "ValidationError", "AuthorizationError", "NotFoundError",
    "QuantityExceededError", "InsufficientStockError", "ConcurrencyError",
]
