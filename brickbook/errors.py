# brickbook/errors.py
"""
Domain errors raised by the ledger engine and readers.

The HTTP layer maps each class to a status code (see brickbook.main);
everything else in the package just raises them.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class LedgerError(Exception):
    status_code = 500
    error = "Ledger Error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error, "message": self.message}
        body.update(self.extra)
        return body


class ValidationError(LedgerError):
    status_code = 400
    error = "Validation Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details or {})
        self.details = details or {}


class InsufficientBalance(LedgerError):
    status_code = 400
    error = "Insufficient wallet balance"

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient wallet balance. Required: {required}, Available: {available}",
            required=str(required),
            available=str(available),
        )
        self.required = required
        self.available = available


class NotFound(LedgerError):
    status_code = 404
    error = "Not Found"


class AlreadyCancelled(LedgerError):
    status_code = 400
    error = "Sale is already cancelled"

    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} is already cancelled", sale_id=sale_id)
        self.sale_id = sale_id


class StorageError(LedgerError):
    status_code = 500
    error = "Database Error"
