"""Error types raised by the loan and item managers.

Domain errors are expected rule violations. They carry a machine readable
code and a human message and are never retried. Store failures are a
separate class that callers may retry with backoff.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Machine readable error codes."""

    ACTIVE_LOAN_EXISTS = "ACTIVE_LOAN_EXISTS"
    LOAN_IS_LATE = "LOAN_IS_LATE"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INVALID_LOAN_STATUS = "INVALID_LOAN_STATUS"
    ALREADY_RETURNED = "ALREADY_RETURNED"
    LOAN_NOT_FOUND = "LOAN_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    ITEM_IN_USE = "ITEM_IN_USE"
    ITEM_CODE_EXISTS = "ITEM_CODE_EXISTS"
    DUE_DATE_NOT_ALLOWED = "DUE_DATE_NOT_ALLOWED"


DEFAULT_MESSAGES = {
    ErrorCode.ACTIVE_LOAN_EXISTS: (
        "You already have an active loan. Return it before requesting a new one."
    ),
    ErrorCode.LOAN_IS_LATE: (
        "You have a late loan. Return it before requesting a new one."
    ),
    ErrorCode.OUT_OF_STOCK: "Item is out of stock",
    ErrorCode.INVALID_LOAN_STATUS: "Loan is not in a valid status for this action",
    ErrorCode.ALREADY_RETURNED: "Loan has already been returned",
    ErrorCode.LOAN_NOT_FOUND: "Loan not found",
    ErrorCode.FORBIDDEN: "Loan belongs to another borrower",
    ErrorCode.ITEM_NOT_FOUND: "Item not found",
    ErrorCode.ITEM_IN_USE: "Item is referenced by loans and cannot be deleted",
    ErrorCode.ITEM_CODE_EXISTS: "An item with this code already exists",
    ErrorCode.DUE_DATE_NOT_ALLOWED: "Due date is computed on approval and cannot be supplied",
}


class LoanError(Exception):
    """A domain rule violation with a code and a human message."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None, **details: Any):
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"<LoanError(code={self.code.value}, message='{self.message}')>"

    def to_dict(self) -> dict:
        """Wire form for an HTTP or CLI layer."""
        data = {"code": self.code.value, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class StoreUnavailableError(Exception):
    """Raised when the backing database cannot be reached."""

    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "Data store is unavailable, try again later"):
        self.message = message
        super().__init__(message)
