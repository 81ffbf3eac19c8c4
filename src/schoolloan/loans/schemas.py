"""Pydantic schemas for school asset loans."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class LoanStatus(str, Enum):
    """Status of a loan."""

    PENDING = "PENDING"  # Requested, waiting for staff
    APPROVED = "APPROVED"  # Approved, stock taken, waiting for pickup
    BORROWED = "BORROWED"  # Handed over to the borrower
    RETURN_REQUESTED = "RETURN_REQUESTED"  # Borrower says it is back
    RETURNED = "RETURNED"
    REJECTED = "REJECTED"


class ReturnCondition(str, Enum):
    """Condition of an item when its return is confirmed."""

    GOOD = "GOOD"
    DAMAGED = "DAMAGED"
    LOST = "LOST"


class Punishment(str, Enum):
    """Informational classification of a return. Never stored."""

    NONE = "NONE"
    LATE = "LATE"
    DAMAGED = "DAMAGED"
    LOST = "LOST"
    BOTH = "BOTH"  # Late and damaged or lost


class LoanResponse(BaseModel):
    """Schema for loan responses, with lateness computed at read time."""

    id: str
    borrower_id: str
    item_id: str
    approver_id: Optional[str]
    status: LoanStatus
    requested_at: datetime
    borrowed_at: Optional[datetime]
    due_at: Optional[datetime]
    returned_at: Optional[datetime]
    return_condition: Optional[ReturnCondition]
    return_note: Optional[str]
    is_late: bool

    # Related data (populated by manager)
    item_name: Optional[str] = None


class LateLoanDetails(BaseModel):
    """The borrower's late loan, for a dashboard alert."""

    loan_id: str
    item_id: str
    item_name: Optional[str]
    due_at: datetime
    hours_late: int


class BorrowerLoans(BaseModel):
    """A borrower's loan history plus eligibility summary."""

    borrower_id: str
    has_active_loan: bool
    has_late_loan: bool
    late_loan: Optional[LateLoanDetails]
    loans: list[LoanResponse]


class ReturnResult(BaseModel):
    """Outcome of a confirmed return."""

    loan_id: str
    status: LoanStatus
    condition: ReturnCondition
    returned_at: datetime
    return_note: Optional[str]
    is_late: bool
    late_hours: int
    stock_incremented: bool
    punishment: Punishment
    message: str
