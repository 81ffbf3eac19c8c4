"""School asset loan lifecycle.

Provides functionality for:
- Loan requests with one-active-loan and late-loan eligibility checks
- Approval with a fixed 24 hour due date and stock reservation
- Hand-off, return requests and return confirmation by condition
- Runtime lateness and return classification
"""

from .lifecycle import (
    ACTIVE_STATUSES,
    LOAN_DURATION,
    TERMINAL_STATUSES,
    TRANSITIONS,
    can_transition,
    classify_punishment,
    compute_due_at,
    is_late,
)
from .manager import LoanManager
from .models import Loan
from .schemas import (
    BorrowerLoans,
    LateLoanDetails,
    LoanResponse,
    LoanStatus,
    Punishment,
    ReturnCondition,
    ReturnResult,
)

__all__ = [
    "LoanManager",
    "Loan",
    "LoanStatus",
    "ReturnCondition",
    "Punishment",
    "LoanResponse",
    "LateLoanDetails",
    "BorrowerLoans",
    "ReturnResult",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "LOAN_DURATION",
    "can_transition",
    "classify_punishment",
    "compute_due_at",
    "is_late",
]
