"""Loan lifecycle rules.

Pure functions with no database access: the status transition table,
due date computation, the runtime late predicate and the return
classification. ``LoanManager`` applies these inside its transactions.

    PENDING --approve--> APPROVED --mark_borrowed--> BORROWED
    BORROWED --request_return--> RETURN_REQUESTED
    BORROWED | RETURN_REQUESTED --confirm_return--> RETURNED
    PENDING --reject--> REJECTED

Late is NOT a status. It is derived from ``due_at`` and ``returned_at``
every time it is read.
"""

from datetime import datetime, timedelta
from typing import Optional, Union

from ..errors import ErrorCode, LoanError
from ..utils import hours_between
from .schemas import LoanStatus, Punishment, ReturnCondition

# Fixed loan duration, counted from approval
LOAN_DURATION = timedelta(hours=24)

ACTIVE_STATUSES = frozenset(
    {
        LoanStatus.PENDING,
        LoanStatus.APPROVED,
        LoanStatus.BORROWED,
        LoanStatus.RETURN_REQUESTED,
    }
)

TERMINAL_STATUSES = frozenset({LoanStatus.RETURNED, LoanStatus.REJECTED})

TRANSITIONS: dict[LoanStatus, frozenset[LoanStatus]] = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED}),
    LoanStatus.APPROVED: frozenset({LoanStatus.BORROWED}),
    LoanStatus.BORROWED: frozenset({LoanStatus.RETURN_REQUESTED, LoanStatus.RETURNED}),
    LoanStatus.RETURN_REQUESTED: frozenset({LoanStatus.RETURNED}),
    LoanStatus.RETURNED: frozenset(),
    LoanStatus.REJECTED: frozenset(),
}


def can_transition(source: Union[LoanStatus, str], target: Union[LoanStatus, str]) -> bool:
    """Check whether ``source -> target`` is in the transition table."""
    return LoanStatus(target) in TRANSITIONS[LoanStatus(source)]


def sources_for(target: LoanStatus) -> frozenset[LoanStatus]:
    """All statuses that may move to ``target``."""
    return frozenset(source for source, targets in TRANSITIONS.items() if target in targets)


def require_transition(source: Union[LoanStatus, str], target: LoanStatus) -> None:
    """Raise INVALID_LOAN_STATUS unless ``source -> target`` is allowed."""
    source = LoanStatus(source)
    if not can_transition(source, target):
        allowed = ", ".join(sorted(s.value for s in sources_for(target)))
        raise LoanError(
            ErrorCode.INVALID_LOAN_STATUS,
            f"Cannot move loan to {target.value}: status is {source.value}, "
            f"expected one of {allowed}",
            status=source.value,
            target=target.value,
        )


def compute_due_at(borrowed_at: datetime) -> datetime:
    """Due date for a loan approved at ``borrowed_at``."""
    return borrowed_at + LOAN_DURATION


def is_late(
    due_at: Optional[datetime],
    returned_at: Optional[datetime],
    now: datetime,
) -> bool:
    """A loan is late when it is past due and not yet returned.

    Loans without a due date (still pending, or rejected) are never late.
    """
    if due_at is None or returned_at is not None:
        return False
    return now > due_at


def late_hours(due_at: Optional[datetime], now: datetime) -> int:
    """Hours past due, rounded up. Zero when not past due."""
    if due_at is None:
        return 0
    return hours_between(due_at, now, round_up=True)


def hours_overdue(due_at: Optional[datetime], now: datetime) -> int:
    """Hours past due, rounded down. Used for dashboard alerts."""
    if due_at is None:
        return 0
    return hours_between(due_at, now, round_up=False)


def classify_punishment(late: bool, condition: ReturnCondition) -> Punishment:
    """Classify a return by lateness and condition."""
    bad_condition = condition in (ReturnCondition.DAMAGED, ReturnCondition.LOST)
    if late and bad_condition:
        return Punishment.BOTH
    if late:
        return Punishment.LATE
    if condition == ReturnCondition.DAMAGED:
        return Punishment.DAMAGED
    if condition == ReturnCondition.LOST:
        return Punishment.LOST
    return Punishment.NONE


def restores_stock(condition: ReturnCondition) -> bool:
    """Only items returned in good condition go back on the shelf."""
    return condition == ReturnCondition.GOOD


def return_message(condition: ReturnCondition, late: bool, hours: int) -> str:
    """Human readable summary of a confirmed return."""
    if condition == ReturnCondition.DAMAGED:
        message = "Item returned DAMAGED. Stock not restored, record the damage."
    elif condition == ReturnCondition.LOST:
        message = "Item marked as LOST. Stock not restored, follow up with the borrower."
    else:
        message = "Item returned successfully"

    if late:
        message += f" (LATE: {hours} hour{'s' if hours != 1 else ''} past due)"
    return message
