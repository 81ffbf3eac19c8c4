"""Loan manager for the school asset loan lifecycle."""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..db.models import now_iso
from ..db.sqlite import Database, get_db
from ..errors import ErrorCode, LoanError
from ..items.manager import ItemManager
from ..items.models import Item
from ..log import get_logger
from ..utils import from_iso, to_iso, utc_now
from . import lifecycle
from .lifecycle import ACTIVE_STATUSES
from .models import Loan
from .schemas import (
    BorrowerLoans,
    LateLoanDetails,
    LoanResponse,
    LoanStatus,
    ReturnCondition,
    ReturnResult,
)

logger = get_logger()

_ACTIVE_VALUES = [status.value for status in ACTIVE_STATUSES]


class LoanManager:
    """Manages loan requests, approvals, hand-offs and returns.

    Every operation runs in a single database transaction. Status changes
    are compare-and-swap updates on the expected source status, and stock
    changes are conditional updates in the same transaction, so a failure
    at any step leaves neither the loan nor the item modified.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize loan manager.

        Args:
            db: Database instance
            clock: Returns the current aware UTC datetime (default: system time)
        """
        self.db = db or get_db()
        self.clock = clock or utc_now

    def _now(self) -> datetime:
        return self.clock().replace(microsecond=0)

    # -------------------------------------------------------------------------
    # Eligibility
    # -------------------------------------------------------------------------

    @staticmethod
    def _active_loan_exists(session: Session, borrower_id: str) -> bool:
        stmt = (
            select(Loan.id)
            .where(
                Loan.borrower_id == borrower_id,
                Loan.status.in_(_ACTIVE_VALUES),
                Loan.returned_at.is_(None),
            )
            .limit(1)
        )
        return session.execute(stmt).first() is not None

    @staticmethod
    def _find_late_loan(session: Session, borrower_id: str, now: datetime) -> Optional[Loan]:
        stmt = (
            select(Loan)
            .options(selectinload(Loan.item))
            .where(
                Loan.borrower_id == borrower_id,
                Loan.due_at.isnot(None),
                Loan.due_at < to_iso(now),
                Loan.returned_at.is_(None),
            )
            .order_by(Loan.due_at)
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

    def has_active_loan(self, borrower_id: str) -> bool:
        """Check if the borrower's single loan slot is taken.

        Args:
            borrower_id: Borrower ID

        Returns:
            True if a PENDING, APPROVED, BORROWED or RETURN_REQUESTED loan exists
        """
        with self.db.get_session() as session:
            return self._active_loan_exists(session, borrower_id)

    def has_late_loan(self, borrower_id: str) -> bool:
        """Check if the borrower holds an item past its due date.

        Args:
            borrower_id: Borrower ID

        Returns:
            True if any unreturned loan is past due
        """
        with self.db.get_session() as session:
            return self._find_late_loan(session, borrower_id, self._now()) is not None

    def get_late_loan_details(self, borrower_id: str) -> Optional[LateLoanDetails]:
        """Get the borrower's oldest late loan for a dashboard alert.

        Args:
            borrower_id: Borrower ID

        Returns:
            LateLoanDetails or None when nothing is late
        """
        now = self._now()
        with self.db.get_session() as session:
            loan = self._find_late_loan(session, borrower_id, now)
            if loan is None:
                return None
            return self._late_details(loan, now)

    @staticmethod
    def _late_details(loan: Loan, now: datetime) -> LateLoanDetails:
        due_at = from_iso(loan.due_at)
        return LateLoanDetails(
            loan_id=loan.id,
            item_id=loan.item_id,
            item_name=loan.item.name if loan.item else None,
            due_at=due_at,
            hours_late=lifecycle.hours_overdue(due_at, now),
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    @staticmethod
    def _violation(code: ErrorCode, message: Optional[str] = None, **details) -> LoanError:
        error = LoanError(code, message, **details)
        logger.info("loan.rule_violation", code=code.value, **details)
        return error

    def _load(self, session: Session, loan_id: str) -> Loan:
        stmt = select(Loan).where(Loan.id == loan_id).with_for_update()
        loan = session.execute(stmt).scalar_one_or_none()
        if loan is None:
            raise self._violation(ErrorCode.LOAN_NOT_FOUND, loan_id=loan_id)
        return loan

    @staticmethod
    def _check_transition(loan: Loan, target: LoanStatus) -> None:
        try:
            lifecycle.require_transition(loan.status, target)
        except LoanError as e:
            logger.info("loan.rule_violation", code=e.code.value, loan_id=loan.id, **e.details)
            raise

    def _transition(self, session: Session, loan: Loan, target: LoanStatus, **values) -> None:
        """Move ``loan`` to ``target`` if it is still in the status it was read in."""
        source = LoanStatus(loan.status)
        self._check_transition(loan, target)

        result = session.execute(
            update(Loan)
            .where(
                Loan.id == loan.id,
                Loan.status == source.value,
                Loan.returned_at.is_(None),
            )
            .values(status=target.value, updated_at=now_iso(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            returned_at = session.execute(
                select(Loan.returned_at).where(Loan.id == loan.id)
            ).scalar_one_or_none()
            if returned_at is not None:
                raise self._violation(ErrorCode.ALREADY_RETURNED, loan_id=loan.id)
            raise self._violation(
                ErrorCode.INVALID_LOAN_STATUS,
                "Loan was modified by another request, reload and retry",
                loan_id=loan.id,
            )
        session.refresh(loan)

    @staticmethod
    def _detach(session: Session, loan: Loan) -> Loan:
        session.flush()
        session.refresh(loan)
        session.expunge(loan)
        return loan

    def request_loan(self, borrower_id: str, item_id: str) -> Loan:
        """Request to borrow an item.

        The loan starts PENDING. Stock is not touched and no due date is
        set until staff approve it.

        Args:
            borrower_id: Requesting borrower
            item_id: Item to borrow

        Returns:
            Created loan

        Raises:
            LoanError: ACTIVE_LOAN_EXISTS, LOAN_IS_LATE or OUT_OF_STOCK
        """
        now = self._now()
        with self.db.get_session() as session:
            if self._active_loan_exists(session, borrower_id):
                raise self._violation(ErrorCode.ACTIVE_LOAN_EXISTS, borrower_id=borrower_id)

            if self._find_late_loan(session, borrower_id, now) is not None:
                raise self._violation(ErrorCode.LOAN_IS_LATE, borrower_id=borrower_id)

            item = session.get(Item, item_id)
            if item is None or item.stock <= 0:
                raise self._violation(ErrorCode.OUT_OF_STOCK, item_id=item_id)

            loan = Loan(
                borrower_id=borrower_id,
                item_id=item_id,
                status=LoanStatus.PENDING.value,
                requested_at=to_iso(now),
            )
            session.add(loan)
            try:
                session.flush()
            except IntegrityError as e:
                # Another request took the borrower's slot first
                raise self._violation(
                    ErrorCode.ACTIVE_LOAN_EXISTS, borrower_id=borrower_id
                ) from e
            self._detach(session, loan)

        logger.info("loan.requested", loan_id=loan.id, borrower_id=borrower_id, item_id=item_id)
        return loan

    def approve_loan(
        self,
        loan_id: str,
        approver_id: str,
        due_at: Optional[datetime] = None,
    ) -> Loan:
        """Approve a pending loan and take one unit of stock.

        The due date is always ``now + 24h``; it cannot be supplied.

        Args:
            loan_id: Loan ID
            approver_id: Staff member approving
            due_at: Must be None. Present so a forwarded payload is refused.

        Returns:
            Approved loan

        Raises:
            LoanError: DUE_DATE_NOT_ALLOWED, LOAN_NOT_FOUND,
                INVALID_LOAN_STATUS or OUT_OF_STOCK
        """
        if due_at is not None:
            raise self._violation(ErrorCode.DUE_DATE_NOT_ALLOWED, loan_id=loan_id)

        now = self._now()
        with self.db.get_session() as session:
            loan = self._load(session, loan_id)
            self._check_transition(loan, LoanStatus.APPROVED)

            if not ItemManager.decrement_stock(session, loan.item_id):
                raise self._violation(ErrorCode.OUT_OF_STOCK, item_id=loan.item_id)

            self._transition(
                session,
                loan,
                LoanStatus.APPROVED,
                approver_id=approver_id,
                borrowed_at=to_iso(now),
                due_at=to_iso(lifecycle.compute_due_at(now)),
            )
            self._detach(session, loan)

        logger.info(
            "loan.approved",
            loan_id=loan_id,
            approver_id=approver_id,
            item_id=loan.item_id,
            due_at=loan.due_at,
        )
        return loan

    def mark_borrowed(self, loan_id: str, approver_id: str) -> Loan:
        """Record that the borrower picked up an approved item.

        Raises:
            LoanError: LOAN_NOT_FOUND or INVALID_LOAN_STATUS
        """
        with self.db.get_session() as session:
            loan = self._load(session, loan_id)
            self._transition(session, loan, LoanStatus.BORROWED, approver_id=approver_id)
            self._detach(session, loan)

        logger.info("loan.borrowed", loan_id=loan_id, approver_id=approver_id)
        return loan

    def reject_loan(self, loan_id: str, approver_id: str) -> Loan:
        """Reject a pending loan request. Stock is untouched.

        Raises:
            LoanError: LOAN_NOT_FOUND or INVALID_LOAN_STATUS
        """
        with self.db.get_session() as session:
            loan = self._load(session, loan_id)
            self._transition(session, loan, LoanStatus.REJECTED, approver_id=approver_id)
            self._detach(session, loan)

        logger.info("loan.rejected", loan_id=loan_id, approver_id=approver_id)
        return loan

    def request_return(self, loan_id: str, borrower_id: str, note: Optional[str] = None) -> Loan:
        """Borrower announces they have brought the item back.

        Args:
            loan_id: Loan ID
            borrower_id: Borrower making the request; must own the loan
            note: Optional note for staff

        Raises:
            LoanError: LOAN_NOT_FOUND, FORBIDDEN or INVALID_LOAN_STATUS
        """
        with self.db.get_session() as session:
            loan = self._load(session, loan_id)
            if loan.borrower_id != borrower_id:
                raise self._violation(
                    ErrorCode.FORBIDDEN, loan_id=loan_id, borrower_id=borrower_id
                )
            self._transition(session, loan, LoanStatus.RETURN_REQUESTED, return_note=note)
            self._detach(session, loan)

        logger.info("loan.return_requested", loan_id=loan_id, borrower_id=borrower_id)
        return loan

    def confirm_return(
        self,
        loan_id: str,
        approver_id: str,
        condition: ReturnCondition,
        reason: Optional[str] = None,
    ) -> ReturnResult:
        """Confirm that an item came back and record its condition.

        Works from BORROWED or RETURN_REQUESTED. Stock goes back up by one
        only when the condition is GOOD.

        Args:
            loan_id: Loan ID
            approver_id: Staff member confirming
            condition: GOOD, DAMAGED or LOST
            reason: Optional staff note, replaces the borrower's note

        Returns:
            ReturnResult describing lateness, stock effect and punishment

        Raises:
            LoanError: LOAN_NOT_FOUND, ALREADY_RETURNED or INVALID_LOAN_STATUS
        """
        condition = ReturnCondition(condition)
        now = self._now()

        with self.db.get_session() as session:
            loan = self._load(session, loan_id)
            if loan.returned_at is not None:
                raise self._violation(ErrorCode.ALREADY_RETURNED, loan_id=loan_id)

            due_at = from_iso(loan.due_at)
            late = due_at is not None and now > due_at
            hours = lifecycle.late_hours(due_at, now) if late else 0
            note = reason if reason is not None else loan.return_note

            self._transition(
                session,
                loan,
                LoanStatus.RETURNED,
                approver_id=approver_id,
                returned_at=to_iso(now),
                return_condition=condition.value,
                return_note=note,
            )

            stock_incremented = False
            if lifecycle.restores_stock(condition):
                stock_incremented = ItemManager.increment_stock(session, loan.item_id)

            self._detach(session, loan)

        punishment = lifecycle.classify_punishment(late, condition)
        logger.info(
            "loan.returned",
            loan_id=loan_id,
            approver_id=approver_id,
            condition=condition.value,
            late=late,
            late_hours=hours,
            stock_incremented=stock_incremented,
        )
        return ReturnResult(
            loan_id=loan.id,
            status=LoanStatus(loan.status),
            condition=condition,
            returned_at=from_iso(loan.returned_at),
            return_note=loan.return_note,
            is_late=late,
            late_hours=hours,
            stock_incremented=stock_incremented,
            punishment=punishment,
            message=lifecycle.return_message(condition, late, hours),
        )

    # -------------------------------------------------------------------------
    # Queries (lateness recomputed on every call)
    # -------------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get a loan by ID.

        Args:
            loan_id: Loan ID

        Returns:
            Loan or None
        """
        with self.db.get_session() as session:
            loan = session.get(Loan, loan_id)
            if loan:
                session.expunge(loan)
            return loan

    @staticmethod
    def _to_response(loan: Loan, now: datetime) -> LoanResponse:
        return LoanResponse(
            id=loan.id,
            borrower_id=loan.borrower_id,
            item_id=loan.item_id,
            approver_id=loan.approver_id,
            status=LoanStatus(loan.status),
            requested_at=from_iso(loan.requested_at),
            borrowed_at=from_iso(loan.borrowed_at),
            due_at=from_iso(loan.due_at),
            returned_at=from_iso(loan.returned_at),
            return_condition=(
                ReturnCondition(loan.return_condition) if loan.return_condition else None
            ),
            return_note=loan.return_note,
            is_late=loan.is_late_at(now),
            item_name=loan.item.name if loan.item else None,
        )

    def _query(self, stmt) -> list[LoanResponse]:
        now = self._now()
        with self.db.get_session() as session:
            loans = session.execute(stmt.options(selectinload(Loan.item))).scalars().all()
            return [self._to_response(loan, now) for loan in loans]

    def list_pending(self) -> list[LoanResponse]:
        """Loans waiting for staff, oldest request first."""
        return self._query(
            select(Loan)
            .where(Loan.status == LoanStatus.PENDING.value)
            .order_by(Loan.requested_at)
        )

    def list_active(self) -> list[LoanResponse]:
        """Approved and borrowed loans, earliest hand-off first."""
        return self._query(
            select(Loan)
            .where(Loan.status.in_([LoanStatus.APPROVED.value, LoanStatus.BORROWED.value]))
            .order_by(Loan.borrowed_at)
        )

    def list_late(self) -> list[LoanResponse]:
        """Borrowed loans that are past due right now."""
        loans = self._query(
            select(Loan)
            .where(Loan.status == LoanStatus.BORROWED.value)
            .order_by(Loan.due_at)
        )
        return [loan for loan in loans if loan.is_late]

    def list_all(self) -> list[LoanResponse]:
        """Every loan, newest request first."""
        return self._query(select(Loan).order_by(Loan.requested_at.desc()))

    def list_for_borrower(self, borrower_id: str) -> BorrowerLoans:
        """A borrower's loan history with eligibility summary.

        Args:
            borrower_id: Borrower ID

        Returns:
            BorrowerLoans with per-loan lateness and the late loan, if any
        """
        now = self._now()
        with self.db.get_session() as session:
            loans = (
                session.execute(
                    select(Loan)
                    .options(selectinload(Loan.item))
                    .where(Loan.borrower_id == borrower_id)
                    .order_by(Loan.requested_at.desc())
                )
                .scalars()
                .all()
            )
            late_loan = self._find_late_loan(session, borrower_id, now)

            return BorrowerLoans(
                borrower_id=borrower_id,
                has_active_loan=self._active_loan_exists(session, borrower_id),
                has_late_loan=late_loan is not None,
                late_loan=self._late_details(late_loan, now) if late_loan else None,
                loans=[self._to_response(loan, now) for loan in loans],
            )
