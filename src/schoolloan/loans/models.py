"""SQLAlchemy models for school asset loans.

Tables:
- loans: One borrowing transaction per row
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, now_iso
from ..items.models import Item
from ..utils import from_iso, utc_now
from . import lifecycle
from .lifecycle import ACTIVE_STATUSES
from .schemas import LoanStatus

_ACTIVE_SQL = "status IN ({})".format(
    ", ".join(f"'{status.value}'" for status in sorted(ACTIVE_STATUSES, key=lambda s: s.value))
)


class Loan(Base):
    """Loan model - tracks one item lent to one borrower."""

    __tablename__ = "loans"
    __table_args__ = (
        # At most one active loan per borrower, enforced by the database too
        Index(
            "uq_loans_one_active_per_borrower",
            "borrower_id",
            unique=True,
            sqlite_where=text(_ACTIVE_SQL),
            postgresql_where=text(_ACTIVE_SQL),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    borrower_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("items.id"),
        nullable=False,
        index=True,
    )
    approver_id: Mapped[Optional[str]] = mapped_column(String(36))

    status: Mapped[str] = mapped_column(
        String(20), default=LoanStatus.PENDING.value, nullable=False, index=True
    )

    # Dates (UTC ISO strings)
    requested_at: Mapped[str] = mapped_column(String(32), nullable=False, default=now_iso)
    borrowed_at: Mapped[Optional[str]] = mapped_column(String(32))
    due_at: Mapped[Optional[str]] = mapped_column(String(32), index=True)
    returned_at: Mapped[Optional[str]] = mapped_column(String(32))

    # Return outcome
    return_condition: Mapped[Optional[str]] = mapped_column(String(20))
    return_note: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso, onupdate=now_iso)

    # Relationships
    item: Mapped["Item"] = relationship("Item")

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, borrower_id={self.borrower_id}, status={self.status})>"

    @property
    def loan_status(self) -> LoanStatus:
        return LoanStatus(self.status)

    @property
    def is_active(self) -> bool:
        """Check if the loan occupies the borrower's single loan slot."""
        return self.loan_status in ACTIVE_STATUSES and self.returned_at is None

    def is_late_at(self, now: datetime) -> bool:
        """Lateness at a given instant."""
        return lifecycle.is_late(from_iso(self.due_at), from_iso(self.returned_at), now)

    @property
    def is_late(self) -> bool:
        """Lateness right now. Computed on every access, never stored."""
        return self.is_late_at(utc_now())
