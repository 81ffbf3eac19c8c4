"""SQLAlchemy models for lendable items.

Tables:
- items: School assets that can be borrowed, with a stock count
"""

from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, now_iso


class Item(Base):
    """Item model - a lendable asset with a stock count."""

    __tablename__ = "items"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_items_stock_non_negative"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    item_condition: Mapped[str] = mapped_column(String(50), nullable=False, default="GOOD")
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)

    # Units currently on the shelf
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso, onupdate=now_iso)

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, code='{self.code}', name='{self.name}', stock={self.stock})>"

    @property
    def is_available(self) -> bool:
        """Check if at least one unit can be lent out."""
        return self.stock > 0
