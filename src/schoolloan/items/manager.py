"""Item manager for the lendable asset catalogue."""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import now_iso
from ..db.sqlite import Database, get_db
from ..errors import ErrorCode, LoanError
from ..log import get_logger
from .models import Item
from .schemas import ItemCreate, ItemUpdate

logger = get_logger()


class ItemManager:
    """Manages the item catalogue and its stock counts."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize item manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    # -------------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------------

    @staticmethod
    def _code_taken(session: Session, code: str, exclude_id: Optional[str] = None) -> bool:
        stmt = select(Item.id).where(Item.code == code)
        if exclude_id:
            stmt = stmt.where(Item.id != exclude_id)
        return session.execute(stmt.limit(1)).first() is not None

    @staticmethod
    def _flush_unique(session: Session, code: str) -> None:
        try:
            session.flush()
        except IntegrityError as e:
            # Another request registered the same code first
            raise LoanError(ErrorCode.ITEM_CODE_EXISTS, code=code) from e

    def create_item(self, data: ItemCreate) -> Item:
        """Create a new item.

        Args:
            data: Item creation data

        Returns:
            Created item

        Raises:
            LoanError: ITEM_CODE_EXISTS if the code is already registered
        """
        with self.db.get_session() as session:
            if self._code_taken(session, data.code):
                raise LoanError(ErrorCode.ITEM_CODE_EXISTS, code=data.code)

            item = Item(
                code=data.code,
                name=data.name,
                item_condition=data.item_condition,
                category=data.category,
                location=data.location,
                description=data.description,
                stock=data.stock,
            )
            session.add(item)
            self._flush_unique(session, data.code)
            session.refresh(item)
            session.expunge(item)

        logger.info("item.created", item_id=item.id, code=item.code, stock=item.stock)
        return item

    def get_item(self, item_id: str) -> Optional[Item]:
        """Get an item by ID.

        Args:
            item_id: Item ID

        Returns:
            Item or None
        """
        with self.db.get_session() as session:
            item = session.get(Item, item_id)
            if item:
                session.expunge(item)
            return item

    def list_items(
        self,
        category: Optional[str] = None,
        available_only: bool = False,
    ) -> list[Item]:
        """List items ordered by name.

        Args:
            category: Filter by category (case-insensitive)
            available_only: Only return items with stock left

        Returns:
            List of items
        """
        with self.db.get_session() as session:
            stmt = select(Item).order_by(Item.name)

            if category:
                stmt = stmt.where(func.lower(Item.category) == category.lower())
            if available_only:
                stmt = stmt.where(Item.stock > 0)

            items = session.execute(stmt).scalars().all()
            for item in items:
                session.expunge(item)
            return list(items)

    def update_item(self, item_id: str, data: ItemUpdate) -> Optional[Item]:
        """Update descriptive fields of an item.

        Args:
            item_id: Item ID
            data: Update data

        Returns:
            Updated item or None

        Raises:
            LoanError: ITEM_CODE_EXISTS if the new code belongs to another item
        """
        with self.db.get_session() as session:
            item = session.get(Item, item_id)
            if not item:
                return None

            changes = data.model_dump(exclude_unset=True)
            if changes.get("code") and self._code_taken(session, changes["code"], item_id):
                raise LoanError(ErrorCode.ITEM_CODE_EXISTS, code=changes["code"])

            for field, value in changes.items():
                setattr(item, field, value)

            self._flush_unique(session, item.code)
            session.refresh(item)
            session.expunge(item)
            return item

    def set_stock(self, item_id: str, stock: int) -> Item:
        """Overwrite the stock count, e.g. after a stocktake.

        Raises:
            ValueError: If stock is negative
            LoanError: ITEM_NOT_FOUND
        """
        if stock < 0:
            raise ValueError("stock must be >= 0")

        with self.db.get_session() as session:
            item = session.get(Item, item_id)
            if not item:
                raise LoanError(ErrorCode.ITEM_NOT_FOUND, item_id=item_id)
            previous = item.stock
            item.stock = stock
            session.flush()
            session.refresh(item)
            session.expunge(item)

        logger.info("item.stock_set", item_id=item_id, previous=previous, stock=stock)
        return item

    def delete_item(self, item_id: str) -> bool:
        """Delete an item that has never been lent.

        Args:
            item_id: Item ID

        Returns:
            True if deleted, False if not found

        Raises:
            LoanError: ITEM_IN_USE when loans reference the item
        """
        from ..loans.models import Loan

        with self.db.get_session() as session:
            item = session.get(Item, item_id)
            if not item:
                return False

            loan_count = session.execute(
                select(func.count()).select_from(Loan).where(Loan.item_id == item_id)
            ).scalar() or 0
            if loan_count:
                raise LoanError(ErrorCode.ITEM_IN_USE, item_id=item_id, loans=loan_count)

            session.delete(item)

        logger.info("item.deleted", item_id=item_id)
        return True

    # -------------------------------------------------------------------------
    # Stock mutations (run inside the caller's transaction)
    # -------------------------------------------------------------------------

    @staticmethod
    def decrement_stock(session: Session, item_id: str) -> bool:
        """Take one unit off the shelf if any is left.

        The availability check and the decrement are one conditional
        UPDATE, so concurrent callers can never drive stock below zero.

        Returns:
            True if a unit was taken, False if the item is missing or empty
        """
        result = session.execute(
            update(Item)
            .where(Item.id == item_id, Item.stock > 0)
            .values(stock=Item.stock - 1, updated_at=now_iso())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def increment_stock(session: Session, item_id: str) -> bool:
        """Put one unit back on the shelf.

        Returns:
            True if the item exists and was updated
        """
        result = session.execute(
            update(Item)
            .where(Item.id == item_id)
            .values(stock=Item.stock + 1, updated_at=now_iso())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
