"""Tests for ItemManager."""

import pytest
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from schoolloan.errors import ErrorCode, LoanError
from schoolloan.items import ItemCreate, ItemManager, ItemResponse, ItemUpdate
from schoolloan.items.models import Item


class TestCatalogue:
    """Tests for item CRUD."""

    def test_create_item(self, item_manager):
        """Test creating an item."""
        item = item_manager.create_item(
            ItemCreate(
                code="SCI-014",
                name="Microscope",
                item_condition="GOOD",
                category="Science",
                location="Lab 2",
                description="Compound microscope",
                stock=3,
            )
        )

        assert item.id is not None
        assert item.code == "SCI-014"
        assert item.name == "Microscope"
        assert item.item_condition == "GOOD"
        assert item.category == "Science"
        assert item.location == "Lab 2"
        assert item.stock == 3
        assert item.is_available is True

    def test_create_minimal(self, item_manager):
        """Test creating an item with only a code and a name."""
        item = item_manager.create_item(ItemCreate(code="WB-01", name="Whiteboard"))

        assert item.stock == 0
        assert item.is_available is False
        assert item.category is None
        assert item.item_condition == "GOOD"

    def test_negative_stock_rejected_by_schema(self):
        """Test the schema refuses negative stock."""
        with pytest.raises(ValidationError):
            ItemCreate(code="BRK-01", name="Broken", stock=-1)

    def test_code_required(self):
        """Test the schema refuses an item without a code."""
        with pytest.raises(ValidationError):
            ItemCreate(name="Nameless")
        with pytest.raises(ValidationError):
            ItemCreate(code="", name="Blank code")

    def test_duplicate_code_rejected(self, item_manager, laptops):
        """Test a second item cannot reuse a code."""
        with pytest.raises(LoanError) as exc_info:
            item_manager.create_item(ItemCreate(code="IT-001", name="Another laptop", stock=1))

        assert exc_info.value.code == ErrorCode.ITEM_CODE_EXISTS
        assert [i.name for i in item_manager.list_items()] == ["Laptop"]

    def test_database_enforces_unique_code(self, db, laptops):
        """Test the unique constraint backs the code check."""
        with pytest.raises(IntegrityError):
            with db.get_session() as session:
                session.add(Item(code="IT-001", name="Shadow laptop", stock=1))
                session.flush()

    def test_get_item(self, item_manager, laptops):
        """Test getting an item by ID."""
        item = item_manager.get_item(laptops.id)

        assert item is not None
        assert item.name == "Laptop"

    def test_get_item_not_found(self, item_manager):
        """Test getting a non-existent item."""
        assert item_manager.get_item("non-existent-id") is None

    def test_list_items(self, item_manager):
        """Test items are listed by name."""
        for name in ["Tripod", "Camera", "Microphone"]:
            item_manager.create_item(ItemCreate(code=name.upper(), name=name, stock=1))

        names = [item.name for item in item_manager.list_items()]
        assert names == ["Camera", "Microphone", "Tripod"]

    def test_list_filters(self, item_manager):
        """Test category and availability filters."""
        item_manager.create_item(ItemCreate(code="CAM-01", name="Camera", category="AV", stock=0))
        item_manager.create_item(ItemCreate(code="SPK-01", name="Speaker", category="AV", stock=2))
        item_manager.create_item(ItemCreate(code="RTR-01", name="Router", category="IT", stock=1))

        assert [i.name for i in item_manager.list_items(category="av")] == ["Camera", "Speaker"]
        assert [i.name for i in item_manager.list_items(available_only=True)] == [
            "Router",
            "Speaker",
        ]

    def test_update_item(self, item_manager, laptops):
        """Test updating descriptive fields leaves stock alone."""
        updated = item_manager.update_item(laptops.id, ItemUpdate(location="IT Office"))

        assert updated.location == "IT Office"
        assert updated.name == "Laptop"
        assert updated.stock == 5

    def test_update_condition_and_code(self, item_manager, laptops):
        """Test recording wear and recoding an item."""
        updated = item_manager.update_item(
            laptops.id, ItemUpdate(code="IT-001A", item_condition="DAMAGED")
        )

        assert updated.code == "IT-001A"
        assert updated.item_condition == "DAMAGED"

    def test_update_keeps_own_code(self, item_manager, laptops):
        """Test resubmitting an item's own code is not a conflict."""
        updated = item_manager.update_item(laptops.id, ItemUpdate(code="IT-001", name="Laptop 14"))

        assert updated.code == "IT-001"
        assert updated.name == "Laptop 14"

    def test_update_to_taken_code(self, item_manager, laptops, projector):
        """Test an update cannot take another item's code."""
        with pytest.raises(LoanError) as exc_info:
            item_manager.update_item(laptops.id, ItemUpdate(code=projector.code))

        assert exc_info.value.code == ErrorCode.ITEM_CODE_EXISTS
        assert item_manager.get_item(laptops.id).code == "IT-001"

    def test_update_not_found(self, item_manager):
        """Test updating a non-existent item."""
        assert item_manager.update_item("missing", ItemUpdate(name="X")) is None

    def test_set_stock(self, item_manager, laptops):
        """Test a stocktake correction."""
        item = item_manager.set_stock(laptops.id, 2)

        assert item.stock == 2
        assert item_manager.get_item(laptops.id).stock == 2

    def test_set_stock_negative(self, item_manager, laptops):
        """Test negative stock is refused."""
        with pytest.raises(ValueError):
            item_manager.set_stock(laptops.id, -1)

    def test_set_stock_missing(self, item_manager):
        """Test setting stock on a missing item."""
        with pytest.raises(LoanError) as exc_info:
            item_manager.set_stock("missing", 1)

        assert exc_info.value.code == ErrorCode.ITEM_NOT_FOUND

    def test_delete_item(self, item_manager, laptops):
        """Test deleting an item that was never lent."""
        assert item_manager.delete_item(laptops.id) is True
        assert item_manager.get_item(laptops.id) is None

    def test_delete_not_found(self, item_manager):
        """Test deleting a non-existent item."""
        assert item_manager.delete_item("missing") is False

    def test_delete_with_loans(self, item_manager, loan_manager, laptops):
        """Test an item with loan history cannot be deleted."""
        loan_manager.request_loan("alice", laptops.id)

        with pytest.raises(LoanError) as exc_info:
            item_manager.delete_item(laptops.id)

        assert exc_info.value.code == ErrorCode.ITEM_IN_USE
        assert item_manager.get_item(laptops.id) is not None

    def test_response_schema(self, laptops):
        """Test the response schema reads from the ORM object."""
        response = ItemResponse.model_validate(laptops)

        assert response.id == laptops.id
        assert response.code == "IT-001"
        assert response.stock == 5
        assert response.is_available is True


class TestStockMutations:
    """Tests for conditional stock updates."""

    def test_decrement(self, db, item_manager, projector):
        """Test taking the last unit, then failing on an empty shelf."""
        with db.get_session() as session:
            assert ItemManager.decrement_stock(session, projector.id) is True
            assert ItemManager.decrement_stock(session, projector.id) is False

        assert item_manager.get_item(projector.id).stock == 0

    def test_decrement_missing(self, db):
        """Test decrementing a missing item reports failure."""
        with db.get_session() as session:
            assert ItemManager.decrement_stock(session, "missing") is False

    def test_increment(self, db, item_manager, projector):
        """Test putting a unit back."""
        with db.get_session() as session:
            assert ItemManager.increment_stock(session, projector.id) is True

        assert item_manager.get_item(projector.id).stock == 2

    def test_rollback_undoes_decrement(self, db, item_manager, projector):
        """Test a failing transaction leaves stock unchanged."""
        with pytest.raises(RuntimeError):
            with db.get_session() as session:
                ItemManager.decrement_stock(session, projector.id)
                raise RuntimeError("boom")

        assert item_manager.get_item(projector.id).stock == 1

    def test_database_refuses_negative_stock(self, db, projector):
        """Test the check constraint keeps stock non-negative."""
        with pytest.raises(IntegrityError):
            with db.get_session() as session:
                session.execute(update(Item).where(Item.id == projector.id).values(stock=-1))
