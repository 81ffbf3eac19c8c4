"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the schoolloan application,
including in-memory databases, a controllable clock and sample items.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from schoolloan.config import reset_config
from schoolloan.db.sqlite import Database, reset_db
from schoolloan.items import ItemCreate, ItemManager
from schoolloan.loans import LoanManager


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """A fixed clock starting at 2025-03-03 08:00 UTC."""
    return FakeClock(datetime(2025, 3, 3, 8, 0, 0, tzinfo=timezone.utc))


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def file_db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed database registered through the environment."""
    reset_db()
    reset_config()
    os.environ["SCHOOLLOAN_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    database.engine.dispose()
    reset_db()
    reset_config()
    if "SCHOOLLOAN_DB_PATH" in os.environ:
        del os.environ["SCHOOLLOAN_DB_PATH"]


@pytest.fixture
def item_manager(db: Database) -> ItemManager:
    """Create an ItemManager with test database."""
    return ItemManager(db)


@pytest.fixture
def loan_manager(db: Database, clock: FakeClock) -> LoanManager:
    """Create a LoanManager with test database and fixed clock."""
    return LoanManager(db, clock=clock)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def projector(item_manager: ItemManager):
    """A single projector on the shelf."""
    return item_manager.create_item(
        ItemCreate(code="AV-001", name="Projector", category="AV", location="Room 101", stock=1)
    )


@pytest.fixture
def laptops(item_manager: ItemManager):
    """Five laptops on the shelf."""
    return item_manager.create_item(
        ItemCreate(code="IT-001", name="Laptop", category="IT", location="Library", stock=5)
    )


@pytest.fixture
def borrowed_loan(loan_manager: LoanManager, laptops):
    """A loan that has been approved and handed over to borrower 'alice'."""
    loan = loan_manager.request_loan("alice", laptops.id)
    loan_manager.approve_loan(loan.id, "staff-1")
    return loan_manager.mark_borrowed(loan.id, "staff-1")
