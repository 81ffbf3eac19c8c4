"""Tests for the CLI interface."""

import pytest
from typer.testing import CliRunner

from schoolloan.cli import app
from schoolloan.items import ItemCreate, ItemManager
from schoolloan.loans import LoanManager, LoanStatus


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def camera(file_db):
    """A camera stored in the CLI's database."""
    return ItemManager(file_db).create_item(ItemCreate(code="CAM-01", name="Camera", category="AV", stock=1))


@pytest.fixture
def loans(file_db):
    """LoanManager on the CLI's database."""
    return LoanManager(file_db)


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        """Test that help command works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Lend school assets" in result.stdout

    def test_version(self, runner: CliRunner, file_db):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestItemCommands:
    """Tests for item commands."""

    def test_add_item(self, runner: CliRunner, file_db):
        """Test adding an item."""
        result = runner.invoke(
            app, ["item", "add", "--code", "TRI-01", "--name", "Tripod", "--stock", "2"]
        )

        assert result.exit_code == 0
        assert "Added:" in result.stdout
        assert [i.name for i in ItemManager(file_db).list_items()] == ["Tripod"]

    def test_add_item_with_condition(self, runner: CliRunner, file_db):
        """Test recording the condition of a new item."""
        result = runner.invoke(
            app,
            ["item", "add", "--code", "MIC-01", "--name", "Microphone", "--condition", "DAMAGED"],
        )

        assert result.exit_code == 0
        item = ItemManager(file_db).list_items()[0]
        assert item.code == "MIC-01"
        assert item.item_condition == "DAMAGED"

    def test_add_duplicate_code(self, runner: CliRunner, camera):
        """Test a reused code is reported as an error."""
        result = runner.invoke(app, ["item", "add", "--code", "CAM-01", "--name", "Camera 2"])

        assert result.exit_code == 1
        assert "ITEM_CODE_EXISTS" in result.stdout

    def test_list_items(self, runner: CliRunner, camera):
        """Test listing items."""
        result = runner.invoke(app, ["item", "list"])

        assert result.exit_code == 0
        assert "Camera" in result.stdout
        assert "CAM-01" in result.stdout

    def test_list_empty(self, runner: CliRunner, file_db):
        """Test listing with no items."""
        result = runner.invoke(app, ["item", "list"])

        assert result.exit_code == 0
        assert "No items found" in result.stdout

    def test_set_stock(self, runner: CliRunner, camera, file_db):
        """Test correcting stock."""
        result = runner.invoke(app, ["item", "stock", camera.id, "4"])

        assert result.exit_code == 0
        assert ItemManager(file_db).get_item(camera.id).stock == 4


class TestLoanCommands:
    """Tests for loan commands."""

    def test_request(self, runner: CliRunner, camera, loans):
        """Test requesting a loan."""
        result = runner.invoke(app, ["loan", "request", "--borrower", "alice", "--item", camera.id])

        assert result.exit_code == 0
        assert "submitted" in result.stdout
        assert loans.has_active_loan("alice")

    def test_request_twice_fails(self, runner: CliRunner, camera, loans):
        """Test a second request reports the error code."""
        loans.request_loan("alice", camera.id)

        result = runner.invoke(app, ["loan", "request", "--borrower", "alice", "--item", camera.id])

        assert result.exit_code == 1
        assert "ACTIVE_LOAN_EXISTS" in result.stdout

    def test_full_cycle(self, runner: CliRunner, camera, loans, file_db):
        """Test approve, borrow, request-return and return."""
        loan = loans.request_loan("alice", camera.id)

        result = runner.invoke(app, ["loan", "approve", loan.id, "--approver", "staff-1"])
        assert result.exit_code == 0
        assert ItemManager(file_db).get_item(camera.id).stock == 0

        result = runner.invoke(app, ["loan", "borrow", loan.id, "--approver", "staff-1"])
        assert result.exit_code == 0

        result = runner.invoke(
            app, ["loan", "request-return", loan.id, "--borrower", "alice", "--note", "desk"]
        )
        assert result.exit_code == 0

        result = runner.invoke(
            app, ["loan", "return", loan.id, "--approver", "staff-1", "--condition", "GOOD"]
        )
        assert result.exit_code == 0
        assert "Punishment: NONE" in result.stdout
        assert loans.get_loan(loan.id).status == LoanStatus.RETURNED.value
        assert ItemManager(file_db).get_item(camera.id).stock == 1

    def test_reject(self, runner: CliRunner, camera, loans):
        """Test rejecting a request."""
        loan = loans.request_loan("alice", camera.id)

        result = runner.invoke(app, ["loan", "reject", loan.id, "--approver", "staff-1"])

        assert result.exit_code == 0
        assert loans.get_loan(loan.id).status == LoanStatus.REJECTED.value

    def test_return_lost(self, runner: CliRunner, camera, loans, file_db):
        """Test a LOST return keeps stock at zero."""
        loan = loans.request_loan("alice", camera.id)
        loans.approve_loan(loan.id, "staff-1")
        loans.mark_borrowed(loan.id, "staff-1")

        result = runner.invoke(
            app, ["loan", "return", loan.id, "--approver", "staff-1", "--condition", "LOST"]
        )

        assert result.exit_code == 0
        assert "Punishment: LOST" in result.stdout
        assert ItemManager(file_db).get_item(camera.id).stock == 0

    def test_unknown_loan(self, runner: CliRunner, file_db):
        """Test approving an unknown loan."""
        result = runner.invoke(app, ["loan", "approve", "missing", "--approver", "staff-1"])

        assert result.exit_code == 1
        assert "LOAN_NOT_FOUND" in result.stdout

    def test_pending_list(self, runner: CliRunner, camera, loans):
        """Test listing pending loans."""
        loans.request_loan("alice", camera.id)

        result = runner.invoke(app, ["loan", "pending"])

        assert result.exit_code == 0
        assert "alice" in result.stdout

    def test_late_list_empty(self, runner: CliRunner, file_db):
        """Test the late list with nothing late."""
        result = runner.invoke(app, ["loan", "late"])

        assert result.exit_code == 0
        assert "No late loans" in result.stdout

    def test_mine(self, runner: CliRunner, camera, loans):
        """Test the borrower summary."""
        loans.request_loan("alice", camera.id)

        result = runner.invoke(app, ["loan", "mine", "--borrower", "alice"])

        assert result.exit_code == 0
        assert "active loan" in result.stdout

    def test_mine_eligible(self, runner: CliRunner, file_db):
        """Test a borrower without loans may request."""
        result = runner.invoke(app, ["loan", "mine", "--borrower", "bob"])

        assert result.exit_code == 0
        assert "can request" in result.stdout
