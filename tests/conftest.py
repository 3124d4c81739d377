"""Shared pytest fixtures for pocketledger tests."""

import os
import tempfile
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from pocketledger.database.factories import create_sqlite_database
from pocketledger.domain.account import AccountService
from pocketledger.domain.category import CategoryService
from pocketledger.domain.loan import LoanService
from pocketledger.domain.reconciliation import ReconciliationService
from pocketledger.domain.summary import SummaryService
from pocketledger.domain.transaction import TransactionService


class FakeClock:
    """Deterministic clock; every reading is one second after the previous one."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def temp_db():
    """Create a temporary document store for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path, owner_id="test-user")
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db, clock):
    return AccountService(temp_db, clock=clock)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db, clock):
    return TransactionService(temp_db, clock=clock)


@pytest.fixture
def reconciliation_service(temp_db, clock):
    return ReconciliationService(temp_db, clock=clock)


@pytest.fixture
def loan_service(temp_db, transaction_service):
    return LoanService(temp_db, transactions=transaction_service)


@pytest.fixture
def summary_service(temp_db):
    return SummaryService(temp_db)


@pytest.fixture
def sample_accounts(account_service):
    """Cash with an opening balance, an empty bank account and a stock account."""
    return {
        "Cash": account_service.create_account("Cash", "cash", starting_balance=Decimal("1000000")),
        "Bank": account_service.create_account("Bank", "bank"),
        "Stocks": account_service.create_account("Stocks", "investment"),
    }


@pytest.fixture
def sample_categories(category_service):
    """A handful of expense and income categories."""
    return {
        "Food": category_service.create_category("Food", "expense", "Living", spending_type="need"),
        "Transport": category_service.create_category(
            "Transport", "expense", "Living", spending_type="need"
        ),
        "Fun": category_service.create_category("Fun", "expense", "Leisure", spending_type="want"),
        "Salary": category_service.create_category("Salary", "income", "Income"),
    }


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
