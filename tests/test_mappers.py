"""Tests for database mappers."""

from datetime import UTC, date, datetime
from decimal import Decimal

from pocketledger.database.base import ACCOUNTS, TRANSACTIONS
from pocketledger.database.mappers import (
    UNDATED,
    account_to_document,
    account_to_domain,
    category_to_domain,
    encode_value,
    entry_to_document,
    entry_to_domain,
    load_snapshot,
)
from pocketledger.domain.entities import (
    Account,
    AccountGroup,
    AccountType,
    CategoryType,
    ClearStatus,
    ExpenseEntry,
    LoanType,
    SpendingType,
    SplitEntry,
    SplitLine,
    TransferEntry,
    ValueUpdate,
)


class TestEncodeValue:
    """Tests for JSON encoding of stored values."""

    def test_encodes_nested_values(self):
        encoded = encode_value(
            {
                "amount": Decimal("-1.50"),
                "status": ClearStatus.CLEARED,
                "at": datetime(2024, 5, 1, 12, tzinfo=UTC),
                "day": date(2024, 5, 1),
                "lines": [{"amount": Decimal("2")}],
            }
        )
        assert encoded == {
            "amount": "-1.50",
            "status": "cleared",
            "at": "2024-05-01T12:00:00+00:00",
            "day": "2024-05-01",
            "lines": [{"amount": "2"}],
        }


class TestAccountMapper:
    """Tests for account mapping."""

    def test_minimal_document_gets_defaults(self):
        account = account_to_domain({"id": "a1", "name": "Stocks", "type": "investment"})
        assert account.group == AccountGroup.INVESTMENTS
        assert account.is_active is True
        assert account.starting_balance == Decimal("0")
        assert account.last_reconcile_date is None
        assert account.value_history == ()

    def test_lenient_fields(self):
        account = account_to_domain(
            {
                "id": "a1",
                "name": "Cash",
                "type": "spaceship",
                "startingBalance": "oops",
                "order": "2",
                "createdAt": {"seconds": 1714564800, "nanoseconds": 0},
                "valueHistory": [{"value": 5, "timestamp": "2024-05-01T00:00:00Z"}, "junk"],
            }
        )
        assert account.type == AccountType.CASH
        assert account.starting_balance == Decimal("0")
        assert account.order == 2
        assert account.created_at == datetime(2024, 5, 1, 12, tzinfo=UTC)
        assert account.value_history == (
            ValueUpdate(value=Decimal("5"), timestamp=datetime(2024, 5, 1, tzinfo=UTC)),
        )

    def test_document_round_trip(self):
        account = Account(
            id=None,
            name="Stocks",
            type=AccountType.INVESTMENT,
            group=AccountGroup.INVESTMENTS,
            starting_balance=Decimal("100"),
            starting_balance_date=datetime(2024, 1, 1, tzinfo=UTC),
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
            order=0,
            value_history=(
                ValueUpdate(
                    value=Decimal("150"),
                    timestamp=datetime(2024, 2, 1, tzinfo=UTC),
                    previous_value=Decimal("100"),
                    clear_status=ClearStatus.CLEARED,
                ),
            ),
        )
        document = account_to_document(account)
        assert document["valueHistory"][0]["date"] == "2024-02-01"
        assert account_to_domain(document) == account


def test_category_spending_type_only_for_expenses():
    expense = category_to_domain({"id": "c1", "name": "Food", "type": "expense", "spendingType": "need"})
    income = category_to_domain({"id": "c2", "name": "Salary", "type": "income", "spendingType": "need"})
    assert expense.spending_type == SpendingType.NEED
    assert income.type == CategoryType.INCOME
    assert income.spending_type is None


class TestEntryMapper:
    """Tests for transaction mapping."""

    def test_unknown_type_is_ignored(self):
        assert entry_to_domain({"id": "t1", "type": "dividend"}) is None

    def test_missing_date_and_bad_amount(self):
        entry = entry_to_domain({"id": "t1", "type": "expense", "amount": "x", "account": "Cash"})
        assert entry.date == UNDATED
        assert entry.amount == Decimal("0")
        assert entry.clear_status == ClearStatus.UNCLEARED

    def test_transfer_amount_is_unsigned(self):
        entry = entry_to_domain(
            {
                "type": "transfer",
                "amount": -100,
                "fromAccount": "Cash",
                "toAccount": "Bank",
                "date": "2024-05-01",
            }
        )
        assert isinstance(entry, TransferEntry)
        assert entry.amount == Decimal("100")

    def test_split_total_falls_back_to_amount(self):
        entry = entry_to_domain(
            {
                "type": "split",
                "amount": -300,
                "account": "Cash",
                "date": "2024-05-01",
                "splits": [
                    {"amount": 100, "category": "Food"},
                    {"amount": 200, "isLoan": True, "loan": "Alice"},
                ],
            }
        )
        assert isinstance(entry, SplitEntry)
        assert entry.total_amount == Decimal("-300")
        assert entry.split_type == CategoryType.EXPENSE
        assert entry.splits[1] == SplitLine(amount=Decimal("200"), is_loan=True, loan="Alice")

    def test_loan_type_defaults_to_borrow(self):
        entry = entry_to_domain({"type": "loan", "amount": 5, "loan": "Bob", "account": "Cash"})
        assert entry.loan_type == LoanType.BORROW

    def test_split_document_mirrors_total(self):
        entry = SplitEntry(
            total_amount=Decimal("-10"),
            split_type=CategoryType.EXPENSE,
            account="Cash",
            splits=(SplitLine(amount=Decimal("10"), category="Food"),),
            date=date(2024, 5, 1),
        )
        document = entry_to_document(entry)
        assert document["totalAmount"] == document["amount"] == "-10"
        assert document["type"] == "split"
        assert entry_to_domain(document) == entry

    def test_expense_round_trip(self):
        entry = ExpenseEntry(
            id=None,
            amount=Decimal("-42.50"),
            account="Cash",
            category="Food",
            payee="Bakery",
            date=date(2024, 5, 1),
            created_at=datetime(2024, 5, 1, 9, tzinfo=UTC),
            clear_status=ClearStatus.RECONCILED,
            reconciled_at=datetime(2024, 5, 2, tzinfo=UTC),
            reconcile_session_id="abc",
        )
        assert entry_to_domain(entry_to_document(entry)) == entry


def test_load_snapshot_skips_unknown_entries(temp_db):
    temp_db.create_document(ACCOUNTS, {"name": "Cash", "type": "cash"})
    temp_db.create_document(TRANSACTIONS, {"type": "expense", "amount": "-5", "account": "Cash"})
    temp_db.create_document(TRANSACTIONS, {"type": "mystery"})

    snapshot = load_snapshot(temp_db)
    assert [acc.name for acc in snapshot.accounts] == ["Cash"]
    assert len(snapshot.entries) == 1
