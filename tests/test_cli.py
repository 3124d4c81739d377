"""Tests for the command-line interface."""

from datetime import date
from decimal import Decimal

import pytest

from pocketledger.cli.main import cli
from pocketledger.domain.entities import ClearStatus, SplitLine


def _invoke(cli_runner, temp_db, *args, **kwargs):
    return cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "--owner", "test-user", *args], **kwargs
    )


def _new_id(output):
    return output.rsplit("(ID: ", 1)[1].split(")", 1)[0]


def test_help_does_not_need_a_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "reconcile" in result.output


class TestAccountCommands:
    """Tests for account commands."""

    def test_create_and_list(self, cli_runner, temp_db):
        result = _invoke(
            cli_runner, temp_db, "account", "create", "Wallet", "--type", "cash", "--starting-balance", "1,000,000"
        )
        assert result.exit_code == 0
        assert "Created account 'Wallet'" in result.output

        result = _invoke(cli_runner, temp_db, "account", "list")
        assert result.exit_code == 0
        assert "SPENDING" in result.output
        assert "Wallet" in result.output
        assert "1,000,000" in result.output

    def test_list_empty(self, cli_runner, temp_db):
        result = _invoke(cli_runner, temp_db, "account", "list")
        assert result.exit_code == 0
        assert "No accounts found." in result.output

    def test_create_duplicate(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(cli_runner, temp_db, "account", "create", "Cash", "--type", "cash")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_show_balances(self, cli_runner, temp_db, transaction_service, sample_accounts):
        transaction_service.add_expense(
            "Cash", Decimal("50000"), "Food", date(2024, 5, 1), clear_status=ClearStatus.CLEARED
        )
        result = _invoke(cli_runner, temp_db, "account", "show", "Cash")
        assert result.exit_code == 0
        assert "Working balance:   950,000" in result.output

    def test_delete_blocked_then_forced(self, cli_runner, temp_db, transaction_service, sample_accounts):
        transaction_service.add_expense("Bank", Decimal("1"), "Food", date(2024, 5, 1))

        result = _invoke(cli_runner, temp_db, "account", "delete", "Bank")
        assert result.exit_code == 1
        assert "Archive it instead" in result.output

        result = _invoke(cli_runner, temp_db, "account", "delete", "Bank", "--force")
        assert result.exit_code == 0
        assert "Deleted account 'Bank'" in result.output

    def test_rename(self, cli_runner, temp_db, transaction_service, sample_accounts):
        entry_id = transaction_service.add_expense("Cash", Decimal("1"), "Food", date(2024, 5, 1))
        result = _invoke(cli_runner, temp_db, "account", "rename", "Cash", "Wallet")
        assert result.exit_code == 0
        assert "1 transaction(s) updated" in result.output
        assert transaction_service.get_entry(entry_id).account == "Wallet"


class TestAddCommands:
    """Tests for recording transactions."""

    def test_add_expense(self, cli_runner, temp_db, transaction_service, sample_accounts):
        result = _invoke(
            cli_runner,
            temp_db,
            "add",
            "expense",
            "--account",
            "Cash",
            "--amount",
            "50,000",
            "--category",
            "Food",
            "--date",
            "2024-05-01",
        )
        assert result.exit_code == 0
        assert "Added expense" in result.output
        entry = transaction_service.get_entry(_new_id(result.output))
        assert entry.amount == Decimal("-50000")
        assert entry.date == date(2024, 5, 1)

    def test_add_expense_unknown_account(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(
            cli_runner, temp_db, "add", "expense", "--account", "Nope", "--amount", "1", "--category", "Food"
        )
        assert result.exit_code == 1
        assert "Account 'Nope' not found" in result.output

    def test_add_invalid_amount(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(
            cli_runner, temp_db, "add", "income", "--account", "Cash", "--amount", "lots", "--category", "Salary"
        )
        assert result.exit_code == 1
        assert "Invalid amount" in result.output

    def test_add_transfer(self, cli_runner, temp_db, account_service, sample_accounts):
        result = _invoke(
            cli_runner, temp_db, "add", "transfer", "--from", "Cash", "--to", "Bank", "--amount", "100000"
        )
        assert result.exit_code == 0
        assert account_service.get_balances("Bank").working_balance == Decimal("100000")

    def test_add_split(self, cli_runner, temp_db, transaction_service, sample_accounts):
        result = _invoke(
            cli_runner,
            temp_db,
            "add",
            "split",
            "--account",
            "Cash",
            "--line",
            "Food=100000",
            "--line",
            "Transport=200000",
            "--loan-line",
            "Alice=50000",
        )
        assert result.exit_code == 0
        assert "3 line(s)" in result.output
        entry = transaction_service.get_entry(_new_id(result.output))
        assert entry.total_amount == Decimal("-350000")

    def test_add_split_lines_must_add_up(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(
            cli_runner, temp_db, "add", "split", "--account", "Cash", "--total", "10", "--line", "Food=5"
        )
        assert result.exit_code == 1
        assert "add up" in result.output

    def test_add_gain_on_cash_rejected(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(cli_runner, temp_db, "add", "gain", "--account", "Cash", "--amount", "10")
        assert result.exit_code == 1
        assert "investment-type" in result.output


class TestTransactionCommands:
    """Tests for listing and editing transactions."""

    def test_list(self, cli_runner, temp_db, transaction_service, sample_accounts):
        transaction_service.add_expense("Cash", Decimal("1"), "Food", date(2024, 5, 1), payee="Bakery")
        transaction_service.add_income("Bank", Decimal("2"), "Salary", date(2024, 4, 1))

        result = _invoke(
            cli_runner, temp_db, "transaction", "list", "--start-date", "2024-05-01", "--end-date", "2024-05-31"
        )

        assert result.exit_code == 0
        assert "2024-05-01" in result.output
        assert "Bakery" in result.output
        assert "Salary" not in result.output

    def test_list_empty(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(cli_runner, temp_db, "transaction", "list")
        assert result.exit_code == 0
        assert "No transactions found." in result.output

    def test_list_rejects_period_with_dates(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(
            cli_runner, temp_db, "transaction", "list", "--period", "this-month", "--start-date", "2024-01-01"
        )
        assert result.exit_code == 1
        assert "cannot be combined" in result.output

    def test_clear_update_delete(self, cli_runner, temp_db, transaction_service, sample_accounts):
        entry_id = transaction_service.add_expense("Cash", Decimal("1"), "Food", date(2024, 5, 1))

        result = _invoke(cli_runner, temp_db, "transaction", "clear", entry_id)
        assert result.exit_code == 0
        assert f"Transaction {entry_id} is now cleared" in result.output

        result = _invoke(cli_runner, temp_db, "transaction", "update", entry_id, "--amount", "7", "--memo", "bread")
        assert result.exit_code == 0
        entry = transaction_service.get_entry(entry_id)
        assert (entry.amount, entry.memo) == (Decimal("-7"), "bread")

        result = _invoke(cli_runner, temp_db, "transaction", "delete", entry_id)
        assert result.exit_code == 0
        assert "Deleted 1 transaction(s)" in result.output
        assert transaction_service.get_entry(entry_id) is None

    def test_duplicate(self, cli_runner, temp_db, transaction_service, sample_accounts):
        entry_id = transaction_service.add_expense("Cash", Decimal("1"), "Food", date(2024, 5, 1))
        result = _invoke(cli_runner, temp_db, "transaction", "duplicate", entry_id, "--date", "2024-06-01")
        assert result.exit_code == 0
        assert "Created 1 transaction(s)" in result.output
        assert len(transaction_service.list_entries()) == 2

    def test_split_part_cannot_be_deleted(self, cli_runner, temp_db, transaction_service, sample_accounts):
        split = transaction_service.add_split(
            "Cash", [SplitLine(amount=Decimal("5"), is_loan=True, loan="Alice")], date(2024, 5, 1)
        )
        result = _invoke(cli_runner, temp_db, "transaction", "update", f"{split}-split-Alice", "--memo", "x")
        assert result.exit_code == 1
        assert "part of a split transaction" in result.output


class TestReconcileCommands:
    """Tests for reconciliation commands."""

    def test_quick_and_undo(self, cli_runner, temp_db, transaction_service, sample_accounts):
        entry_id = transaction_service.add_expense(
            "Cash", Decimal("50000"), "Food", date(2024, 5, 1), clear_status=ClearStatus.CLEARED
        )

        result = _invoke(cli_runner, temp_db, "reconcile", "quick", "Cash")
        assert result.exit_code == 0
        assert transaction_service.get_entry(entry_id).clear_status == ClearStatus.RECONCILED

        result = _invoke(cli_runner, temp_db, "reconcile", "undo", "Cash", "--yes")
        assert result.exit_code == 0
        assert "Unlocked 1 transaction(s) of 'Cash'" in result.output
        assert transaction_service.get_entry(entry_id).clear_status == ClearStatus.CLEARED

    def test_quick_with_nothing_cleared(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(cli_runner, temp_db, "reconcile", "quick", "Cash")
        assert result.exit_code == 0
        assert "No cleared items to reconcile" in result.output

    def test_manual_mismatch_requires_force(self, cli_runner, temp_db, transaction_service, sample_accounts):
        entry_id = transaction_service.add_expense(
            "Cash", Decimal("100000"), "Food", date(2024, 5, 1), clear_status=ClearStatus.CLEARED
        )

        result = _invoke(cli_runner, temp_db, "reconcile", "manual", "Cash", "--statement-balance", "950000")
        assert result.exit_code == 1
        assert "--force" in result.output
        assert transaction_service.get_entry(entry_id).clear_status == ClearStatus.CLEARED

        result = _invoke(
            cli_runner, temp_db, "reconcile", "manual", "Cash", "--statement-balance", "950000", "--force"
        )
        assert result.exit_code == 0
        assert transaction_service.get_entry(entry_id).clear_status == ClearStatus.RECONCILED

    def test_undo_declined(self, cli_runner, temp_db, transaction_service, sample_accounts):
        entry_id = transaction_service.add_expense(
            "Cash", Decimal("1"), "Food", date(2024, 5, 1), clear_status=ClearStatus.CLEARED
        )
        assert _invoke(cli_runner, temp_db, "reconcile", "quick", "Cash").exit_code == 0

        result = _invoke(cli_runner, temp_db, "reconcile", "undo", "Cash", input="n\n")

        assert "Unlock cancelled" in result.output
        assert transaction_service.get_entry(entry_id).clear_status == ClearStatus.RECONCILED

    def test_clear_reconciled_entry_is_refused(
        self, cli_runner, temp_db, transaction_service, sample_accounts
    ):
        entry_id = transaction_service.add_expense(
            "Cash", Decimal("1"), "Food", date(2024, 5, 1), clear_status=ClearStatus.CLEARED
        )
        _invoke(cli_runner, temp_db, "reconcile", "quick", "Cash")

        result = _invoke(cli_runner, temp_db, "transaction", "clear", entry_id)

        assert result.exit_code == 1
        assert "locked" in result.output


class TestLoanCommands:
    """Tests for loan commands."""

    def test_add_and_list(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(
            cli_runner, temp_db, "loan", "add", "Alice", "--account", "Cash", "--amount", "1000", "--direction", "in"
        )
        assert result.exit_code == 0
        assert "Added loan transaction" in result.output

        result = _invoke(cli_runner, temp_db, "loan", "list")
        assert result.exit_code == 0
        assert "Alice" in result.output
        assert "Borrowed (1,000)" in result.output

    def test_show_missing(self, cli_runner, temp_db, sample_accounts):
        result = _invoke(cli_runner, temp_db, "loan", "show", "Nobody")
        assert result.exit_code == 1
        assert "Loan 'Nobody' not found" in result.output


@pytest.mark.parametrize("level", ["DEBUG", "error"])
def test_log_level_option(cli_runner, temp_db, level):
    result = _invoke(cli_runner, temp_db, "--log-level", level, "account", "list")
    assert result.exit_code == 0
