"""Tests for categories."""

from datetime import date
from decimal import Decimal

import pytest

from pocketledger.cli.main import cli
from pocketledger.domain.entities import CategoryType, SpendingType, SplitLine
from pocketledger.domain.errors import ConflictError, NotFoundError, ValidationError

DAY = date(2024, 5, 10)


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "--owner", "test-user", *args]
    )


class TestCategoryService:
    """Tests for the category service."""

    def test_create_category(self, category_service, sample_categories):
        food = category_service.get_category("Food")
        assert food.type == CategoryType.EXPENSE
        assert food.group == "Living"
        assert food.spending_type == SpendingType.NEED
        assert category_service.get_category("Transport").order == 1

    def test_same_name_allowed_for_other_type(self, category_service, sample_categories):
        category_service.create_category("Food", "income", "Refunds")
        with pytest.raises(ConflictError, match="Expense category 'Food'"):
            category_service.create_category("Food", "expense", "Living")

    def test_validation(self, category_service):
        with pytest.raises(ValidationError, match="group"):
            category_service.create_category("Food", "expense", "")
        with pytest.raises(ValidationError):
            category_service.create_category("Salary", "income", "Income", spending_type="need")
        with pytest.raises(ValidationError):
            category_service.create_category("Food", "gift", "Living")

    def test_grouped_and_filtered(self, category_service, sample_categories):
        groups = category_service.grouped_categories("expense")
        # Groups appear in order of their first category
        assert [(group, [c.name for c in members]) for group, members in groups] == [
            ("Living", ["Food", "Transport"]),
            ("Leisure", ["Fun"]),
        ]
        assert [c.name for c in category_service.list_categories("income")] == ["Salary"]

    def test_rename_cascades_to_entries_and_split_lines(
        self, category_service, transaction_service, sample_accounts, sample_categories
    ):
        expense = transaction_service.add_expense("Cash", Decimal("5"), "Food", DAY)
        split = transaction_service.add_split(
            "Cash",
            [
                SplitLine(amount=Decimal("3"), category="Food"),
                SplitLine(amount=Decimal("2"), is_loan=True, loan="Food"),
            ],
            DAY,
        )
        income = transaction_service.add_income("Cash", Decimal("1"), "Food", DAY)

        assert category_service.rename_category("Food", "Groceries", "expense") == 2

        assert transaction_service.get_entry(expense).category == "Groceries"
        lines = transaction_service.get_entry(split).splits
        assert (lines[0].category, lines[1].loan) == ("Groceries", "Food")
        assert transaction_service.get_entry(income).category == "Food"
        assert category_service.get_category("Food") is None

    def test_rename_conflict_and_missing(self, category_service, sample_categories):
        with pytest.raises(ConflictError):
            category_service.rename_category("Food", "Fun")
        with pytest.raises(NotFoundError):
            category_service.rename_category("Nope", "Other")

    def test_spending_type(self, category_service, sample_categories):
        category_service.set_spending_type("Food", "want")
        assert category_service.get_category("Food").spending_type == SpendingType.WANT
        category_service.set_spending_type("Food", None)
        assert category_service.get_category("Food").spending_type is None

    def test_groups(self, category_service, sample_categories):
        assert category_service.rename_group("Living", "Essentials") == 2
        assert category_service.get_category("Food").group == "Essentials"
        assert category_service.delete_group("Essentials") == 2
        assert category_service.get_category("Transport") is None
        with pytest.raises(NotFoundError):
            category_service.delete_group("Essentials")

    def test_delete_and_reorder(self, category_service, sample_categories):
        category_service.reorder_categories(["Transport", "Food"])
        assert category_service.get_category("Transport").order == 0
        category_service.delete_category("Fun")
        assert category_service.get_category("Fun") is None

    def test_monthly_totals(
        self, category_service, transaction_service, sample_accounts, sample_categories
    ):
        transaction_service.add_expense("Cash", Decimal("100"), "Food", date(2024, 5, 2))
        transaction_service.add_expense("Cash", Decimal("999"), "Food", date(2024, 4, 30))
        transaction_service.add_split(
            "Cash",
            [
                SplitLine(amount=Decimal("50"), category="Food"),
                SplitLine(amount=Decimal("25"), category="Transport"),
                SplitLine(amount=Decimal("25"), is_loan=True, loan="Alice"),
            ],
            date(2024, 5, 31),
        )
        transaction_service.add_income("Bank", Decimal("3000"), "Salary", date(2024, 5, 15))

        assert category_service.monthly_totals(2024, 5) == {
            "Food": Decimal("-150"),
            "Transport": Decimal("-25"),
            "Salary": Decimal("3000"),
        }


def test_init_categories(cli_runner, temp_db):
    """Test initializing categories."""
    result = _invoke(cli_runner, temp_db, "init-categories")

    assert result.exit_code == 0
    assert "Created" in result.output
    assert "categories" in result.output


def test_init_categories_duplicate(cli_runner, temp_db):
    """Test initializing categories twice."""
    assert _invoke(cli_runner, temp_db, "init-categories").exit_code == 0

    result = _invoke(cli_runner, temp_db, "init-categories")

    assert "already exist" in result.output.lower()


def test_category_list(cli_runner, temp_db, sample_categories):
    """Test listing categories."""
    result = _invoke(cli_runner, temp_db, "category", "list")

    assert result.exit_code == 0
    assert "Living" in result.output
    assert "Food (expense) [need]" in result.output


def test_category_create_duplicate(cli_runner, temp_db, sample_categories):
    result = _invoke(cli_runner, temp_db, "category", "create", "Food", "--group", "Living")

    assert result.exit_code == 1
    assert "already exists" in result.output
