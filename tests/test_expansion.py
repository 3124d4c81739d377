"""Tests for split expansion and derived loans."""

from datetime import UTC, date, datetime
from decimal import Decimal

from pocketledger.domain.entities import (
    CategoryType,
    ExpenseEntry,
    IncomeEntry,
    LoanEntry,
    LoanType,
    SplitEntry,
    SplitLine,
    TransferEntry,
)
from pocketledger.domain.expansion import (
    build_loans,
    category_lines,
    category_totals,
    is_split_part_id,
    loan_lines,
    split_category_lines,
    split_part_id,
)
from pocketledger.domain.ledger import contribution_to_account

DAY = date(2024, 5, 10)


def _split(total, lines, split_type=CategoryType.EXPENSE, entry_id="s1"):
    return SplitEntry(
        id=entry_id,
        total_amount=Decimal(total),
        split_type=split_type,
        account="Cash",
        payee="Market",
        splits=tuple(lines),
        date=DAY,
        created_at=datetime(2024, 5, 10, 9, tzinfo=UTC),
    )


def _loan(amount, loan="Alice", loan_type=LoanType.BORROW, entry_id=None, day=DAY):
    return LoanEntry(
        id=entry_id, amount=Decimal(amount), loan=loan, loan_type=loan_type, account="Cash", date=day
    )


class TestSplitCategoryLines:
    """Tests for flattening split entries into category lines."""

    def test_lines_are_signed_like_the_total(self):
        split = _split(
            "-300000",
            [
                SplitLine(amount=Decimal("100000"), category="Food"),
                SplitLine(amount=Decimal("200000"), category="Transport"),
            ],
        )
        lines = split_category_lines(split)
        assert [(line.category, line.signed_amount) for line in lines] == [
            ("Food", Decimal("-100000")),
            ("Transport", Decimal("-200000")),
        ]
        assert all(line.is_split_part for line in lines)

    def test_lines_add_up_to_the_total(self):
        split = _split(
            "-100.03",
            [
                SplitLine(amount=Decimal("33.01"), category="Food"),
                SplitLine(amount=Decimal("33.01"), category="Fun"),
                SplitLine(amount=Decimal("34.01"), category="Transport"),
            ],
        )
        assert sum(line.signed_amount for line in split_category_lines(split)) == split.total_amount
        assert contribution_to_account(split, "Cash") == split.total_amount

    def test_income_split_lines_are_positive(self):
        split = _split(
            "500",
            [SplitLine(amount=Decimal("500"), category="Salary")],
            split_type=CategoryType.INCOME,
        )
        assert split_category_lines(split)[0].signed_amount == Decimal("500")

    def test_loan_and_malformed_lines_are_skipped(self):
        split = _split(
            "-300",
            [
                SplitLine(amount=Decimal("100"), category="Food"),
                SplitLine(amount=Decimal("100"), is_loan=True, loan="Alice"),
                SplitLine(amount=Decimal("100")),
            ],
        )
        assert [line.category for line in split_category_lines(split)] == ["Food"]


def test_category_lines_skip_uncategorized_entries():
    entries = [
        ExpenseEntry(id="e1", amount=Decimal("-20"), account="Cash", category="Food", date=DAY),
        ExpenseEntry(id="e2", amount=Decimal("-5"), account="Cash", date=DAY),
        IncomeEntry(id="i1", amount=Decimal("90"), account="Cash", category="Salary", date=DAY),
        TransferEntry(amount=Decimal("1"), from_account="Cash", to_account="Bank", date=DAY),
        _split("-10", [SplitLine(amount=Decimal("10"), category="Food")]),
    ]
    totals = category_totals(category_lines(entries))
    assert totals == {"Food": Decimal("-30"), "Salary": Decimal("90")}


class TestLoanLines:
    """Tests for loan rows and pseudo-entries."""

    def test_split_loan_line_becomes_pseudo_entry(self):
        split = _split(
            "-300",
            [
                SplitLine(amount=Decimal("100"), category="Food"),
                SplitLine(amount=Decimal("200"), is_loan=True, loan="Alice"),
            ],
        )
        (line,) = loan_lines([split])
        assert line.id == "s1-split-Alice"
        assert line.amount == Decimal("-200")
        assert line.is_split_part
        assert line.parent_id == "s1"
        assert line.payee == "Market"
        assert is_split_part_id(line.id)

    def test_pseudo_ids(self):
        assert split_part_id("abc", "Bob") == "abc-split-Bob"
        assert not is_split_part_id("abc")
        assert not is_split_part_id(None)

    def test_loan_entries_without_name_are_skipped(self):
        assert loan_lines([_loan("10", loan="")]) == []


class TestBuildLoans:
    """Tests for aggregating loans."""

    def test_borrow_accumulates_paid_back(self):
        loans = build_loans([_loan("1000"), _loan("-300"), _loan("-200")])
        (loan,) = loans
        assert loan.loan_type == LoanType.BORROW
        assert loan.balance == Decimal("500")
        assert loan.paid_back == Decimal("500")
        assert loan.received == 0

    def test_lend_accumulates_received(self):
        loans = build_loans(
            [_loan("-1000", "Bob", LoanType.LEND), _loan("400", "Bob", LoanType.LEND)]
        )
        (loan,) = loans
        assert loan.loan_type == LoanType.LEND
        assert loan.balance == Decimal("-600")
        assert loan.received == Decimal("400")
        assert loan.paid_back == 0

    def test_type_comes_from_first_loan_entry(self):
        loans = build_loans(
            [_loan("-100", "Bob", LoanType.LEND), _loan("50", "Bob", LoanType.BORROW)]
        )
        assert loans[0].loan_type == LoanType.LEND

    def test_split_only_loan_defaults_to_borrow(self):
        split = _split("-50", [SplitLine(amount=Decimal("50"), is_loan=True, loan="Carol")])
        (loan,) = build_loans([split])
        assert loan.loan_type == LoanType.BORROW
        assert loan.balance == Decimal("-50")
        assert loan.paid_back == Decimal("50")

    def test_split_lines_join_direct_entries(self):
        split = _split("-300", [SplitLine(amount=Decimal("300"), is_loan=True, loan="Alice")])
        (loan,) = build_loans([_loan("1000", entry_id="l1"), split])
        assert loan.balance == Decimal("700")
        assert [row.id for row in loan.transactions] == ["l1", "s1-split-Alice"]

    def test_loans_keep_first_appearance_order(self):
        loans = build_loans([_loan("1", "Zed"), _loan("1", "Amy")])
        assert [loan.name for loan in loans] == ["Zed", "Amy"]
