"""Tests for derived loans."""

from datetime import date
from decimal import Decimal

import pytest

from pocketledger.domain.entities import LoanType, SplitLine
from pocketledger.domain.errors import NotFoundError, StateConflictError, ValidationError


def test_add_loan_entry_signs_by_direction(loan_service, transaction_service, sample_accounts):
    incoming = loan_service.add_loan_entry("Alice", "Cash", Decimal("1000"), "in", date(2024, 5, 1))
    outgoing = loan_service.add_loan_entry("Alice", "Cash", Decimal("-300"), "out", date(2024, 5, 2))

    assert transaction_service.get_entry(incoming).amount == Decimal("1000")
    assert transaction_service.get_entry(outgoing).amount == Decimal("-300")


def test_loan_type_is_inherited(loan_service, transaction_service, sample_accounts):
    loan_service.add_loan_entry("Bob", "Cash", Decimal("500"), "out", date(2024, 5, 1), loan_type="lend")
    repayment = loan_service.add_loan_entry("Bob", "Cash", Decimal("200"), "in", date(2024, 5, 5))

    assert transaction_service.get_entry(repayment).loan_type == LoanType.LEND


def test_new_loan_defaults_to_borrow(loan_service, transaction_service, sample_accounts):
    entry_id = loan_service.add_loan_entry("Carol", "Bank", Decimal("10"), "in", date(2024, 5, 1))
    assert transaction_service.get_entry(entry_id).loan_type == LoanType.BORROW


def test_add_loan_entry_validation(loan_service, sample_accounts):
    with pytest.raises(ValidationError):
        loan_service.add_loan_entry("  ", "Cash", Decimal("1"), "in", date(2024, 5, 1))
    with pytest.raises(ValidationError):
        loan_service.add_loan_entry("Alice", "Cash", Decimal("1"), "sideways", date(2024, 5, 1))
    with pytest.raises(ValidationError):
        loan_service.add_loan_entry("Alice", "Cash", Decimal("0"), "in", date(2024, 5, 1))


def test_list_loans(loan_service, transaction_service, sample_accounts):
    loan_service.add_loan_entry("Alice", "Cash", Decimal("1000"), "in", date(2024, 5, 1))
    loan_service.add_loan_entry("Alice", "Cash", Decimal("400"), "out", date(2024, 5, 3))
    loan_service.add_loan_entry("Dave", "Cash", Decimal("2000"), "in", date(2024, 5, 2))
    loan_service.add_loan_entry(
        "Bob", "Bank", Decimal("500"), "out", date(2024, 5, 1), loan_type=LoanType.LEND
    )
    transaction_service.add_split(
        "Cash",
        [
            SplitLine(amount=Decimal("100"), category="Food"),
            SplitLine(amount=Decimal("100"), is_loan=True, loan="Alice"),
        ],
        date(2024, 5, 4),
    )

    overview = loan_service.list_loans()

    assert [(loan.name, loan.balance) for loan in overview.borrowed] == [
        ("Dave", Decimal("2000")),
        ("Alice", Decimal("500")),
    ]
    assert [(loan.name, loan.balance) for loan in overview.lent] == [("Bob", Decimal("-500"))]
    assert overview.total_borrowed == Decimal("2500")
    assert overview.total_lent == Decimal("-500")
    assert overview.borrowed[1].paid_back == Decimal("500")
    assert loan_service.loan_names() == ["Alice", "Dave", "Bob"]


def test_get_loan_rows_newest_first(loan_service, transaction_service, sample_accounts):
    first = loan_service.add_loan_entry("Alice", "Cash", Decimal("1000"), "in", date(2024, 5, 1))
    split = transaction_service.add_split(
        "Cash",
        [SplitLine(amount=Decimal("100"), is_loan=True, loan="Alice")],
        date(2024, 5, 4),
    )

    loan = loan_service.get_loan("Alice")

    assert [row.id for row in loan.transactions] == [f"{split}-split-Alice", first]
    assert loan.transactions[0].is_split_part
    with pytest.raises(StateConflictError):
        transaction_service.delete_entry(loan.transactions[0].id)


def test_get_missing_loan(loan_service, sample_accounts):
    with pytest.raises(NotFoundError):
        loan_service.get_loan("Nobody")
