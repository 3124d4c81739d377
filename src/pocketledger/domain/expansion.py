"""Expansion of compound entries into category and loan lines.

Split entries are flattened into one signed line per split row; split rows
flagged as loans become read-only pseudo-entries in the loan views. Loans
themselves are never stored: they are rebuilt from the entry set on demand.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pocketledger.domain.entities import (
    CategoryLine,
    Entry,
    ExpenseEntry,
    IncomeEntry,
    Loan,
    LoanEntry,
    LoanLine,
    LoanType,
    SplitEntry,
)
from pocketledger.domain.ledger import ZERO, signed_line_amount
from pocketledger.utils.amount_parser import coerce_decimal

SPLIT_PART_MARKER = "-split-"


def split_part_id(parent_id: Optional[str], loan_name: str) -> str:
    """Identifier of the pseudo-entry derived from a split loan line."""
    return f"{parent_id}{SPLIT_PART_MARKER}{loan_name}"


def is_split_part_id(entry_id: str) -> bool:
    return SPLIT_PART_MARKER in (entry_id or "")


def split_category_lines(entry: SplitEntry) -> list[CategoryLine]:
    """Category lines of a split entry; loan and malformed lines are skipped."""
    lines = []
    for line in entry.splits:
        if line.is_loan or not line.is_well_formed:
            continue
        lines.append(
            CategoryLine(
                category=line.category,
                signed_amount=signed_line_amount(entry, line),
                date=entry.date,
                account=entry.account,
                memo=line.memo or entry.memo,
                entry_id=entry.id,
                is_split_part=True,
            )
        )
    return lines


def category_lines(entries: Iterable[Entry]) -> list[CategoryLine]:
    """Flatten expense, income and split entries into category lines.

    Transfers, loans and unrealized gains have no category and are skipped,
    as are expense/income entries without one.
    """
    lines: list[CategoryLine] = []
    for entry in entries:
        if isinstance(entry, SplitEntry):
            lines.extend(split_category_lines(entry))
        elif isinstance(entry, (ExpenseEntry, IncomeEntry)) and entry.category:
            lines.append(
                CategoryLine(
                    category=entry.category,
                    signed_amount=coerce_decimal(entry.amount),
                    date=entry.date,
                    account=entry.account,
                    memo=entry.memo,
                    entry_id=entry.id,
                )
            )
    return lines


def split_loan_lines(entry: SplitEntry) -> list[LoanLine]:
    """Read-only pseudo-entries for the loan lines of a split."""
    lines = []
    for line in entry.splits:
        if not line.is_loan or not line.is_well_formed:
            continue
        lines.append(
            LoanLine(
                id=split_part_id(entry.id, line.loan),
                loan=line.loan,
                amount=signed_line_amount(entry, line),
                date=entry.date,
                account=entry.account,
                memo=line.memo or entry.memo,
                payee=entry.payee,
                created_at=entry.created_at,
                is_split_part=True,
                parent_id=entry.id,
            )
        )
    return lines


def loan_lines(entries: Iterable[Entry]) -> list[LoanLine]:
    """All loan rows: direct loan entries plus split-derived pseudo-entries."""
    lines: list[LoanLine] = []
    for entry in entries:
        if isinstance(entry, LoanEntry):
            if not entry.loan:
                continue
            lines.append(
                LoanLine(
                    id=entry.id,
                    loan=entry.loan,
                    amount=coerce_decimal(entry.amount),
                    date=entry.date,
                    account=entry.account,
                    memo=entry.memo,
                    payee=entry.payee,
                    created_at=entry.created_at,
                    loan_type=entry.loan_type,
                )
            )
        elif isinstance(entry, SplitEntry):
            lines.extend(split_loan_lines(entry))
    return lines


def _defining_loan_types(entries: Iterable[Entry]) -> dict[str, LoanType]:
    loan_types: dict[str, LoanType] = {}
    for entry in entries:
        if isinstance(entry, LoanEntry) and entry.loan:
            loan_types.setdefault(entry.loan, entry.loan_type)
    return loan_types


def build_loans(entries: Iterable[Entry]) -> list[Loan]:
    """Aggregate loans from the entry set.

    A loan's type comes from its first loan entry (``borrow`` when only
    split lines reference it). For a borrow every negative contribution adds
    to ``paid_back``; for a lend every positive contribution adds to
    ``received``. ``balance`` is the signed sum of all contributions.

    Returns:
        Loans in order of first appearance
    """
    entries = list(entries)
    loan_types = _defining_loan_types(entries)
    grouped: dict[str, list[LoanLine]] = {}
    for line in loan_lines(entries):
        grouped.setdefault(line.loan, []).append(line)

    loans = []
    for name, lines in grouped.items():
        loan_type = loan_types.get(name, LoanType.BORROW)
        balance = ZERO
        paid_back = ZERO
        received = ZERO
        for line in lines:
            balance += line.amount
            if loan_type == LoanType.BORROW and line.amount < 0:
                paid_back += -line.amount
            elif loan_type == LoanType.LEND and line.amount > 0:
                received += line.amount
        loans.append(
            Loan(
                name=name,
                loan_type=loan_type,
                balance=balance,
                paid_back=paid_back,
                received=received,
                transactions=tuple(lines),
            )
        )
    return loans


def category_totals(lines: Iterable[CategoryLine]) -> dict[str, Decimal]:
    """Sum signed category lines per category name."""
    totals: dict[str, Decimal] = {}
    for line in lines:
        totals[line.category] = totals.get(line.category, ZERO) + line.signed_amount
    return totals
