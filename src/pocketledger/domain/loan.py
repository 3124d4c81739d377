"""Loan domain service.

Loans are not stored: every view is rebuilt from the loan entries and the
loan lines of split entries that share a loan name.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pocketledger.database.base import DocumentStore
from pocketledger.database.mappers import load_snapshot
from pocketledger.domain.entities import (
    ClearStatus,
    Loan,
    LoanDirection,
    LoanEntry,
    LoanOverview,
    LoanType,
)
from pocketledger.domain.errors import NotFoundError, ValidationError, loan_not_found
from pocketledger.domain.expansion import build_loans
from pocketledger.domain.ledger import ZERO
from pocketledger.domain.ordering import sort_entries_for_display
from pocketledger.domain.transaction import TransactionService


class LoanService:
    """Service for derived loans and loan transactions."""

    def __init__(self, db: DocumentStore, transactions: Optional[TransactionService] = None):
        """Initialize loan service.

        Args:
            db: Document store
            transactions: Service used to write loan entries
        """
        self.db = db
        self.transactions = transactions or TransactionService(db)

    def _loans(self) -> list[Loan]:
        return build_loans(load_snapshot(self.db).entries)

    def list_loans(self) -> LoanOverview:
        """Loans split into borrowed and lent, largest balance first."""
        loans = self._loans()
        borrowed = sorted(
            (loan for loan in loans if loan.loan_type == LoanType.BORROW),
            key=lambda loan: loan.balance,
            reverse=True,
        )
        lent = sorted(
            (loan for loan in loans if loan.loan_type == LoanType.LEND),
            key=lambda loan: loan.balance,
            reverse=True,
        )
        return LoanOverview(
            borrowed=tuple(borrowed),
            lent=tuple(lent),
            total_borrowed=sum((loan.balance for loan in borrowed), ZERO),
            total_lent=sum((loan.balance for loan in lent), ZERO),
        )

    def loan_names(self) -> list[str]:
        return [loan.name for loan in self._loans()]

    def get_loan(self, name: str) -> Loan:
        """Get a loan with its rows in display order.

        Raises:
            NotFoundError: If no entry references the loan
        """
        for loan in self._loans():
            if loan.name == name:
                rows = sort_entries_for_display(loan.transactions)
                return Loan(
                    name=loan.name,
                    loan_type=loan.loan_type,
                    balance=loan.balance,
                    paid_back=loan.paid_back,
                    received=loan.received,
                    transactions=tuple(rows),
                )
        raise NotFoundError(loan_not_found(name))

    def add_loan_entry(
        self,
        loan: str,
        account: str,
        amount: Decimal,
        direction: LoanDirection | str,
        date: date,
        loan_type: Optional[LoanType | str] = None,
        payee: Optional[str] = None,
        memo: Optional[str] = None,
        clear_status: ClearStatus = ClearStatus.UNCLEARED,
    ) -> str:
        """Record money moving in or out under a loan.

        Args:
            loan: Loan name
            account: Account the money moves through
            amount: Magnitude of the movement
            direction: ``in`` stores a positive amount, ``out`` a negative one
            date: Transaction date
            loan_type: borrow or lend; defaults to the type of the loan's
                existing entries, or borrow for a new loan
            payee: Optional payee
            memo: Optional memo
            clear_status: Initial clear status

        Returns:
            Transaction id

        Raises:
            ValidationError: If the loan name, amount or direction is invalid
        """
        loan = (loan or "").strip()
        if not loan:
            raise ValidationError("Loan name is required")
        try:
            direction = LoanDirection(direction)
        except ValueError:
            raise ValidationError(f"Unknown direction '{direction}'")

        if loan_type is None:
            existing = next(
                (
                    entry
                    for entry in load_snapshot(self.db).entries
                    if isinstance(entry, LoanEntry) and entry.loan == loan
                ),
                None,
            )
            loan_type = existing.loan_type if existing is not None else LoanType.BORROW

        magnitude = abs(amount)
        return self.transactions.create_entry(
            LoanEntry(
                amount=magnitude if direction == LoanDirection.IN else -magnitude,
                loan=loan,
                loan_type=LoanType(loan_type),
                account=account,
                payee=payee,
                date=date,
                memo=memo,
                clear_status=clear_status,
            )
        )
