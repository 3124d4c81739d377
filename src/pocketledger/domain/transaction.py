"""Transaction domain service."""

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from pocketledger.database.base import TRANSACTIONS, CreateOp, DeleteOp, DocumentStore
from pocketledger.database.mappers import entry_to_document, load_snapshot
from pocketledger.domain.entities import (
    CategoryType,
    ClearStatus,
    Entry,
    EntryKind,
    ExpenseEntry,
    IncomeEntry,
    LedgerSnapshot,
    LoanEntry,
    LoanType,
    SplitEntry,
    SplitLine,
    TransferEntry,
    UnrealizedGainEntry,
)
from pocketledger.domain.errors import (
    NotFoundError,
    StateConflictError,
    ValidationError,
    entry_locked,
    entry_not_found,
    split_part_read_only,
)
from pocketledger.domain.expansion import is_split_part_id
from pocketledger.domain.ledger import ZERO, references_account
from pocketledger.domain.ordering import sort_entries_for_display
from pocketledger.utils.account_resolver import resolve_account
from pocketledger.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

# Fields that may be changed through update_entry, per entry class.
_COMMON_FIELDS = {"date", "memo", "clear_status"}
UPDATABLE_FIELDS: dict[type, set[str]] = {
    ExpenseEntry: _COMMON_FIELDS | {"amount", "account", "category", "payee"},
    IncomeEntry: _COMMON_FIELDS | {"amount", "account", "category", "payee"},
    TransferEntry: _COMMON_FIELDS | {"amount", "from_account", "to_account"},
    SplitEntry: _COMMON_FIELDS | {"total_amount", "split_type", "account", "payee", "splits"},
    LoanEntry: _COMMON_FIELDS | {"amount", "loan", "loan_type", "account", "payee"},
    UnrealizedGainEntry: _COMMON_FIELDS | {"amount", "account"},
}


def split_remainder(total_amount: Decimal, splits: Iterable[SplitLine]) -> Decimal:
    """Amount of the total not yet assigned to a split line."""
    assigned = sum((abs(line.amount) for line in splits), ZERO)
    return abs(total_amount) - assigned


def normalize_amounts(entry: Entry) -> Entry:
    """Apply the stored sign convention of each entry kind.

    Expenses are negative, incomes positive, transfers unsigned. A split's
    total follows its split type and its lines are unsigned. Loan and
    unrealized gain amounts keep the sign they were given.
    """
    if isinstance(entry, ExpenseEntry):
        return replace(entry, amount=-abs(entry.amount))
    if isinstance(entry, IncomeEntry):
        return replace(entry, amount=abs(entry.amount))
    if isinstance(entry, TransferEntry):
        return replace(entry, amount=abs(entry.amount))
    if isinstance(entry, SplitEntry):
        magnitude = abs(entry.total_amount)
        total = -magnitude if entry.split_type == CategoryType.EXPENSE else magnitude
        splits = tuple(replace(line, amount=abs(line.amount)) for line in entry.splits)
        return replace(entry, total_amount=total, splits=splits)
    return entry


def _require_amount(amount: Decimal, label: str = "Amount") -> None:
    if isinstance(amount, bool) or not isinstance(amount, (Decimal, int)):
        raise ValidationError(f"{label} must be a number")
    if isinstance(amount, Decimal) and not amount.is_finite():
        raise ValidationError(f"{label} must be a number")
    if amount == 0:
        raise ValidationError(f"{label} must not be zero")


def validate_entry(entry: Entry, snapshot: LedgerSnapshot) -> None:
    """Reject an entry that must not be written.

    Raises:
        ValidationError: If amounts, references or split lines are invalid
        NotFoundError: If a referenced account does not exist
    """
    if entry.clear_status == ClearStatus.RECONCILED:
        raise StateConflictError("Transactions can only be reconciled by reconciling their account")

    if isinstance(entry, TransferEntry):
        _require_amount(entry.amount)
        if not entry.from_account or not entry.to_account:
            raise ValidationError("Transfer needs both a source and a destination account")
        resolve_account(snapshot.accounts, entry.from_account)
        resolve_account(snapshot.accounts, entry.to_account)
        if entry.from_account == entry.to_account:
            raise ValidationError("Cannot transfer to the same account")
        return

    if not getattr(entry, "account", None):
        raise ValidationError("No account selected")
    account = resolve_account(snapshot.accounts, entry.account)

    if isinstance(entry, (ExpenseEntry, IncomeEntry)):
        _require_amount(entry.amount)
        if not entry.category:
            raise ValidationError("Category is required")
    elif isinstance(entry, SplitEntry):
        _require_amount(entry.total_amount, "Total amount")
        if not entry.splits:
            raise ValidationError("Split transaction needs at least one line")
        for number, line in enumerate(entry.splits, start=1):
            _require_amount(line.amount, f"Line {number} amount")
            if line.is_loan and not line.loan:
                raise ValidationError(f"Line {number} is a loan but has no loan name")
            if not line.is_well_formed:
                raise ValidationError(f"Line {number} needs a category")
        remainder = split_remainder(entry.total_amount, entry.splits)
        if remainder != 0:
            raise ValidationError(
                f"Split lines must add up to the total ({remainder} unassigned)"
            )
    elif isinstance(entry, LoanEntry):
        _require_amount(entry.amount)
        if not entry.loan:
            raise ValidationError("Loan name is required")
    elif isinstance(entry, UnrealizedGainEntry):
        _require_amount(entry.amount)
        if not account.is_market_value:
            raise ValidationError(
                f"Unrealized gains can only be recorded on investment-type accounts, "
                f"not on '{account.name}' ({account.type.value})"
            )


class TransactionService:
    """Service for managing ledger entries."""

    def __init__(self, db: DocumentStore, clock: Optional[Callable[[], datetime]] = None):
        """Initialize transaction service.

        Args:
            db: Document store
            clock: Returns the current instant (defaults to UTC now)
        """
        self.db = db
        self.clock = clock or utc_now

    def _snapshot(self) -> LedgerSnapshot:
        return load_snapshot(self.db)

    def _canonical_account(self, snapshot: LedgerSnapshot, account: str) -> str:
        return resolve_account(snapshot.accounts, account).name

    def create_entry(self, entry: Entry) -> str:
        """Validate and store a new entry.

        Account references are resolved to the account's exact name, amounts
        get the sign convention of the entry kind and ``created_at`` is set to
        now when missing.

        Args:
            entry: Entry to store (its ``id`` is ignored)

        Returns:
            Transaction id

        Raises:
            ValidationError: If the entry is invalid
            NotFoundError: If a referenced account does not exist
        """
        snapshot = self._snapshot()
        entry = self._prepare(entry, snapshot)
        entry = replace(entry, id=None, created_at=entry.created_at or self.clock())
        validate_entry(entry, snapshot)
        entry_id = self.db.create_document(TRANSACTIONS, entry_to_document(entry))
        logger.debug("Created %s transaction %s", entry.kind.value, entry_id)
        return entry_id

    def _prepare(self, entry: Entry, snapshot: LedgerSnapshot) -> Entry:
        if isinstance(entry, TransferEntry):
            if entry.from_account:
                entry = replace(
                    entry, from_account=self._canonical_account(snapshot, entry.from_account)
                )
            if entry.to_account:
                entry = replace(
                    entry, to_account=self._canonical_account(snapshot, entry.to_account)
                )
        elif getattr(entry, "account", None):
            entry = replace(entry, account=self._canonical_account(snapshot, entry.account))
        return normalize_amounts(entry)

    def add_expense(
        self,
        account: str,
        amount: Decimal,
        category: str,
        date: date,
        payee: Optional[str] = None,
        memo: Optional[str] = None,
        clear_status: ClearStatus = ClearStatus.UNCLEARED,
    ) -> str:
        """Record money spent. The amount is stored negative.

        Returns:
            Transaction id
        """
        return self.create_entry(
            ExpenseEntry(
                amount=amount,
                account=account,
                category=category,
                payee=payee,
                date=date,
                memo=memo,
                clear_status=clear_status,
            )
        )

    def add_income(
        self,
        account: str,
        amount: Decimal,
        category: str,
        date: date,
        payee: Optional[str] = None,
        memo: Optional[str] = None,
        clear_status: ClearStatus = ClearStatus.UNCLEARED,
    ) -> str:
        """Record money received. The amount is stored positive."""
        return self.create_entry(
            IncomeEntry(
                amount=amount,
                account=account,
                category=category,
                payee=payee,
                date=date,
                memo=memo,
                clear_status=clear_status,
            )
        )

    def add_transfer(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
        date: date,
        memo: Optional[str] = None,
        clear_status: ClearStatus = ClearStatus.UNCLEARED,
    ) -> str:
        """Move money between two accounts. The amount is stored unsigned."""
        return self.create_entry(
            TransferEntry(
                amount=amount,
                from_account=from_account,
                to_account=to_account,
                date=date,
                memo=memo,
                clear_status=clear_status,
            )
        )

    def add_split(
        self,
        account: str,
        splits: Sequence[SplitLine],
        date: date,
        split_type: CategoryType = CategoryType.EXPENSE,
        total_amount: Optional[Decimal] = None,
        payee: Optional[str] = None,
        memo: Optional[str] = None,
        clear_status: ClearStatus = ClearStatus.UNCLEARED,
    ) -> str:
        """Record one payment divided across category and loan lines.

        Args:
            account: Account name
            splits: Lines of the split; amounts are magnitudes
            date: Transaction date
            split_type: expense (total stored negative) or income
            total_amount: Total of the payment; defaults to the sum of the lines
            payee: Optional payee
            memo: Optional memo
            clear_status: Initial clear status

        Returns:
            Transaction id

        Raises:
            ValidationError: If a line is malformed or the lines do not add up
                to the total
        """
        splits = tuple(splits)
        if total_amount is None:
            total_amount = sum((abs(line.amount) for line in splits), ZERO)
        return self.create_entry(
            SplitEntry(
                total_amount=total_amount,
                split_type=CategoryType(split_type),
                account=account,
                payee=payee,
                splits=splits,
                date=date,
                memo=memo,
                clear_status=clear_status,
            )
        )

    def add_unrealized_gain(
        self,
        account: str,
        amount: Decimal,
        date: date,
        memo: Optional[str] = None,
        clear_status: ClearStatus = ClearStatus.UNCLEARED,
    ) -> str:
        """Record a market-value change (positive gain, negative loss)."""
        return self.create_entry(
            UnrealizedGainEntry(
                amount=amount, account=account, date=date, memo=memo, clear_status=clear_status
            )
        )

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        """Get an entry by id.

        Returns:
            Entry or None if not found
        """
        return next((e for e in self._snapshot().entries if e.id == entry_id), None)

    def _require_entry(self, snapshot: LedgerSnapshot, entry_id: str) -> Entry:
        if is_split_part_id(entry_id):
            raise StateConflictError(split_part_read_only(entry_id))
        entry = next((e for e in snapshot.entries if e.id == entry_id), None)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def list_entries(
        self,
        account: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        kind: Optional[EntryKind] = None,
        clear_status: Optional[ClearStatus] = None,
    ) -> list[Entry]:
        """List entries in display order, newest first.

        Args:
            account: Only entries touching this account (name or id)
            start_date: Earliest date, inclusive
            end_date: Latest date, inclusive
            category: Only entries with this category, including split lines
            kind: Only entries of this kind
            clear_status: Only entries with this clear status

        Raises:
            NotFoundError: If the account does not exist
        """
        snapshot = self._snapshot()
        entries: Iterable[Entry] = snapshot.entries
        if account is not None:
            name = self._canonical_account(snapshot, account)
            entries = [e for e in entries if references_account(e, name)]
        if start_date is not None:
            entries = [e for e in entries if e.date >= start_date]
        if end_date is not None:
            entries = [e for e in entries if e.date <= end_date]
        if category is not None:
            entries = [e for e in entries if _has_category(e, category)]
        if kind is not None:
            entries = [e for e in entries if e.kind == EntryKind(kind)]
        if clear_status is not None:
            entries = [e for e in entries if e.clear_status == ClearStatus(clear_status)]
        return sort_entries_for_display(entries)

    def update_entry(self, entry_id: str, **changes) -> Entry:
        """Edit fields of an entry in place.

        Args:
            entry_id: Transaction id
            **changes: New field values (e.g. ``amount``, ``date``, ``category``)

        Returns:
            The updated entry

        Raises:
            NotFoundError: If the entry does not exist
            StateConflictError: If the entry is reconciled, is a split-derived
                row, or the change would set it to reconciled
            ValidationError: If a field cannot be changed or the result is invalid
        """
        snapshot = self._snapshot()
        entry = self._require_entry(snapshot, entry_id)
        if entry.is_reconciled:
            raise StateConflictError(entry_locked(entry_id))

        allowed = UPDATABLE_FIELDS[type(entry)]
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise ValidationError(
                f"Cannot change {', '.join(unknown)} of a {entry.kind.value} transaction"
            )
        if "clear_status" in changes:
            changes["clear_status"] = ClearStatus(changes["clear_status"])
            if changes["clear_status"] == ClearStatus.RECONCILED:
                raise StateConflictError(
                    "Transactions can only be reconciled by reconciling their account"
                )
        if "splits" in changes:
            changes["splits"] = tuple(changes["splits"])
        if "split_type" in changes:
            changes["split_type"] = CategoryType(changes["split_type"])
        if "loan_type" in changes:
            changes["loan_type"] = LoanType(changes["loan_type"])

        updated = self._prepare(replace(entry, **changes), snapshot)
        validate_entry(updated, snapshot)
        self.db.update_document(TRANSACTIONS, entry_id, entry_to_document(updated))
        return updated

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry.

        Raises:
            NotFoundError: If the entry does not exist
            StateConflictError: If the id belongs to a split-derived row
        """
        snapshot = self._snapshot()
        self._require_entry(snapshot, entry_id)
        self.db.delete_document(TRANSACTIONS, entry_id)

    def _selection(self, snapshot: LedgerSnapshot, entry_ids: Iterable[str]) -> list[Entry]:
        # Split-derived rows are never part of a bulk selection
        selected = []
        for entry_id in dict.fromkeys(entry_ids):
            if is_split_part_id(entry_id):
                continue
            selected.append(self._require_entry(snapshot, entry_id))
        return selected

    def bulk_delete(self, entry_ids: Iterable[str]) -> int:
        """Delete several entries in one atomic batch.

        Split-derived row ids are skipped.

        Returns:
            Number of entries deleted

        Raises:
            NotFoundError: If any id does not exist; nothing is deleted
        """
        snapshot = self._snapshot()
        selected = self._selection(snapshot, entry_ids)
        if selected:
            self.db.atomic_batch([DeleteOp(TRANSACTIONS, entry.id) for entry in selected])
        logger.info("Deleted %d transactions", len(selected))
        return len(selected)

    def bulk_duplicate(self, entry_ids: Iterable[str], on: Optional[date] = None) -> list[str]:
        """Copy several entries in one atomic batch.

        Copies start uncleared with a fresh creation time. Split-derived row
        ids are skipped.

        Args:
            entry_ids: Transaction ids
            on: Date for the copies (defaults to each original's date)

        Returns:
            Ids of the new entries

        Raises:
            NotFoundError: If any id does not exist; nothing is created
        """
        snapshot = self._snapshot()
        now = self.clock()
        ops = []
        for entry in self._selection(snapshot, entry_ids):
            copy = replace(
                entry,
                id=None,
                date=on or entry.date,
                created_at=now,
                clear_status=ClearStatus.UNCLEARED,
                reconciled_at=None,
                reconcile_session_id=None,
            )
            ops.append(CreateOp(TRANSACTIONS, entry_to_document(copy)))
        created = self.db.atomic_batch(ops) if ops else []
        logger.info("Duplicated %d transactions", len(created))
        return created

    def payee_suggestions(self) -> dict[str, str]:
        """Map each payee to the category of its most recent transaction."""
        suggestions: dict[str, str] = {}
        for entry in sort_entries_for_display(self._snapshot().entries):
            payee = getattr(entry, "payee", None)
            category = getattr(entry, "category", None)
            if payee and category and payee not in suggestions:
                suggestions[payee] = category
        return suggestions


def _has_category(entry: Entry, category: str) -> bool:
    if isinstance(entry, SplitEntry):
        return any(not line.is_loan and line.category == category for line in entry.splits)
    return getattr(entry, "category", None) == category
