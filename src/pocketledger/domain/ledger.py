"""Signed contribution of entries to accounts.

Sign conventions:
- expense, income, loan and unrealized gain entries carry their own signed
  ``amount`` and affect only ``account``;
- transfers store an unsigned magnitude: ``-amount`` for ``from_account``,
  ``+amount`` for ``to_account``;
- split lines are unsigned and take the sign of ``total_amount``.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pocketledger.domain.entities import (
    Entry,
    ExpenseEntry,
    IncomeEntry,
    LoanEntry,
    SplitEntry,
    SplitLine,
    TransferEntry,
    UnrealizedGainEntry,
)
from pocketledger.utils.amount_parser import coerce_decimal

ZERO = Decimal("0")

_SINGLE_ACCOUNT_ENTRIES = (ExpenseEntry, IncomeEntry, LoanEntry, UnrealizedGainEntry)


def split_sign(entry: SplitEntry) -> int:
    """Return +1 or -1: the sign applied to every line of a split."""
    return 1 if coerce_decimal(entry.total_amount) >= 0 else -1


def signed_line_amount(entry: SplitEntry, line: SplitLine) -> Decimal:
    """Signed amount of one split line."""
    return split_sign(entry) * abs(coerce_decimal(line.amount))


def contribution_to_account(entry: Entry, account_name: str) -> Optional[Decimal]:
    """Return the signed contribution of an entry to an account.

    Args:
        entry: Any ledger entry
        account_name: Account name (entries reference accounts by name)

    Returns:
        Signed Decimal, or None when the entry does not touch the account.
        A transfer from an account to itself contributes ``0``.
    """
    if isinstance(entry, _SINGLE_ACCOUNT_ENTRIES):
        if entry.account != account_name:
            return None
        return coerce_decimal(entry.amount)

    if isinstance(entry, TransferEntry):
        magnitude = abs(coerce_decimal(entry.amount))
        contribution = None
        if entry.from_account == account_name:
            contribution = -magnitude
        if entry.to_account == account_name:
            contribution = magnitude if contribution is None else contribution + magnitude
        return contribution

    if isinstance(entry, SplitEntry):
        if entry.account != account_name:
            return None
        return sum((signed_line_amount(entry, line) for line in entry.splits), ZERO)

    return None


def entry_accounts(entry: Entry) -> tuple[str, ...]:
    """Return the names of every account an entry touches."""
    if isinstance(entry, TransferEntry):
        names = [entry.from_account, entry.to_account]
    else:
        names = [getattr(entry, "account", None)]
    return tuple(dict.fromkeys(name for name in names if name))


def references_account(entry: Entry, account_name: str) -> bool:
    return account_name in entry_accounts(entry)


def entries_for_account(entries: Iterable[Entry], account_name: str) -> list[Entry]:
    """Filter entries touching an account, keeping their original order."""
    return [entry for entry in entries if references_account(entry, account_name)]
