"""Deterministic ordering and grouping of entries, accounts and categories."""

from datetime import date
from typing import Iterable, Sequence, TypeVar

from pocketledger.domain.entities import (
    Account,
    AccountGroup,
    Category,
    Entry,
    GROUP_ORDER,
)
from pocketledger.utils.timestamps import normalize_instant

Ordered = TypeVar("Ordered", Account, Category)


def _entry_display_key(indexed: tuple[int, Entry]):
    index, entry = indexed
    created = normalize_instant(entry.created_at)
    # date descending, then createdAt descending with missing values last,
    # then insertion order
    return (
        -entry.date.toordinal(),
        created is None,
        -created.timestamp() if created is not None else 0.0,
        index,
    )


def sort_entries_for_display(entries: Iterable[Entry]) -> list[Entry]:
    """Newest first: by date, then by creation time within the same date."""
    return [entry for _, entry in sorted(enumerate(entries), key=_entry_display_key)]


def group_entries_by_date(entries: Iterable[Entry]) -> list[tuple[date, list[Entry]]]:
    """Group entries by calendar date, newest date first."""
    groups: dict[date, list[Entry]] = {}
    for entry in sort_entries_for_display(entries):
        groups.setdefault(entry.date, []).append(entry)
    return list(groups.items())


def order_key(item: Account | Category):
    """User-defined order ascending; missing order sorts last, ties by name."""
    return (item.order is None, item.order if item.order is not None else 0, item.name)


def sort_by_order(items: Iterable[Ordered]) -> list[Ordered]:
    return sorted(items, key=order_key)


def group_accounts(
    accounts: Iterable[Account], include_archived: bool = False
) -> list[tuple[AccountGroup, list[Account]]]:
    """Group accounts for display in SPENDING, SAVINGS, INVESTMENTS order.

    Loan accounts never appear in the grouped view. Groups without accounts
    are omitted.
    """
    buckets: dict[AccountGroup, list[Account]] = {group: [] for group in GROUP_ORDER}
    for account in accounts:
        if not include_archived and not account.is_active:
            continue
        if account.group in buckets:
            buckets[account.group].append(account)
    return [
        (group, sort_by_order(members)) for group, members in buckets.items() if members
    ]


def account_names_for_selection(accounts: Sequence[Account]) -> list[str]:
    """Active, non-loan account names in grouped display order."""
    return [
        account.name
        for _, members in group_accounts(accounts)
        for account in members
    ]
