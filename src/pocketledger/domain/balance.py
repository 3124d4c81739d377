"""Balance calculation for accounts.

Cash-like accounts fold their entries into a working, cleared and uncleared
balance. Market-value accounts (investment, property, vehicle, asset) are a
position marked to market: their current value comes from a chronological
replay in which the starting balance and legacy value updates *set* the
running value and every entry *adds* its contribution.

All functions here are pure and safe to re-run on every store notification.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from pocketledger.domain.entities import (
    Account,
    AccountBalances,
    Entry,
    ValuePoint,
    ValueReplay,
)
from pocketledger.domain.ledger import ZERO, contribution_to_account
from pocketledger.utils.amount_parser import coerce_decimal
from pocketledger.utils.timestamps import EPOCH_FLOOR, normalize_instant

STARTING_BALANCE = "starting_balance"
TRANSACTION = "transaction"
VALUE_UPDATE = "value_update"


@dataclass(frozen=True)
class _Event:
    timestamp: datetime
    source: str
    amount: Decimal
    entry_id: Optional[str] = None

    @property
    def resets(self) -> bool:
        return self.source in (STARTING_BALANCE, VALUE_UPDATE)


def compute_balances(account: Account, entries: Iterable[Entry]) -> AccountBalances:
    """Compute working, cleared and uncleared balances of an account.

    The starting balance always counts as cleared.

    Args:
        account: Account to compute
        entries: Entries of the snapshot (entries of other accounts are ignored)

    Returns:
        AccountBalances
    """
    starting = coerce_decimal(account.starting_balance)
    working = starting
    cleared = starting
    for entry in entries:
        contribution = contribution_to_account(entry, account.name)
        if contribution is None:
            continue
        working += contribution
        if entry.clear_status.counts_as_cleared:
            cleared += contribution
    return AccountBalances(
        working_balance=working,
        cleared_balance=cleared,
        uncleared_balance=working - cleared,
    )


def entry_timestamp(entry: Entry) -> datetime:
    """Replay timestamp of an entry: createdAt, else its date at midnight UTC."""
    return (
        normalize_instant(entry.created_at)
        or normalize_instant(entry.date)
        or EPOCH_FLOOR
    )


def _starting_event(account: Account) -> _Event:
    timestamp = (
        normalize_instant(account.starting_balance_date)
        or normalize_instant(account.created_at)
        or EPOCH_FLOOR
    )
    return _Event(timestamp, STARTING_BALANCE, coerce_decimal(account.starting_balance))


def replay_market_value(
    account: Account, entries: Iterable[Entry], cleared_only: bool = False
) -> ValueReplay:
    """Replay a market-value account in chronological order.

    Events are sorted ascending by timestamp; ties keep insertion order
    (starting balance first, then entries in snapshot order, then value
    updates), which makes the result deterministic.

    Args:
        account: Market-value account
        entries: Entries of the snapshot
        cleared_only: Replay only cleared/reconciled entries and value updates

    Returns:
        ValueReplay with one point per event and the final current value
    """
    events = [_starting_event(account)]
    for entry in entries:
        contribution = contribution_to_account(entry, account.name)
        if contribution is None:
            continue
        if cleared_only and not entry.clear_status.counts_as_cleared:
            continue
        events.append(_Event(entry_timestamp(entry), TRANSACTION, contribution, entry.id))
    for update in account.value_history:
        if cleared_only and not update.clear_status.counts_as_cleared:
            continue
        timestamp = normalize_instant(update.timestamp) or EPOCH_FLOOR
        events.append(_Event(timestamp, VALUE_UPDATE, coerce_decimal(update.value)))

    # sorted() is stable, so equal timestamps keep insertion order
    events = sorted(events, key=lambda event: event.timestamp)

    running = ZERO
    points = []
    for event in events:
        running = event.amount if event.resets else running + event.amount
        points.append(
            ValuePoint(
                timestamp=event.timestamp,
                source=event.source,
                amount=event.amount,
                running_value=running,
                entry_id=event.entry_id,
            )
        )
    return ValueReplay(points=tuple(points), current_value=running)


def compute_account_value(account: Account, entries: Iterable[Entry]) -> Decimal:
    """Headline value of an account: current value or working balance."""
    if account.is_market_value:
        return replay_market_value(account, entries).current_value
    return compute_balances(account, entries).working_balance


def cleared_total(account: Account, entries: Iterable[Entry]) -> Decimal:
    """Cleared figure used when reconciling an account.

    Market-value accounts replay only cleared events; other accounts use
    the flat cleared balance.
    """
    if account.is_market_value:
        return replay_market_value(account, entries, cleared_only=True).current_value
    return compute_balances(account, entries).cleared_balance
