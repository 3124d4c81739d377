"""Reconciliation state machine.

Entries move ``uncleared <-> cleared -> reconciled``. Reconciling stamps
every cleared entry of an account (and its cleared value resets) with one
session id and the commit instant; undoing the last reconciliation selects
exactly that session. Data written before session ids existed is matched by
its ``reconciledAt`` falling within a few seconds of the account's
``lastReconcileDate``.

The ``plan_*`` functions are pure: they take an in-memory snapshot and
return the intended mutations (or an outcome explaining why there are
none). ``ReconciliationService`` loads the snapshot, runs a planner and
commits the plan as a single atomic batch.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence, Union

from pocketledger.database.base import ACCOUNTS, TRANSACTIONS, DocumentStore, UpdateOp
from pocketledger.database.mappers import load_snapshot, value_history_to_document
from pocketledger.domain.balance import cleared_total
from pocketledger.domain.entities import (
    Account,
    ClearStatus,
    Entry,
    LedgerSnapshot,
    MismatchWarning,
    NOTHING_TO_RECONCILE,
    NOTHING_TO_UNDO,
    NOTHING_TO_UNLOCK,
    NoOpOutcome,
    ReconcileResult,
    UNLOCK_CANCELLED,
    UnreconcileResult,
    ValueUpdate,
)
from pocketledger.domain.errors import (
    NotFoundError,
    StateConflictError,
    account_not_found,
    entry_locked,
    entry_not_found,
    split_part_read_only,
)
from pocketledger.domain.expansion import is_split_part_id
from pocketledger.domain.ledger import entries_for_account
from pocketledger.utils.timestamps import normalize_instant, utc_now

logger = logging.getLogger(__name__)

# Legacy reconciliations are matched by reconciledAt within this window.
LEGACY_MATCH_WINDOW = timedelta(seconds=5)


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ReconcilePlan:
    """Mutations that lock every cleared item of one account."""

    account: Account
    session_id: str
    reconciled_at: datetime
    balance: Decimal
    entry_ids: tuple[str, ...]
    value_history: tuple[ValueUpdate, ...]
    value_update_count: int

    def operations(self) -> list[UpdateOp]:
        ops = [
            UpdateOp(
                TRANSACTIONS,
                entry_id,
                {
                    "clearStatus": ClearStatus.RECONCILED.value,
                    "reconciledAt": self.reconciled_at,
                    "reconcileSessionId": self.session_id,
                },
            )
            for entry_id in self.entry_ids
        ]
        account_fields = {
            "lastReconcileDate": self.reconciled_at,
            "lastReconcileBalance": self.balance,
            "lastReconcileSessionId": self.session_id,
        }
        if self.value_update_count:
            account_fields["valueHistory"] = value_history_to_document(self.value_history)
        ops.append(UpdateOp(ACCOUNTS, self.account.id, account_fields))
        return ops

    def result(self) -> ReconcileResult:
        return ReconcileResult(
            account=self.account.name,
            session_id=self.session_id,
            reconciled_at=self.reconciled_at,
            balance=self.balance,
            entry_ids=self.entry_ids,
            value_update_count=self.value_update_count,
        )


@dataclass(frozen=True)
class UnreconcilePlan:
    """Mutations that unlock the last reconciliation of one account."""

    account: Account
    entry_ids: tuple[str, ...]
    value_history: tuple[ValueUpdate, ...]
    value_update_count: int

    def operations(self) -> list[UpdateOp]:
        ops = [
            UpdateOp(
                TRANSACTIONS,
                entry_id,
                {
                    "clearStatus": ClearStatus.CLEARED.value,
                    "reconciledAt": None,
                    "reconcileSessionId": None,
                },
            )
            for entry_id in self.entry_ids
        ]
        account_fields = {
            "lastReconcileDate": None,
            "lastReconcileBalance": None,
            "lastReconcileSessionId": None,
        }
        if self.value_update_count:
            account_fields["valueHistory"] = value_history_to_document(self.value_history)
        ops.append(UpdateOp(ACCOUNTS, self.account.id, account_fields))
        return ops

    def result(self) -> UnreconcileResult:
        return UnreconcileResult(
            account=self.account.name,
            entry_ids=self.entry_ids,
            value_update_count=self.value_update_count,
        )


def next_clear_status(status: ClearStatus) -> ClearStatus:
    """Toggle between uncleared and cleared.

    Raises:
        StateConflictError: If the item is reconciled
    """
    if status == ClearStatus.RECONCILED:
        raise StateConflictError("Locked: reconciled items can only be unlocked by undoing the reconciliation")
    if status == ClearStatus.CLEARED:
        return ClearStatus.UNCLEARED
    return ClearStatus.CLEARED


def _collect_cleared(account: Account, entries: Sequence[Entry]):
    entry_ids = tuple(
        entry.id
        for entry in entries_for_account(entries, account.name)
        if entry.clear_status == ClearStatus.CLEARED and entry.id is not None
    )
    cleared_updates = [
        index
        for index, update in enumerate(account.value_history)
        if update.clear_status == ClearStatus.CLEARED
    ]
    return entry_ids, cleared_updates


def _build_plan(
    account: Account,
    entry_ids: tuple[str, ...],
    update_indexes: list[int],
    as_of: datetime,
    session_id: str,
    balance: Decimal,
) -> ReconcilePlan:
    history = list(account.value_history)
    for index in update_indexes:
        history[index] = replace(
            history[index],
            clear_status=ClearStatus.RECONCILED,
            reconciled_at=as_of,
            reconcile_session_id=session_id,
        )
    return ReconcilePlan(
        account=account,
        session_id=session_id,
        reconciled_at=as_of,
        balance=balance,
        entry_ids=entry_ids,
        value_history=tuple(history),
        value_update_count=len(update_indexes),
    )


def plan_quick_reconcile(
    account: Account,
    entries: Sequence[Entry],
    as_of: datetime,
    session_id: str,
) -> Union[ReconcilePlan, NoOpOutcome]:
    """Plan locking every cleared item, recording the cleared balance."""
    as_of = normalize_instant(as_of)
    entry_ids, update_indexes = _collect_cleared(account, entries)
    if not entry_ids and not update_indexes:
        return NoOpOutcome(NOTHING_TO_RECONCILE)
    balance = cleared_total(account, entries)
    return _build_plan(account, entry_ids, update_indexes, as_of, session_id, balance)


def plan_manual_reconcile(
    account: Account,
    entries: Sequence[Entry],
    statement_balance: Decimal,
    as_of: datetime,
    session_id: str,
    force: bool = False,
) -> Union[ReconcilePlan, MismatchWarning, NoOpOutcome]:
    """Plan reconciling against a bank statement balance.

    A difference between the statement and the cleared total yields a
    MismatchWarning unless ``force`` is set. The recorded balance is the
    statement figure.
    """
    as_of = normalize_instant(as_of)
    entry_ids, update_indexes = _collect_cleared(account, entries)
    if not entry_ids and not update_indexes:
        return NoOpOutcome(NOTHING_TO_RECONCILE)
    if not isinstance(statement_balance, Decimal):
        statement_balance = Decimal(str(statement_balance))
    total = cleared_total(account, entries)
    diff = statement_balance - total
    if diff != 0 and not force:
        return MismatchWarning(cleared_total=total, statement_balance=statement_balance, diff=diff)
    return _build_plan(account, entry_ids, update_indexes, as_of, session_id, statement_balance)


def _belongs_to_last_session(
    account: Account,
    clear_status: ClearStatus,
    reconciled_at: Optional[datetime],
    session_id: Optional[str],
) -> bool:
    if clear_status != ClearStatus.RECONCILED:
        return False
    if account.last_reconcile_session_id:
        return session_id == account.last_reconcile_session_id
    reconciled_at = normalize_instant(reconciled_at)
    if reconciled_at is None:
        return False
    last = normalize_instant(account.last_reconcile_date)
    return abs(reconciled_at - last) < LEGACY_MATCH_WINDOW


def plan_unreconcile(
    account: Account, entries: Sequence[Entry]
) -> Union[UnreconcilePlan, NoOpOutcome]:
    """Plan unlocking the items of the account's last reconciliation."""
    if account.last_reconcile_date is None:
        return NoOpOutcome(NOTHING_TO_UNDO)

    entry_ids = tuple(
        entry.id
        for entry in entries_for_account(entries, account.name)
        if entry.id is not None
        and _belongs_to_last_session(
            account, entry.clear_status, entry.reconciled_at, entry.reconcile_session_id
        )
    )
    history = list(account.value_history)
    unlocked = 0
    for index, update in enumerate(history):
        if _belongs_to_last_session(
            account, update.clear_status, update.reconciled_at, update.reconcile_session_id
        ):
            history[index] = replace(
                update,
                clear_status=ClearStatus.CLEARED,
                reconciled_at=None,
                reconcile_session_id=None,
            )
            unlocked += 1

    if not entry_ids and not unlocked:
        return NoOpOutcome(NOTHING_TO_UNLOCK)
    return UnreconcilePlan(
        account=account,
        entry_ids=entry_ids,
        value_history=tuple(history),
        value_update_count=unlocked,
    )


def plan_reset_reconciled(entries: Iterable[Entry]) -> list[UpdateOp]:
    """Operations resetting every reconciled entry back to cleared."""
    return [
        UpdateOp(
            TRANSACTIONS,
            entry.id,
            {
                "clearStatus": ClearStatus.CLEARED.value,
                "reconciledAt": None,
                "reconcileSessionId": None,
            },
        )
        for entry in entries
        if entry.is_reconciled and entry.id is not None
    ]


class ReconciliationService:
    """Service for clearing and reconciling accounts."""

    def __init__(
        self,
        db: DocumentStore,
        clock: Optional[Callable[[], datetime]] = None,
        session_ids: Optional[Callable[[], str]] = None,
    ):
        """Initialize reconciliation service.

        Args:
            db: Document store
            clock: Returns the current instant (defaults to UTC now)
            session_ids: Generates reconciliation session ids
        """
        self.db = db
        self.clock = clock or utc_now
        self.session_ids = session_ids or new_session_id

    def _account(self, snapshot: LedgerSnapshot, account_name: str) -> Account:
        account = snapshot.get_account(account_name)
        if account is None:
            raise NotFoundError(account_not_found(account_name))
        return account

    def toggle_clear(self, entry_id: str) -> ClearStatus:
        """Toggle an entry between uncleared and cleared.

        Args:
            entry_id: Transaction id

        Returns:
            The new clear status

        Raises:
            NotFoundError: If the entry does not exist
            StateConflictError: If the entry is reconciled or is a split-derived row
        """
        if is_split_part_id(entry_id):
            raise StateConflictError(split_part_read_only(entry_id))
        snapshot = load_snapshot(self.db)
        entry = next((e for e in snapshot.entries if e.id == entry_id), None)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        if entry.is_reconciled:
            raise StateConflictError(entry_locked(entry_id))
        status = next_clear_status(entry.clear_status)
        self.db.update_document(TRANSACTIONS, entry_id, {"clearStatus": status.value})
        return status

    def toggle_value_clear(self, account_name: str, index: int) -> ClearStatus:
        """Toggle the clear status of one value reset of a market-value account.

        Raises:
            NotFoundError: If the account or value reset does not exist
            StateConflictError: If the value reset is reconciled
        """
        snapshot = load_snapshot(self.db)
        account = self._account(snapshot, account_name)
        if not 0 <= index < len(account.value_history):
            raise NotFoundError(f"Value update {index} of account '{account_name}' not found")
        history = list(account.value_history)
        status = next_clear_status(history[index].clear_status)
        history[index] = replace(history[index], clear_status=status)
        self.db.update_document(
            ACCOUNTS, account.id, {"valueHistory": value_history_to_document(history)}
        )
        return status

    def quick_reconcile(
        self, account_name: str, as_of: Optional[datetime] = None
    ) -> Union[ReconcileResult, NoOpOutcome]:
        """Reconcile every cleared item of an account at its cleared balance.

        Args:
            account_name: Account name
            as_of: Reconciliation instant (defaults to now)

        Returns:
            ReconcileResult, or NoOpOutcome when nothing is cleared

        Raises:
            NotFoundError: If the account does not exist
            PersistenceError: If the batch fails; nothing is changed
        """
        snapshot = load_snapshot(self.db)
        account = self._account(snapshot, account_name)
        plan = plan_quick_reconcile(
            account, snapshot.entries, as_of or self.clock(), self.session_ids()
        )
        return self._commit(plan)

    def manual_reconcile(
        self,
        account_name: str,
        statement_balance: Decimal,
        as_of: Optional[datetime] = None,
        force: bool = False,
    ) -> Union[ReconcileResult, MismatchWarning, NoOpOutcome]:
        """Reconcile an account against a statement balance.

        Args:
            account_name: Account name
            statement_balance: Balance printed on the bank statement
            as_of: Reconciliation instant (defaults to now)
            force: Commit even when the statement and cleared total differ

        Returns:
            ReconcileResult when committed, MismatchWarning when the totals
            differ and ``force`` is not set, NoOpOutcome when nothing is cleared

        Raises:
            NotFoundError: If the account does not exist
            PersistenceError: If the batch fails; nothing is changed
        """
        snapshot = load_snapshot(self.db)
        account = self._account(snapshot, account_name)
        plan = plan_manual_reconcile(
            account,
            snapshot.entries,
            statement_balance,
            as_of or self.clock(),
            self.session_ids(),
            force=force,
        )
        if isinstance(plan, MismatchWarning):
            logger.info(
                "Statement balance for '%s' differs from cleared total by %s",
                account_name,
                plan.diff,
            )
            return plan
        return self._commit(plan)

    def _commit(self, plan) -> Union[ReconcileResult, NoOpOutcome]:
        if isinstance(plan, NoOpOutcome):
            return plan
        self.db.atomic_batch(plan.operations())
        result = plan.result()
        logger.info(
            "Reconciled %d transactions and %d value updates of '%s' (session %s)",
            len(result.entry_ids),
            result.value_update_count,
            result.account,
            result.session_id,
        )
        return result

    def plan_unreconcile(self, account_name: str) -> Union[UnreconcilePlan, NoOpOutcome]:
        """Preview what undoing the last reconciliation would unlock."""
        snapshot = load_snapshot(self.db)
        return plan_unreconcile(self._account(snapshot, account_name), snapshot.entries)

    def unreconcile(
        self,
        account_name: str,
        confirm: Optional[Callable[[UnreconcilePlan], bool]] = None,
    ) -> Union[UnreconcileResult, NoOpOutcome]:
        """Undo the last reconciliation of an account.

        Args:
            account_name: Account name
            confirm: Called with the plan before committing; returning False
                cancels the undo

        Returns:
            UnreconcileResult, or NoOpOutcome when there is nothing to undo,
            nothing matches, or the user cancelled

        Raises:
            NotFoundError: If the account does not exist
            PersistenceError: If the batch fails; nothing is changed
        """
        plan = self.plan_unreconcile(account_name)
        if isinstance(plan, NoOpOutcome):
            return plan
        if confirm is not None and not confirm(plan):
            return NoOpOutcome(UNLOCK_CANCELLED)
        self.db.atomic_batch(plan.operations())
        result = plan.result()
        logger.info(
            "Unlocked %d transactions and %d value updates of '%s'",
            len(result.entry_ids),
            result.value_update_count,
            result.account,
        )
        return result

    def reset_reconciled(self) -> int:
        """Reset every reconciled entry of the ledger back to cleared.

        Returns:
            Number of entries reset
        """
        ops = plan_reset_reconciled(load_snapshot(self.db).entries)
        if ops:
            self.db.atomic_batch(ops)
        logger.info("Reset %d reconciled transactions to cleared", len(ops))
        return len(ops)
