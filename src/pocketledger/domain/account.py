"""Account domain service."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from pocketledger.database.base import ACCOUNTS, TRANSACTIONS, DeleteOp, DocumentStore, UpdateOp
from pocketledger.database.mappers import (
    account_to_document,
    load_snapshot,
    value_history_to_document,
)
from pocketledger.domain.balance import (
    compute_account_value,
    compute_balances,
    replay_market_value,
)
from pocketledger.domain.entities import (
    ACCOUNT_TYPE_GROUPS,
    Account,
    AccountBalances,
    AccountGroup,
    AccountType,
    ClearStatus,
    LedgerSnapshot,
    TransferEntry,
    ValueReplay,
    ValueUpdate,
)
from pocketledger.domain.errors import (
    ConflictError,
    DependencyError,
    ValidationError,
    account_delete_blocked,
    duplicate_account_name,
)
from pocketledger.domain.ledger import entries_for_account
from pocketledger.domain.ordering import group_accounts, sort_by_order
from pocketledger.utils.account_resolver import resolve_account
from pocketledger.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS: tuple[tuple[str, AccountType], ...] = (
    ("Cash", AccountType.CASH),
    ("Bank", AccountType.BANK),
    ("Savings", AccountType.SAVINGS),
    ("Investments", AccountType.INVESTMENT),
)


class AccountService:
    """Service for managing accounts and their balances."""

    def __init__(self, db: DocumentStore, clock: Optional[Callable[[], datetime]] = None):
        """Initialize account service.

        Args:
            db: Document store
            clock: Returns the current instant (defaults to UTC now)
        """
        self.db = db
        self.clock = clock or utc_now

    def _snapshot(self) -> LedgerSnapshot:
        return load_snapshot(self.db)

    def create_account(
        self,
        name: str,
        account_type: AccountType | str,
        starting_balance: Decimal = Decimal("0"),
        starting_balance_date: Optional[datetime] = None,
        icon: Optional[str] = None,
    ) -> str:
        """Create a new account.

        The group is derived from the type. New accounts are appended to the
        end of their group.

        Args:
            name: Account name
            account_type: Account type
            starting_balance: Opening balance (opening value for market-value accounts)
            starting_balance_date: When the opening balance applies (defaults to now)
            icon: Optional display icon

        Returns:
            Account id

        Raises:
            ValidationError: If the name is empty or the type is unknown
            ConflictError: If an account with the same name exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")
        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError(f"Unknown account type '{account_type}'")

        snapshot = self._snapshot()
        if snapshot.get_account(name) is not None:
            raise ConflictError(duplicate_account_name(name))

        group = ACCOUNT_TYPE_GROUPS[account_type]
        same_group = [acc.order for acc in snapshot.accounts if acc.group == group and acc.order is not None]
        now = self.clock()
        account = Account(
            id=None,
            name=name,
            type=account_type,
            group=group,
            starting_balance=starting_balance,
            starting_balance_date=starting_balance_date or now,
            created_at=now,
            order=max(same_group, default=-1) + 1,
            icon=icon,
        )
        return self.db.create_document(ACCOUNTS, account_to_document(account))

    def seed_default_accounts(self) -> list[str]:
        """Create the default accounts of a new ledger. Existing names are kept."""
        existing = {acc.name for acc in self._snapshot().accounts}
        return [
            self.create_account(name, account_type)
            for name, account_type in DEFAULT_ACCOUNTS
            if name not in existing
        ]

    def get_account(self, account: str) -> Account:
        """Get an account by name or id.

        Raises:
            NotFoundError: If the account does not exist
        """
        return resolve_account(self._snapshot().accounts, account)

    def list_accounts(self, include_archived: bool = True) -> list[Account]:
        """List accounts by group precedence, then user order.

        Loan accounts are listed after the grouped accounts.
        """
        accounts = self._snapshot().accounts
        grouped = [
            acc for _, members in group_accounts(accounts, include_archived) for acc in members
        ]
        loans = sort_by_order(
            acc
            for acc in accounts
            if acc.group == AccountGroup.LOANS and (include_archived or acc.is_active)
        )
        return grouped + loans

    def grouped_accounts(
        self, include_archived: bool = False
    ) -> list[tuple[AccountGroup, list[tuple[Account, Decimal]]]]:
        """Accounts grouped for display, each with its headline value."""
        snapshot = self._snapshot()
        return [
            (group, [(acc, compute_account_value(acc, snapshot.entries)) for acc in members])
            for group, members in group_accounts(snapshot.accounts, include_archived)
        ]

    def _update(self, account: Account, **fields) -> None:
        self.db.update_document(ACCOUNTS, account.id, fields)

    def set_starting_balance(
        self, account: str, amount: Decimal, as_of: Optional[datetime] = None
    ) -> None:
        """Change the opening balance of an account."""
        acc = self.get_account(account)
        fields = {"startingBalance": amount}
        if as_of is not None:
            fields["startingBalanceDate"] = as_of
        self._update(acc, **fields)

    def archive_account(self, account: str) -> None:
        """Hide an account from selection; its entries are kept."""
        self._update(self.get_account(account), isActive=False)

    def unarchive_account(self, account: str) -> None:
        self._update(self.get_account(account), isActive=True)

    def delete_account(self, account: str, force: bool = False) -> int:
        """Delete an account.

        Args:
            account: Account name or id
            force: Also delete every transaction referencing the account

        Returns:
            Number of transactions deleted with the account

        Raises:
            NotFoundError: If the account does not exist
            DependencyError: If transactions reference the account and
                ``force`` is not set
        """
        snapshot = self._snapshot()
        acc = resolve_account(snapshot.accounts, account)
        dependent = entries_for_account(snapshot.entries, acc.name)
        if dependent and not force:
            raise DependencyError(account_delete_blocked(acc.name, len(dependent)))

        ops = [DeleteOp(TRANSACTIONS, entry.id) for entry in dependent]
        ops.append(DeleteOp(ACCOUNTS, acc.id))
        self.db.atomic_batch(ops)
        logger.info("Deleted account '%s' with %d transactions", acc.name, len(dependent))
        return len(dependent)

    def rename_account(self, account: str, new_name: str) -> int:
        """Rename an account and every reference to it in one batch.

        Returns:
            Number of transactions updated

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the new name is empty
            ConflictError: If another account already has the new name
        """
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("Account name is required")
        snapshot = self._snapshot()
        acc = resolve_account(snapshot.accounts, account)
        if new_name == acc.name:
            return 0
        if snapshot.get_account(new_name) is not None:
            raise ConflictError(duplicate_account_name(new_name))

        ops = [UpdateOp(ACCOUNTS, acc.id, {"name": new_name})]
        for entry in entries_for_account(snapshot.entries, acc.name):
            if isinstance(entry, TransferEntry):
                fields = {}
                if entry.from_account == acc.name:
                    fields["fromAccount"] = new_name
                if entry.to_account == acc.name:
                    fields["toAccount"] = new_name
            else:
                fields = {"account": new_name}
            ops.append(UpdateOp(TRANSACTIONS, entry.id, fields))
        self.db.atomic_batch(ops)
        logger.info("Renamed account '%s' to '%s' (%d transactions)", acc.name, new_name, len(ops) - 1)
        return len(ops) - 1

    def reorder_accounts(self, names: Sequence[str]) -> None:
        """Store the given order (first name gets order 0) in one batch.

        Raises:
            NotFoundError: If a name does not match an account
        """
        snapshot = self._snapshot()
        accounts = [resolve_account(snapshot.accounts, name) for name in names]
        self.db.atomic_batch(
            [UpdateOp(ACCOUNTS, acc.id, {"order": index}) for index, acc in enumerate(accounts)]
        )

    def get_balances(self, account: str) -> AccountBalances:
        """Working, cleared and uncleared balance of an account."""
        snapshot = self._snapshot()
        acc = resolve_account(snapshot.accounts, account)
        return compute_balances(acc, snapshot.entries)

    def account_value(self, account: str) -> Decimal:
        """Current value of a market-value account, or working balance otherwise."""
        snapshot = self._snapshot()
        acc = resolve_account(snapshot.accounts, account)
        return compute_account_value(acc, snapshot.entries)

    def value_history(self, account: str) -> ValueReplay:
        """Chronological replay of a market-value account.

        Raises:
            ValidationError: If the account is not a market-value account
        """
        snapshot = self._snapshot()
        acc = resolve_account(snapshot.accounts, account)
        if not acc.is_market_value:
            raise ValidationError(f"Account '{acc.name}' does not track a market value")
        return replay_market_value(acc, snapshot.entries)

    def all_balances(self) -> dict[str, Decimal]:
        """Headline value of every account, keyed by name."""
        snapshot = self._snapshot()
        return {acc.name: compute_account_value(acc, snapshot.entries) for acc in snapshot.accounts}

    def update_value(
        self, account: str, new_value: Decimal, at: Optional[datetime] = None
    ) -> ValueUpdate:
        """Record an absolute value reset on a market-value account.

        The reset sets the replayed value at ``at``; later entries add to it.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the account is not a market-value account
        """
        snapshot = self._snapshot()
        acc = resolve_account(snapshot.accounts, account)
        if not acc.is_market_value:
            raise ValidationError(f"Account '{acc.name}' does not track a market value")
        update = ValueUpdate(
            value=new_value,
            timestamp=at or self.clock(),
            previous_value=compute_account_value(acc, snapshot.entries),
            clear_status=ClearStatus.UNCLEARED,
        )
        history = acc.value_history + (update,)
        self._update(acc, valueHistory=value_history_to_document(history))
        logger.info("Recorded value %s for '%s'", new_value, acc.name)
        return update
