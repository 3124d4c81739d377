"""Domain model entities for pocketledger.

These are pure data classes representing business concepts, independent of
how the document store lays them out. Entries form a tagged union: every
concrete entry class carries a ``kind`` class attribute, and the ledger code
dispatches on the concrete type rather than on loose strings.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Union


class EntryKind(str, Enum):
    """Kinds of ledger entries."""

    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"
    SPLIT = "split"
    LOAN = "loan"
    UNREALIZED_GAIN = "unrealized_gain"


class ClearStatus(str, Enum):
    """Bank-statement matching state of an entry."""

    UNCLEARED = "uncleared"
    CLEARED = "cleared"
    RECONCILED = "reconciled"

    @property
    def counts_as_cleared(self) -> bool:
        return self in (ClearStatus.CLEARED, ClearStatus.RECONCILED)


class AccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    PROPERTY = "property"
    VEHICLE = "vehicle"
    ASSET = "asset"
    LOAN = "loan"


class AccountGroup(str, Enum):
    SPENDING = "SPENDING"
    SAVINGS = "SAVINGS"
    INVESTMENTS = "INVESTMENTS"
    LOANS = "LOANS"


ACCOUNT_TYPE_GROUPS: dict[AccountType, AccountGroup] = {
    AccountType.CASH: AccountGroup.SPENDING,
    AccountType.BANK: AccountGroup.SPENDING,
    AccountType.SAVINGS: AccountGroup.SAVINGS,
    AccountType.INVESTMENT: AccountGroup.INVESTMENTS,
    AccountType.PROPERTY: AccountGroup.INVESTMENTS,
    AccountType.VEHICLE: AccountGroup.INVESTMENTS,
    AccountType.ASSET: AccountGroup.INVESTMENTS,
    AccountType.LOAN: AccountGroup.LOANS,
}

MARKET_VALUE_TYPES = frozenset(
    {AccountType.INVESTMENT, AccountType.PROPERTY, AccountType.VEHICLE, AccountType.ASSET}
)

# Display precedence of account groups; LOANS is never part of the grouped view.
GROUP_ORDER: tuple[AccountGroup, ...] = (
    AccountGroup.SPENDING,
    AccountGroup.SAVINGS,
    AccountGroup.INVESTMENTS,
)


class CategoryType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class SpendingType(str, Enum):
    NEED = "need"
    WANT = "want"


class LoanType(str, Enum):
    BORROW = "borrow"
    LEND = "lend"


class LoanDirection(str, Enum):
    """Cash direction of a loan entry: money coming in or going out."""

    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class ValueUpdate:
    """Legacy absolute value reset recorded on a market-value account."""

    value: Decimal
    timestamp: datetime
    previous_value: Optional[Decimal] = None
    clear_status: ClearStatus = ClearStatus.UNCLEARED
    reconciled_at: Optional[datetime] = None
    reconcile_session_id: Optional[str] = None


@dataclass(frozen=True)
class Account:
    """Named balance-holding bucket."""

    id: Optional[str]
    name: str
    type: AccountType
    group: AccountGroup
    is_active: bool = True
    starting_balance: Decimal = Decimal("0")
    starting_balance_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    order: Optional[int] = None
    icon: Optional[str] = None
    last_reconcile_date: Optional[datetime] = None
    last_reconcile_balance: Optional[Decimal] = None
    last_reconcile_session_id: Optional[str] = None
    value_history: tuple[ValueUpdate, ...] = ()

    @property
    def is_market_value(self) -> bool:
        """True for accounts tracking a marked-to-market position."""
        return self.type in MARKET_VALUE_TYPES


@dataclass(frozen=True)
class Category:
    """Expense or income category."""

    id: Optional[str]
    name: str
    type: CategoryType
    group: Optional[str] = None
    spending_type: Optional[SpendingType] = None
    order: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class Entry:
    """Fields shared by every ledger entry."""

    kind: ClassVar[EntryKind]

    id: Optional[str] = None
    date: date
    created_at: Optional[datetime] = None
    memo: Optional[str] = None
    clear_status: ClearStatus = ClearStatus.UNCLEARED
    reconciled_at: Optional[datetime] = None
    reconcile_session_id: Optional[str] = None

    @property
    def is_reconciled(self) -> bool:
        return self.clear_status == ClearStatus.RECONCILED


@dataclass(frozen=True, kw_only=True)
class ExpenseEntry(Entry):
    """Money spent from an account; ``amount`` is stored negative."""

    kind: ClassVar[EntryKind] = EntryKind.EXPENSE

    amount: Decimal
    account: str
    category: Optional[str] = None
    payee: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class IncomeEntry(Entry):
    """Money received into an account; ``amount`` is stored positive."""

    kind: ClassVar[EntryKind] = EntryKind.INCOME

    amount: Decimal
    account: str
    category: Optional[str] = None
    payee: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class TransferEntry(Entry):
    """Movement between two accounts; ``amount`` is an unsigned magnitude."""

    kind: ClassVar[EntryKind] = EntryKind.TRANSFER

    amount: Decimal
    from_account: str
    to_account: str


@dataclass(frozen=True)
class SplitLine:
    """One line of a split entry: either a category line or a loan line."""

    amount: Decimal
    category: Optional[str] = None
    is_loan: bool = False
    loan: Optional[str] = None
    memo: Optional[str] = None

    @property
    def is_well_formed(self) -> bool:
        if self.is_loan:
            return bool(self.loan)
        return bool(self.category)


@dataclass(frozen=True, kw_only=True)
class SplitEntry(Entry):
    """A single payment divided across several category or loan lines."""

    kind: ClassVar[EntryKind] = EntryKind.SPLIT

    total_amount: Decimal
    split_type: CategoryType
    account: str
    payee: Optional[str] = None
    splits: tuple[SplitLine, ...] = ()


@dataclass(frozen=True, kw_only=True)
class LoanEntry(Entry):
    """Money lent or borrowed; positive is inbound, negative outbound."""

    kind: ClassVar[EntryKind] = EntryKind.LOAN

    amount: Decimal
    loan: str
    loan_type: LoanType
    account: str
    payee: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class UnrealizedGainEntry(Entry):
    """Mark-to-market change of a market-value account."""

    kind: ClassVar[EntryKind] = EntryKind.UNREALIZED_GAIN

    amount: Decimal
    account: str


AnyEntry = Union[
    ExpenseEntry, IncomeEntry, TransferEntry, SplitEntry, LoanEntry, UnrealizedGainEntry
]

ENTRY_CLASSES: dict[EntryKind, type] = {
    cls.kind: cls
    for cls in (
        ExpenseEntry,
        IncomeEntry,
        TransferEntry,
        SplitEntry,
        LoanEntry,
        UnrealizedGainEntry,
    )
}


@dataclass(frozen=True)
class AccountBalances:
    """Balances of a non-market account."""

    working_balance: Decimal
    cleared_balance: Decimal
    uncleared_balance: Decimal


@dataclass(frozen=True)
class ValuePoint:
    """Running value of a market-value account after one replayed event."""

    timestamp: datetime
    source: str
    amount: Decimal
    running_value: Decimal
    entry_id: Optional[str] = None


@dataclass(frozen=True)
class ValueReplay:
    """Result of replaying a market-value account chronologically."""

    points: tuple[ValuePoint, ...]
    current_value: Decimal

    @property
    def running_values(self) -> list[Decimal]:
        return [point.running_value for point in self.points]


@dataclass(frozen=True)
class CategoryLine:
    """Signed contribution of an entry (or split line) to a category."""

    category: str
    signed_amount: Decimal
    date: date
    account: str
    memo: Optional[str]
    entry_id: Optional[str]
    is_split_part: bool = False


@dataclass(frozen=True)
class LoanLine:
    """Row of a loan view: a loan entry or a read-only split-derived pseudo-entry."""

    id: Optional[str]
    loan: str
    amount: Decimal
    date: date
    account: str
    memo: Optional[str] = None
    payee: Optional[str] = None
    created_at: Optional[datetime] = None
    loan_type: Optional[LoanType] = None
    is_split_part: bool = False
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class Loan:
    """Derived aggregate of every entry sharing a loan name."""

    name: str
    loan_type: LoanType
    balance: Decimal
    paid_back: Decimal
    received: Decimal
    transactions: tuple[LoanLine, ...] = ()


@dataclass(frozen=True)
class LoanOverview:
    """Loans split by direction, with totals."""

    borrowed: tuple[Loan, ...]
    lent: tuple[Loan, ...]
    total_borrowed: Decimal
    total_lent: Decimal

    @property
    def net_position(self) -> Decimal:
        return self.total_lent - self.total_borrowed


@dataclass(frozen=True)
class NoOpOutcome:
    """Recognized empty result; nothing was changed."""

    reason: str


NOTHING_TO_RECONCILE = "No cleared items to reconcile"
NOTHING_TO_UNDO = "Nothing to undo"
NOTHING_TO_UNLOCK = "Nothing to unlock"
UNLOCK_CANCELLED = "Unlock cancelled"


@dataclass(frozen=True)
class MismatchWarning:
    """Statement balance differs from the computed cleared total."""

    cleared_total: Decimal
    statement_balance: Decimal
    diff: Decimal


@dataclass(frozen=True)
class ReconcileResult:
    """Committed reconciliation."""

    account: str
    session_id: str
    reconciled_at: datetime
    balance: Decimal
    entry_ids: tuple[str, ...] = ()
    value_update_count: int = 0


@dataclass(frozen=True)
class UnreconcileResult:
    """Committed undo of the last reconciliation."""

    account: str
    entry_ids: tuple[str, ...] = ()
    value_update_count: int = 0


@dataclass(frozen=True)
class CategoryShare:
    """Expense total of one category within a report."""

    name: str
    amount: Decimal
    percent: Decimal


@dataclass(frozen=True)
class MonthlyReport:
    """Income and expense summary for one calendar month."""

    year: int
    month: int
    income: Decimal
    expense: Decimal
    categories: tuple[CategoryShare, ...] = ()
    chart: tuple[CategoryShare, ...] = ()
    need: Decimal = Decimal("0")
    want: Decimal = Decimal("0")
    unclassified: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class LedgerSnapshot:
    """In-memory copy of one owner's accounts, categories and entries."""

    accounts: tuple[Account, ...] = ()
    categories: tuple[Category, ...] = ()
    entries: tuple[Entry, ...] = ()
    account_index: dict[str, Account] = field(default_factory=dict, compare=False)

    @classmethod
    def build(cls, accounts, categories, entries) -> "LedgerSnapshot":
        accounts = tuple(accounts)
        return cls(
            accounts=accounts,
            categories=tuple(categories),
            entries=tuple(entries),
            account_index={acc.name: acc for acc in accounts},
        )

    def get_account(self, name: str) -> Optional[Account]:
        return self.account_index.get(name)
