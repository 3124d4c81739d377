"""Mapper functions to convert between stored documents and domain entities.

Documents are flat camelCase maps. Reads are lenient: missing optional
fields take their defaults and malformed numbers become zero, so an old or
partially written document never breaks a recomputation pass. Writes always
produce JSON-ready values (Decimals as strings, dates as ``YYYY-MM-DD``,
instants as ISO 8601 UTC).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pocketledger.database.base import (
    ACCOUNTS,
    CATEGORIES,
    TRANSACTIONS,
    Document,
    DocumentStore,
)
from pocketledger.domain import entities as domain
from pocketledger.domain.entities import (
    ACCOUNT_TYPE_GROUPS,
    AccountGroup,
    AccountType,
    CategoryType,
    ClearStatus,
    EntryKind,
    LoanType,
    SpendingType,
)
from pocketledger.utils.amount_parser import coerce_decimal
from pocketledger.utils.timestamps import (
    instant_to_storage,
    normalize_date,
    normalize_instant,
)

# Used for entries whose stored date is missing or unreadable.
UNDATED = date.min


def encode_value(value: Any) -> Any:
    """Convert a Python value into its stored JSON representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return instant_to_storage(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def _enum(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else coerce_decimal(value)


def _optional_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _text(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


# Value history

def value_update_to_domain(document: Document) -> domain.ValueUpdate:
    """Convert a stored value reset into a ValueUpdate."""
    timestamp = normalize_instant(document.get("timestamp")) or normalize_instant(
        document.get("date")
    )
    return domain.ValueUpdate(
        value=coerce_decimal(document.get("value")),
        timestamp=timestamp,
        previous_value=_optional_decimal(document.get("previousValue")),
        clear_status=_enum(ClearStatus, document.get("clearStatus"), ClearStatus.UNCLEARED),
        reconciled_at=normalize_instant(document.get("reconciledAt")),
        reconcile_session_id=document.get("reconcileSessionId"),
    )


def value_update_to_document(update: domain.ValueUpdate) -> Document:
    timestamp = normalize_instant(update.timestamp)
    return encode_value(
        {
            "value": update.value,
            "previousValue": update.previous_value,
            "date": timestamp.date() if timestamp is not None else None,
            "timestamp": timestamp,
            "clearStatus": update.clear_status,
            "reconciledAt": update.reconciled_at,
            "reconcileSessionId": update.reconcile_session_id,
        }
    )


def value_history_to_document(history) -> list[Document]:
    return [value_update_to_document(update) for update in history]


# Accounts

def account_to_domain(document: Document) -> domain.Account:
    """Convert a stored account document into an Account entity."""
    account_type = _enum(AccountType, document.get("type"), AccountType.CASH)
    group = _enum(AccountGroup, document.get("group"), ACCOUNT_TYPE_GROUPS[account_type])
    history = document.get("valueHistory") or []
    return domain.Account(
        id=document.get("id"),
        name=str(document.get("name") or ""),
        type=account_type,
        group=group,
        is_active=document.get("isActive", True) is not False,
        starting_balance=coerce_decimal(document.get("startingBalance")),
        starting_balance_date=normalize_instant(document.get("startingBalanceDate")),
        created_at=normalize_instant(document.get("createdAt")),
        order=_optional_int(document.get("order")),
        icon=document.get("icon"),
        last_reconcile_date=normalize_instant(document.get("lastReconcileDate")),
        last_reconcile_balance=_optional_decimal(document.get("lastReconcileBalance")),
        last_reconcile_session_id=document.get("lastReconcileSessionId"),
        value_history=tuple(
            value_update_to_domain(item) for item in history if isinstance(item, dict)
        ),
    )


def account_to_document(account: domain.Account) -> Document:
    """Convert an Account entity into document fields (without ``id``)."""
    return encode_value(
        {
            "name": account.name,
            "type": account.type,
            "group": account.group,
            "isActive": account.is_active,
            "startingBalance": account.starting_balance,
            "startingBalanceDate": account.starting_balance_date,
            "createdAt": account.created_at,
            "order": account.order,
            "icon": account.icon,
            "lastReconcileDate": account.last_reconcile_date,
            "lastReconcileBalance": account.last_reconcile_balance,
            "lastReconcileSessionId": account.last_reconcile_session_id,
            "valueHistory": value_history_to_document(account.value_history),
        }
    )


# Categories

def category_to_domain(document: Document) -> domain.Category:
    """Convert a stored category document into a Category entity."""
    category_type = _enum(CategoryType, document.get("type"), CategoryType.EXPENSE)
    spending_type = None
    if category_type == CategoryType.EXPENSE and document.get("spendingType"):
        spending_type = _enum(SpendingType, document.get("spendingType"), None)
    return domain.Category(
        id=document.get("id"),
        name=str(document.get("name") or ""),
        type=category_type,
        group=_text(document.get("group")),
        spending_type=spending_type,
        order=_optional_int(document.get("order")),
    )


def category_to_document(category: domain.Category) -> Document:
    return encode_value(
        {
            "name": category.name,
            "type": category.type,
            "group": category.group,
            "spendingType": category.spending_type,
            "order": category.order,
        }
    )


# Entries

def split_line_to_domain(document: Document) -> domain.SplitLine:
    return domain.SplitLine(
        amount=coerce_decimal(document.get("amount")),
        category=_text(document.get("category")),
        is_loan=bool(document.get("isLoan", False)),
        loan=_text(document.get("loan")),
        memo=_text(document.get("memo")),
    )


def split_line_to_document(line: domain.SplitLine) -> Document:
    return encode_value(
        {
            "amount": line.amount,
            "category": line.category,
            "isLoan": line.is_loan,
            "loan": line.loan,
            "memo": line.memo,
        }
    )


def entry_to_domain(document: Document) -> Optional[domain.Entry]:
    """Convert a stored transaction document into an Entry.

    Returns:
        Entry of the concrete kind, or None for an unknown ``type``
    """
    try:
        kind = EntryKind(document.get("type"))
    except ValueError:
        return None

    common = dict(
        id=document.get("id"),
        date=normalize_date(document.get("date")) or UNDATED,
        created_at=normalize_instant(document.get("createdAt")),
        memo=_text(document.get("memo")),
        clear_status=_enum(ClearStatus, document.get("clearStatus"), ClearStatus.UNCLEARED),
        reconciled_at=normalize_instant(document.get("reconciledAt")),
        reconcile_session_id=document.get("reconcileSessionId"),
    )
    amount = coerce_decimal(document.get("amount"))
    account = str(document.get("account") or "")

    if kind == EntryKind.EXPENSE:
        return domain.ExpenseEntry(
            amount=amount,
            account=account,
            category=_text(document.get("category")),
            payee=_text(document.get("payee")),
            **common,
        )
    if kind == EntryKind.INCOME:
        return domain.IncomeEntry(
            amount=amount,
            account=account,
            category=_text(document.get("category")),
            payee=_text(document.get("payee")),
            **common,
        )
    if kind == EntryKind.TRANSFER:
        return domain.TransferEntry(
            amount=abs(amount),
            from_account=str(document.get("fromAccount") or ""),
            to_account=str(document.get("toAccount") or ""),
            **common,
        )
    if kind == EntryKind.SPLIT:
        splits = document.get("splits") or []
        return domain.SplitEntry(
            total_amount=coerce_decimal(document.get("totalAmount", document.get("amount"))),
            split_type=_enum(CategoryType, document.get("splitType"), CategoryType.EXPENSE),
            account=account,
            payee=_text(document.get("payee")),
            splits=tuple(split_line_to_domain(line) for line in splits if isinstance(line, dict)),
            **common,
        )
    if kind == EntryKind.LOAN:
        return domain.LoanEntry(
            amount=amount,
            loan=str(document.get("loan") or ""),
            loan_type=_enum(LoanType, document.get("loanType"), LoanType.BORROW),
            account=account,
            payee=_text(document.get("payee")),
            **common,
        )
    return domain.UnrealizedGainEntry(amount=amount, account=account, **common)


def entry_to_document(entry: domain.Entry) -> Document:
    """Convert an Entry into document fields (without ``id``)."""
    fields: dict[str, Any] = {
        "type": entry.kind,
        "date": entry.date,
        "createdAt": entry.created_at,
        "memo": entry.memo,
        "clearStatus": entry.clear_status,
        "reconciledAt": entry.reconciled_at,
        "reconcileSessionId": entry.reconcile_session_id,
    }
    if isinstance(entry, (domain.ExpenseEntry, domain.IncomeEntry)):
        fields.update(
            amount=entry.amount,
            account=entry.account,
            category=entry.category,
            payee=entry.payee,
        )
    elif isinstance(entry, domain.TransferEntry):
        fields.update(
            amount=entry.amount,
            fromAccount=entry.from_account,
            toAccount=entry.to_account,
        )
    elif isinstance(entry, domain.SplitEntry):
        fields.update(
            totalAmount=entry.total_amount,
            # Mirrors totalAmount for readers that only look at ``amount``.
            amount=entry.total_amount,
            splitType=entry.split_type,
            account=entry.account,
            payee=entry.payee,
            splits=[split_line_to_document(line) for line in entry.splits],
        )
    elif isinstance(entry, domain.LoanEntry):
        fields.update(
            amount=entry.amount,
            loan=entry.loan,
            loanType=entry.loan_type,
            account=entry.account,
            payee=entry.payee,
        )
    elif isinstance(entry, domain.UnrealizedGainEntry):
        fields.update(amount=entry.amount, account=entry.account)
    return encode_value(fields)


def load_snapshot(db: DocumentStore) -> domain.LedgerSnapshot:
    """Read every collection of the owner into an in-memory snapshot."""
    accounts = [account_to_domain(doc) for doc in db.list_documents(ACCOUNTS)]
    categories = [category_to_domain(doc) for doc in db.list_documents(CATEGORIES)]
    entries = [
        entry
        for entry in (entry_to_domain(doc) for doc in db.list_documents(TRANSACTIONS))
        if entry is not None
    ]
    return domain.LedgerSnapshot.build(accounts, categories, entries)
