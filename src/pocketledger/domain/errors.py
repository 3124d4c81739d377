"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input, rejected before any mutation."""


class NotFoundError(DomainError):
    """Requested account, category, entry or loan does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class StateConflictError(DomainError):
    """Mutation refused because of the current clear status of an entry."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class PersistenceError(DomainError):
    """A write to the document store failed; nothing was applied."""


def account_not_found(name: str) -> str:
    """Return message for missing account."""
    return f"Account '{name}' not found"


def category_not_found(name: str) -> str:
    """Return message for missing category."""
    return f"Category '{name}' not found"


def entry_not_found(entry_id: str) -> str:
    """Return message for missing entry."""
    return f"Transaction {entry_id} not found"


def loan_not_found(name: str) -> str:
    """Return message for missing loan."""
    return f"Loan '{name}' not found"


def duplicate_account_name(name: str) -> str:
    """Return message for duplicate account names."""
    return f"Account with name '{name}' already exists"


def duplicate_category_name(name: str, category_type: str) -> str:
    """Return message for duplicate category names."""
    return f"{category_type.capitalize()} category '{name}' already exists"


def entry_locked(entry_id: str) -> str:
    """Return message for edits attempted on a reconciled entry."""
    return (
        f"Transaction {entry_id} is reconciled and locked. "
        "Undo the reconciliation first."
    )


def split_part_read_only(entry_id: str) -> str:
    """Return message for edits attempted on a split-derived loan row."""
    return (
        f"'{entry_id}' is part of a split transaction and cannot be changed "
        "on its own. Edit the split transaction instead."
    )


def account_delete_blocked(name: str, entry_count: int) -> str:
    """Return message when account has dependent entries."""
    return (
        f"Cannot delete account '{name}': it has {entry_count} "
        f"transaction{'s' if entry_count != 1 else ''}. "
        "Archive it instead, or delete the transactions first."
    )
