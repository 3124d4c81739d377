"""Utility for resolving account references."""

from typing import Iterable

from pocketledger.domain.entities import Account
from pocketledger.domain.errors import NotFoundError, account_not_found


def resolve_account(accounts: Iterable[Account], account: str) -> Account:
    """Resolve an account name or document id to an Account.

    Exact name matches win over id matches; a case-insensitive name match is
    accepted when it is unambiguous.

    Args:
        accounts: Accounts of the ledger
        account: Account name or id

    Returns:
        Account entity

    Raises:
        NotFoundError: If no account matches
    """
    accounts = list(accounts)
    for acc in accounts:
        if acc.name == account:
            return acc
    for acc in accounts:
        if acc.id is not None and acc.id == account:
            return acc

    folded = [acc for acc in accounts if acc.name.casefold() == str(account).casefold()]
    if len(folded) == 1:
        return folded[0]

    raise NotFoundError(account_not_found(account))
