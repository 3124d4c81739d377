"""Document store layer for pocketledger."""

from pocketledger.database.base import DocumentStore
from pocketledger.database.factories import create_sqlite_database

__all__ = ["DocumentStore", "create_sqlite_database"]
