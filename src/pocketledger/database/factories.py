"""Database factory functions for creating document store instances."""

from pathlib import Path
from typing import Optional

from pocketledger.database.sqlalchemy_db import SQLAlchemyDocumentStore
from pocketledger.settings import Settings


def create_sqlite_database(
    database_path: Optional[str] = None, owner_id: Optional[str] = None
) -> SQLAlchemyDocumentStore:
    """Create a SQLite-backed document store.

    Args:
        database_path: Path to SQLite database file. If None, checks
            POCKETLEDGER_DB_PATH, then defaults to ~/.pocketledger/pocketledger.db
        owner_id: Ledger owner. If None, checks POCKETLEDGER_OWNER, then "local"

    Returns:
        SQLAlchemyDocumentStore configured for SQLite
    """
    settings = Settings.from_env()
    if database_path is None:
        database_path = settings.database_path
        Path(database_path).parent.mkdir(parents=True, exist_ok=True)

    if owner_id is None:
        owner_id = settings.owner_id

    return SQLAlchemyDocumentStore(f"sqlite:///{database_path}", owner_id=owner_id)
