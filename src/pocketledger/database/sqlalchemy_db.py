"""SQLAlchemy document store implementation."""

import logging
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pocketledger.database.base import (
    COLLECTIONS,
    CreateOp,
    DeleteOp,
    Document,
    DocumentStore,
    Operation,
    Subscriber,
    UpdateOp,
)
from pocketledger.database.mappers import encode_value
from pocketledger.database.models import StoredDocument, create_session_factory
from pocketledger.domain.errors import PersistenceError

logger = logging.getLogger(__name__)


class SQLAlchemyDocumentStore(DocumentStore):
    """SQLAlchemy-based implementation of the DocumentStore interface."""

    def __init__(self, database_url: str, owner_id: str = "local"):
        """Initialize the document store.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
            owner_id: Owner whose documents this store reads and writes
        """
        self.database_url = database_url
        self.owner_id = owner_id
        self.session_factory = create_session_factory(database_url)
        self._session: Optional[Session] = None
        self._subscribers: dict[str, list[Subscriber]] = {}

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        # Schema is created automatically by create_session_factory
        pass

    def _check_collection(self, collection: str) -> None:
        if collection not in COLLECTIONS:
            raise PersistenceError(f"Unknown collection '{collection}'")

    def _find_row(self, session: Session, collection: str, document_id: str) -> Optional[StoredDocument]:
        # Other stores may write to the same database; always reload row data
        return (
            session.query(StoredDocument)
            .populate_existing()
            .filter(
                StoredDocument.id == document_id,
                StoredDocument.collection == collection,
                StoredDocument.owner_id == self.owner_id,
            )
            .first()
        )

    def _require_row(self, session: Session, collection: str, document_id: str) -> StoredDocument:
        row = self._find_row(session, collection, document_id)
        if row is None:
            raise PersistenceError(f"Document {collection}/{document_id} not found")
        return row

    @staticmethod
    def _to_document(row: StoredDocument) -> Document:
        document = dict(row.data or {})
        document["id"] = row.id
        return document

    # Writes
    def atomic_batch(self, operations: Sequence[Operation]) -> list[str]:
        """Apply all operations in one transaction; roll back on any failure."""
        operations = list(operations)
        if not operations:
            return []

        session = self._get_session()
        created: list[str] = []
        touched: set[str] = set()
        try:
            for op in operations:
                self._check_collection(op.collection)
                if isinstance(op, CreateOp):
                    session.add(
                        StoredDocument(
                            id=op.id,
                            collection=op.collection,
                            owner_id=self.owner_id,
                            data=encode_value(dict(op.fields)),
                        )
                    )
                    # Later operations of the same batch may refer to this id
                    session.flush()
                    created.append(op.id)
                elif isinstance(op, UpdateOp):
                    row = self._require_row(session, op.collection, op.id)
                    data = dict(row.data or {})
                    data.update(encode_value(dict(op.fields)))
                    data.pop("id", None)
                    row.data = data
                elif isinstance(op, DeleteOp):
                    row = self._require_row(session, op.collection, op.id)
                    session.delete(row)
                else:
                    raise PersistenceError(f"Unsupported operation {op!r}")
                touched.add(op.collection)
            session.commit()
        except PersistenceError:
            session.rollback()
            logger.warning("Rolled back batch of %d operations", len(operations))
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("Rolled back batch of %d operations: %s", len(operations), e)
            raise PersistenceError(f"Write failed: {e}") from e
        except Exception as e:
            # Flushed creates would otherwise be committed by the next write
            session.rollback()
            logger.warning("Rolled back batch of %d operations: %s", len(operations), e)
            raise PersistenceError(f"Invalid operation in batch: {e}") from e

        logger.debug(
            "Committed batch of %d operations on %s", len(operations), ", ".join(sorted(touched))
        )
        self._notify(touched)
        return created

    # Reads
    def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        """Get a document by id."""
        session = self._get_session()
        row = self._find_row(session, collection, document_id)
        if row is None:
            return None
        return self._to_document(row)

    def list_documents(self, collection: str) -> list[Document]:
        """List documents of a collection in insertion order."""
        session = self._get_session()
        rows = (
            session.query(StoredDocument)
            .populate_existing()
            .filter(
                StoredDocument.collection == collection,
                StoredDocument.owner_id == self.owner_id,
            )
            .order_by(StoredDocument.seq)
            .all()
        )
        return [self._to_document(row) for row in rows]

    # Change notification
    def subscribe(self, collection: str, callback: Subscriber) -> Callable[[], None]:
        """Register a listener and deliver the current snapshot immediately."""
        self._check_collection(collection)
        listeners = self._subscribers.setdefault(collection, [])
        listeners.append(callback)
        callback(self.list_documents(collection))

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _notify(self, collections: set[str]) -> None:
        for collection in sorted(collections):
            listeners = list(self._subscribers.get(collection, ()))
            if not listeners:
                continue
            snapshot = self.list_documents(collection)
            for callback in listeners:
                callback(list(snapshot))
