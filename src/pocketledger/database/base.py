"""Abstract document store interface.

The ledger is persisted as flat documents in three collections
(``accounts``, ``categories``, ``transactions``). Multi-document writes are
expressed as a list of operations handed to :meth:`DocumentStore.atomic_batch`,
which applies all of them or none.
"""

import operator
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence, Union

ACCOUNTS = "accounts"
CATEGORIES = "categories"
TRANSACTIONS = "transactions"

COLLECTIONS = (ACCOUNTS, CATEGORIES, TRANSACTIONS)

Document = dict[str, Any]
Subscriber = Callable[[list[Document]], None]


def new_document_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CreateOp:
    """Create a document. The id is assigned up front so batches can refer to it."""

    collection: str
    fields: Document
    id: str = field(default_factory=new_document_id)


@dataclass(frozen=True)
class UpdateOp:
    """Merge ``fields`` into an existing document. A ``None`` value stores null."""

    collection: str
    id: str
    fields: Document


@dataclass(frozen=True)
class DeleteOp:
    collection: str
    id: str


Operation = Union[CreateOp, UpdateOp, DeleteOp]

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


@dataclass(frozen=True)
class Filter:
    """Equality or range condition on a top-level document field."""

    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in _COMPARATORS:
            raise ValueError(f"Unsupported filter operator '{self.op}'")

    def matches(self, document: Document) -> bool:
        actual = document.get(self.field)
        if self.op not in ("==", "!=", "in") and actual is None:
            return False
        try:
            return bool(_COMPARATORS[self.op](actual, self.value))
        except TypeError:
            return False


def where(field_name: str, op: str, value: Any) -> Filter:
    return Filter(field_name, op, value)


class DocumentStore(ABC):
    """Abstract document store scoped to a single owner."""

    owner_id: str

    @abstractmethod
    def connect(self) -> None:
        """Connect to the store."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the store."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Create backing tables if needed."""
        pass

    @abstractmethod
    def atomic_batch(self, operations: Sequence[Operation]) -> list[str]:
        """Apply every operation or none of them.

        Returns:
            Ids of the documents created by the batch, in order

        Raises:
            PersistenceError: If any operation fails; nothing is applied
        """
        pass

    @abstractmethod
    def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        """Get a document (with its ``id``) or None."""
        pass

    @abstractmethod
    def list_documents(self, collection: str) -> list[Document]:
        """List every document of a collection in insertion order."""
        pass

    @abstractmethod
    def subscribe(self, collection: str, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes.

        The callback receives the current collection snapshot right away and
        a fresh one after every committed batch touching the collection.
        """
        pass

    def create_document(self, collection: str, fields: Document) -> str:
        """Create a document. Returns the new document id."""
        return self.atomic_batch([CreateOp(collection, dict(fields))])[0]

    def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        self.atomic_batch([UpdateOp(collection, document_id, dict(fields))])

    def delete_document(self, collection: str, document_id: str) -> None:
        self.atomic_batch([DeleteOp(collection, document_id)])

    def query(self, collection: str, filters: Iterable[Filter] = ()) -> list[Document]:
        """Documents of a collection matching every filter."""
        filters = list(filters)
        return [
            document
            for document in self.list_documents(collection)
            if all(condition.matches(document) for condition in filters)
        ]
