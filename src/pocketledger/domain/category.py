"""Category domain service."""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional, Sequence

from pocketledger.database.base import CATEGORIES, TRANSACTIONS, DeleteOp, DocumentStore, UpdateOp
from pocketledger.database.mappers import (
    category_to_document,
    load_snapshot,
    split_line_to_document,
)
from pocketledger.domain.entities import (
    Category,
    CategoryType,
    ExpenseEntry,
    IncomeEntry,
    LedgerSnapshot,
    SpendingType,
    SplitEntry,
)
from pocketledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_not_found,
    duplicate_category_name,
)
from pocketledger.domain.expansion import category_lines, category_totals
from pocketledger.domain.ordering import sort_by_order
from pocketledger.utils.date_parser import month_bounds

logger = logging.getLogger(__name__)


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: DocumentStore):
        """Initialize category service.

        Args:
            db: Document store
        """
        self.db = db

    def _snapshot(self) -> LedgerSnapshot:
        return load_snapshot(self.db)

    def create_category(
        self,
        name: str,
        category_type: CategoryType | str,
        group: str,
        spending_type: Optional[SpendingType | str] = None,
    ) -> str:
        """Create a category.

        Args:
            name: Category name
            category_type: expense or income
            group: Group the category is listed under
            spending_type: need or want (expense categories only)

        Returns:
            Category id

        Raises:
            ValidationError: If a field is missing or invalid
            ConflictError: If a category with the same name and type exists
        """
        name = (name or "").strip()
        group = (group or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if not group:
            raise ValidationError("Category group is required")
        try:
            category_type = CategoryType(category_type)
            spending_type = SpendingType(spending_type) if spending_type else None
        except ValueError as e:
            raise ValidationError(str(e))
        if spending_type is not None and category_type != CategoryType.EXPENSE:
            raise ValidationError("Only expense categories have a spending type")

        snapshot = self._snapshot()
        if self._find(snapshot, name, category_type) is not None:
            raise ConflictError(duplicate_category_name(name, category_type.value))

        orders = [c.order for c in snapshot.categories if c.group == group and c.order is not None]
        category = Category(
            id=None,
            name=name,
            type=category_type,
            group=group,
            spending_type=spending_type,
            order=max(orders, default=-1) + 1,
        )
        return self.db.create_document(CATEGORIES, category_to_document(category))

    @staticmethod
    def _find(
        snapshot: LedgerSnapshot, name: str, category_type: Optional[CategoryType] = None
    ) -> Optional[Category]:
        for category in snapshot.categories:
            if category.name == name and (category_type is None or category.type == category_type):
                return category
        return None

    def get_category(
        self, name: str, category_type: Optional[CategoryType | str] = None
    ) -> Optional[Category]:
        """Get a category by name (and type, when names are shared).

        Returns:
            Category or None if not found
        """
        category_type = CategoryType(category_type) if category_type else None
        return self._find(self._snapshot(), name, category_type)

    def _require(self, snapshot, name, category_type) -> Category:
        category_type = CategoryType(category_type) if category_type else None
        category = self._find(snapshot, name, category_type)
        if category is None:
            raise NotFoundError(category_not_found(name))
        return category

    def list_categories(
        self, category_type: Optional[CategoryType | str] = None
    ) -> list[Category]:
        """List categories in user order.

        Args:
            category_type: Only categories of this type
        """
        categories = self._snapshot().categories
        if category_type is not None:
            categories = [c for c in categories if c.type == CategoryType(category_type)]
        return sort_by_order(categories)

    def grouped_categories(
        self, category_type: Optional[CategoryType | str] = None
    ) -> list[tuple[str, list[Category]]]:
        """Categories grouped by group name, groups in order of their first category."""
        groups: dict[str, list[Category]] = {}
        for category in self.list_categories(category_type):
            groups.setdefault(category.group or "", []).append(category)
        return list(groups.items())

    def rename_category(
        self,
        name: str,
        new_name: str,
        category_type: Optional[CategoryType | str] = None,
    ) -> int:
        """Rename a category and every transaction using it, in one batch.

        Split lines naming the category are renamed too.

        Returns:
            Number of transactions updated

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If the new name is empty
            ConflictError: If a category of the same type already has the new name
        """
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("Category name is required")
        snapshot = self._snapshot()
        category = self._require(snapshot, name, category_type)
        if new_name == category.name:
            return 0
        if self._find(snapshot, new_name, category.type) is not None:
            raise ConflictError(duplicate_category_name(new_name, category.type.value))

        ops = [UpdateOp(CATEGORIES, category.id, {"name": new_name})]
        for entry in snapshot.entries:
            if isinstance(entry, (ExpenseEntry, IncomeEntry)):
                if entry.category == category.name and entry.kind.value == category.type.value:
                    ops.append(UpdateOp(TRANSACTIONS, entry.id, {"category": new_name}))
            elif isinstance(entry, SplitEntry) and entry.split_type == category.type:
                if any(not line.is_loan and line.category == category.name for line in entry.splits):
                    splits = [
                        split_line_to_document(
                            replace(line, category=new_name)
                            if not line.is_loan and line.category == category.name
                            else line
                        )
                        for line in entry.splits
                    ]
                    ops.append(UpdateOp(TRANSACTIONS, entry.id, {"splits": splits}))
        self.db.atomic_batch(ops)
        logger.info(
            "Renamed category '%s' to '%s' (%d transactions)", category.name, new_name, len(ops) - 1
        )
        return len(ops) - 1

    def set_spending_type(
        self, name: str, spending_type: Optional[SpendingType | str]
    ) -> None:
        """Classify an expense category as need or want (None clears it)."""
        snapshot = self._snapshot()
        category = self._require(snapshot, name, CategoryType.EXPENSE)
        value = SpendingType(spending_type).value if spending_type else None
        self.db.update_document(CATEGORIES, category.id, {"spendingType": value})

    def rename_group(self, group: str, new_group: str) -> int:
        """Move every category of a group to a new group name in one batch.

        Returns:
            Number of categories updated

        Raises:
            NotFoundError: If no category belongs to the group
            ValidationError: If the new group name is empty
        """
        new_group = (new_group or "").strip()
        if not new_group:
            raise ValidationError("Group name is required")
        members = [c for c in self._snapshot().categories if c.group == group]
        if not members:
            raise NotFoundError(f"Category group '{group}' not found")
        self.db.atomic_batch([UpdateOp(CATEGORIES, c.id, {"group": new_group}) for c in members])
        return len(members)

    def delete_group(self, group: str) -> int:
        """Delete every category of a group. Transactions keep their category names.

        Returns:
            Number of categories deleted
        """
        members = [c for c in self._snapshot().categories if c.group == group]
        if not members:
            raise NotFoundError(f"Category group '{group}' not found")
        self.db.atomic_batch([DeleteOp(CATEGORIES, c.id) for c in members])
        return len(members)

    def delete_category(self, name: str, category_type: Optional[CategoryType | str] = None) -> None:
        """Delete a category. Transactions keep their category names."""
        snapshot = self._snapshot()
        category = self._require(snapshot, name, category_type)
        self.db.delete_document(CATEGORIES, category.id)

    def reorder_categories(
        self, names: Sequence[str], category_type: Optional[CategoryType | str] = None
    ) -> None:
        """Store the given order (first name gets order 0) in one batch."""
        snapshot = self._snapshot()
        categories = [self._require(snapshot, name, category_type) for name in names]
        self.db.atomic_batch(
            [UpdateOp(CATEGORIES, c.id, {"order": index}) for index, c in enumerate(categories)]
        )

    def monthly_totals(self, year: int, month: int) -> dict[str, Decimal]:
        """Signed total per category for one month, split lines included.

        Loan entries and loan split lines do not belong to any category.
        """
        start, end = month_bounds(year, month)
        entries = [e for e in self._snapshot().entries if start <= e.date <= end]
        return category_totals(category_lines(entries))
