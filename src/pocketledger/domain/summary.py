"""Monthly income and expense reports."""

from decimal import Decimal, ROUND_HALF_UP

from pocketledger.database.base import DocumentStore
from pocketledger.database.mappers import load_snapshot
from pocketledger.domain.entities import (
    CategoryShare,
    CategoryType,
    ExpenseEntry,
    IncomeEntry,
    MonthlyReport,
    SpendingType,
    SplitEntry,
)
from pocketledger.domain.expansion import split_category_lines
from pocketledger.domain.ledger import ZERO
from pocketledger.utils.date_parser import month_bounds

OTHERS = "Others"
DEFAULT_TOP_N = 5

_PERCENT = Decimal("0.01")


def _percent(amount: Decimal, total: Decimal) -> Decimal:
    if total == 0:
        return ZERO
    return (amount / total * 100).quantize(_PERCENT, rounding=ROUND_HALF_UP)


class SummaryService:
    """Service for generating monthly reports."""

    def __init__(self, db: DocumentStore):
        """Initialize summary service.

        Args:
            db: Document store
        """
        self.db = db

    def monthly_report(self, year: int, month: int, top_n: int = DEFAULT_TOP_N) -> MonthlyReport:
        """Summarize one calendar month.

        Loan entries, transfers and unrealized gains are not income or
        expense. Split entries count through their category lines; their
        loan lines are left out.

        Args:
            year: Year of the month
            month: Month number (1-12)
            top_n: Number of categories shown before folding the rest into "Others"

        Returns:
            MonthlyReport with per-category expense shares sorted by amount
        """
        if top_n < 1:
            raise ValueError("top_n must be at least 1")
        start, end = month_bounds(year, month)
        snapshot = load_snapshot(self.db)
        spending_types = {
            c.name: c.spending_type
            for c in snapshot.categories
            if c.type == CategoryType.EXPENSE
        }

        income = ZERO
        expense = ZERO
        by_category: dict[str, Decimal] = {}

        def add_expense(category, amount):
            nonlocal expense
            expense += amount
            if category:
                by_category[category] = by_category.get(category, ZERO) + amount

        for entry in snapshot.entries:
            if not start <= entry.date <= end:
                continue
            if isinstance(entry, IncomeEntry):
                income += entry.amount
            elif isinstance(entry, ExpenseEntry):
                add_expense(entry.category, abs(entry.amount))
            elif isinstance(entry, SplitEntry):
                for line in split_category_lines(entry):
                    if entry.split_type == CategoryType.EXPENSE:
                        add_expense(line.category, abs(line.signed_amount))
                    else:
                        income += abs(line.signed_amount)

        ranked = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
        categories = tuple(
            CategoryShare(name, amount, _percent(amount, expense)) for name, amount in ranked
        )
        chart = list(categories[:top_n])
        rest = sum((share.amount for share in categories[top_n:]), ZERO)
        if rest > 0:
            chart.append(CategoryShare(OTHERS, rest, _percent(rest, expense)))

        need = want = ZERO
        for name, amount in by_category.items():
            spending_type = spending_types.get(name)
            if spending_type == SpendingType.NEED:
                need += amount
            elif spending_type == SpendingType.WANT:
                want += amount

        return MonthlyReport(
            year=year,
            month=month,
            income=income,
            expense=expense,
            categories=categories,
            chart=tuple(chart),
            need=need,
            want=want,
            unclassified=expense - need - want,
        )
