from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from penny.domain.enums import Category
from penny.domain.models import Expense
from penny.services.models import CategoryStat, DashboardView, VendorStat

TOP_VENDORS_LIMIT = 5

# Position of each category in the enumeration, used to order month buckets
_CATEGORY_ORDER = {category: position for position, category in enumerate(Category)}


class AggregationEngine:
    """
    Builds the dashboard view from the complete expense set.

    Every section is a pure fold over the expenses passed in; nothing is
    cached between calls, so the view always reflects the latest store state.

    Usage:
        engine = AggregationEngine()
        view = engine.build_dashboard(repository.get_all())
    """

    def __init__(self, top_vendors_limit: int = TOP_VENDORS_LIMIT):
        if top_vendors_limit < 1:
            raise ValueError(f"top_vendors_limit must be >= 1, got {top_vendors_limit}")
        self.top_vendors_limit = top_vendors_limit

    def build_dashboard(self, expenses: Sequence[Expense]) -> DashboardView:
        """Build the full dashboard view."""
        return DashboardView(
            monthly_by_category=self.monthly_by_category(expenses),
            top_vendors=self.top_vendors(expenses),
            category_totals=self.category_totals(expenses),
            anomalies=self.anomalies(expenses),
        )

    def category_totals(self, expenses: Iterable[Expense]) -> List[CategoryStat]:
        """
        Total and count per category, largest total first.

        Categories without expenses are omitted. Ties are broken by category name.
        """
        totals: Dict[Category, Decimal] = defaultdict(Decimal)
        counts: Dict[Category, int] = defaultdict(int)
        for expense in expenses:
            totals[expense.category] += expense.amount
            counts[expense.category] += 1

        stats = [
            CategoryStat(category=category.value, total=total, count=counts[category])
            for category, total in totals.items()
        ]
        return sorted(stats, key=lambda s: (-s.total, s.category))

    def monthly_by_category(self, expenses: Iterable[Expense]) -> Dict[str, Dict[str, Decimal]]:
        """
        Summed amount per (YYYY-MM, category).

        Months are in ascending order, categories within a month in enumeration order.
        """
        buckets: Dict[str, Dict[Category, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
        for expense in expenses:
            buckets[expense.month_key][expense.category] += expense.amount

        return {
            month: {
                category.value: buckets[month][category]
                for category in sorted(buckets[month], key=_CATEGORY_ORDER.__getitem__)
            }
            for month in sorted(buckets)
        }

    def top_vendors(self, expenses: Iterable[Expense]) -> List[VendorStat]:
        """
        Vendors ranked by total spend, descending.

        Ties are broken alphabetically by vendor name; the list is truncated
        to `top_vendors_limit` entries.
        """
        totals: Dict[str, Decimal] = defaultdict(Decimal)
        counts: Dict[str, int] = defaultdict(int)
        for expense in expenses:
            totals[expense.vendor_name] += expense.amount
            counts[expense.vendor_name] += 1

        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))

        return [
            VendorStat(vendor_name=vendor, total=total, count=counts[vendor])
            for vendor, total in ranked[:self.top_vendors_limit]
        ]

    def anomalies(self, expenses: Iterable[Expense]) -> List[Expense]:
        """Expenses flagged at ingestion, largest amount first."""
        flagged = [expense for expense in expenses if expense.is_anomaly]
        return sorted(flagged, key=lambda e: (-e.amount, e.id if e.id is not None else 0))

    def __repr__(self) -> str:
        return f"AggregationEngine(top_vendors_limit={self.top_vendors_limit})"
