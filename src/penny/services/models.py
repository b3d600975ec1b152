"""
Service layer models - DTOs for service operations.

These models represent the results of service operations, not domain entities.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

from penny.domain.models import Expense

@dataclass
class CsvImportResult:
    """
    Result of importing a CSV file.

    Every data row is accounted for exactly once: either added or failed,
    with one error message per failed row in file order.
    """
    added: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False

    imported: List[Expense] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Import is successful if at least one expense is added"""
        return self.added > 0

    @property
    def partial_success(self) -> bool:
        """Some expenses added but some rows failed"""
        return self.added > 0 and self.failed > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": self.added,
            "failed": self.failed,
            "errors": list(self.errors),
        }

    def __str__(self) -> str:
        "Human-readable summary"
        lines = [
            "CSV import summary:",
            f" ✅ Added: {self.added}",
        ]

        if self.failed:
            lines.append(f" ❌ Failed: {self.failed}")

        if self.cancelled:
            lines.append(" ⏹️ Cancelled before the end of the file")

        return "\n".join(lines)

    def __post_init__(self):
        """Validate counts match lists"""
        if self.failed != len(self.errors):
            raise ValueError(
                f"Count mismatch: failed={self.failed} "
                f"but len(errors)={len(self.errors)}"
            )


@dataclass(frozen=True)
class VendorStat:
    vendor_name: str
    total: Decimal
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"vendorName": self.vendor_name, "total": self.total, "count": self.count}


@dataclass(frozen=True)
class CategoryStat:
    category: str
    total: Decimal
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "total": self.total, "count": self.count}


@dataclass
class DashboardView:
    """
    Derived, read-only summary of every expense.

    Recomputed from the full expense set on each request; never persisted.
    """
    monthly_by_category: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    top_vendors: List[VendorStat] = field(default_factory=list)
    category_totals: List[CategoryStat] = field(default_factory=list)
    anomalies: List[Expense] = field(default_factory=list)

    @property
    def anomaly_count(self) -> int:
        return len(self.anomalies)

    @property
    def total_spent(self) -> Decimal:
        return sum((stat.total for stat in self.category_totals), Decimal("0"))

    @property
    def expense_count(self) -> int:
        return sum(stat.count for stat in self.category_totals)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)"""
        return {
            "monthlyByCategory": {
                month: dict(categories)
                for month, categories in self.monthly_by_category.items()
            },
            "topVendors": [stat.to_dict() for stat in self.top_vendors],
            "categoryTotals": [stat.to_dict() for stat in self.category_totals],
            "anomalies": [expense.to_dict() for expense in self.anomalies],
            "anomalyCount": self.anomaly_count,
        }
