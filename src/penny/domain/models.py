from dataclasses import dataclass
from decimal import Decimal
from datetime import date, datetime
from typing import Any, Dict, Optional
from penny.domain.enums import Category

@dataclass(frozen=True)
class CategoryRule:
    """A single (token, category) entry of the ordered rule table"""
    match_token: str
    category: Category

    def matches(self, normalized_vendor: str) -> bool:
        return self.match_token in normalized_vendor


@dataclass(frozen=True)
class NewExpense:
    """A validated expense that has not been categorized or stored yet"""
    date: date
    amount: Decimal
    vendor_name: str
    description: Optional[str] = None


@dataclass
class Expense:
    """Core domain model representing a single recorded expense"""
    date: date
    amount: Decimal
    vendor_name: str
    category: Category
    is_anomaly: bool = False
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def month_key(self) -> str:
        """Calendar month of the expense as YYYY-MM"""
        return f"{self.date.year:04d}-{self.date.month:02d}"

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)"""
        return {
            "id": self.id,
            "date": self.date,
            "amount": self.amount,
            "vendorName": self.vendor_name,
            "description": self.description,
            "category": self.category.value,
            "isAnomaly": self.is_anomaly,
            "createdAt": self.created_at,
        }

    def __repr__(self):
        flag = " !" if self.is_anomaly else ""
        return f"Expense({self.date}, {self.vendor_name[:30]}, ${self.amount}, {self.category.value}{flag})"
