from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from penny.domain.enums import Category
from penny.domain.models import Expense

class ExpenseNotFoundError(Exception):
    """Raised when an expense cannot be found."""

    def __init__(self, expense_id: int):
        super().__init__(f"Expense with ID {expense_id} not found")
        self.expense_id = expense_id

class StoreError(Exception):
    """Raised when the store fails to read or durably write a record."""
    pass

class ExpenseRepository(ABC):
    """
    Abstract repository for expense persistence.

    The store exclusively owns expense records. Implementations must make
    `append` atomic per record and must make committed records visible to
    every later query.
    """

    @abstractmethod
    def append(self, expense: Expense) -> Expense:
        """
        Durably store a new expense.

        Args:
            expense: Expense to save; `id` and `created_at` must be unset

        Returns:
            Expense with `id` and `created_at` populated by the store

        Raises:
            StoreError: If the record could not be persisted
        """
        pass

    @abstractmethod
    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        """
        Retrieve an expense by ID.

        Returns:
            Expense if found, None otherwise
        """
        pass

    @abstractmethod
    def get_all(self) -> List[Expense]:
        """
        Retrieve every expense, newest first (date desc, id desc).
        """
        pass

    @abstractmethod
    def get_amounts(self, category: Optional[Category] = None) -> List[Decimal]:
        """
        Amounts of all committed expenses, optionally limited to a category.

        This is the history query used by anomaly detection.
        """
        pass

    @abstractmethod
    def delete(self, expense_id: int) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if deleted, False if not found
        """
        pass
