import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from penny.database.connection import DatabaseManager
from penny.domain.enums import Category
from penny.domain.models import Expense
from penny.logging_setup import get_logger
from penny.repositories.base import ExpenseRepository, StoreError

logger = get_logger(__name__)

# SQLite INTEGER is a signed 64-bit value; larger IDs cannot exist in the table
MAX_ROW_ID = 2 ** 63 - 1


class SQLiteExpenseRepository(ExpenseRepository):
    """
    SQLite implementation of the ExpenseRepository.

    Handles all database operations for expenses using raw SQL. Any
    sqlite3 failure surfaces as StoreError; writes run inside a transaction
    so a failed append leaves nothing behind.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def append(self, expense: Expense) -> Expense:
        """Save a single expense."""
        if expense.id is not None:
            raise ValueError(f"Expense already has an ID ({expense.id})")

        created_at = datetime.now()

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO expenses (
                        date, amount, vendor_name, description,
                        category, is_anomaly, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        expense.date.isoformat(),
                        str(expense.amount),  # Store as string for precision
                        expense.vendor_name,
                        expense.description,
                        expense.category.value,
                        int(expense.is_anomaly),
                        created_at.isoformat(),
                    ),
                )
                new_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise StoreError(f"Could not save expense '{expense.vendor_name}': {e}") from e

        expense.id = new_id
        expense.created_at = created_at

        logger.debug("Stored %r with id %s", expense, new_id)
        return expense

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        """Retrieve an expense by ID, or None if it doesn't exist"""
        if not _is_row_id(expense_id):
            return None

        try:
            with self.db.read() as conn:
                row = conn.execute(
                    "SELECT * FROM expenses WHERE id = ?",
                    (expense_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Could not read expense {expense_id}: {e}") from e

        if row is None:
            return None

        return self._row_to_expense(row)

    def get_all(self) -> List[Expense]:
        """Retrieve all expenses, newest first."""
        try:
            with self.db.read() as conn:
                rows = conn.execute(
                    "SELECT * FROM expenses ORDER BY date DESC, id DESC"
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not list expenses: {e}") from e

        return [self._row_to_expense(row) for row in rows]

    def get_amounts(self, category: Optional[Category] = None) -> List[Decimal]:
        """Amounts of committed expenses, optionally for one category."""
        query = "SELECT amount FROM expenses"
        params = []

        if category is not None:
            query += " WHERE category = ?"
            params.append(category.value)

        query += " ORDER BY id"

        try:
            with self.db.read() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not read expense history: {e}") from e

        return [Decimal(row["amount"]) for row in rows]

    def delete(self, expense_id: int) -> bool:
        """Delete an expense by ID."""
        if not _is_row_id(expense_id):
            return False

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM expenses WHERE id = ?",
                    (expense_id,)
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StoreError(f"Could not delete expense {expense_id}: {e}") from e

    def _row_to_expense(self, row: sqlite3.Row) -> Expense:
        """Convert database row to Expense object."""
        return Expense(
            id=row["id"],
            date=date.fromisoformat(row["date"]),
            amount=Decimal(row["amount"]),
            vendor_name=row["vendor_name"],
            description=row["description"],
            category=Category(row["category"]),
            is_anomaly=bool(row["is_anomaly"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def _is_row_id(expense_id: int) -> bool:
    return -MAX_ROW_ID - 1 <= expense_id <= MAX_ROW_ID
