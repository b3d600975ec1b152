import threading
from typing import Optional

from penny.anomaly.detector import AnomalyDetector
from penny.categorization.categorizer import Categorizer
from penny.domain.models import Expense, NewExpense
from penny.logging_setup import get_logger
from penny.repositories.base import ExpenseRepository

logger = get_logger(__name__)


class ExpenseIngestor:
    """
    Turns a validated NewExpense into a stored Expense.

    Steps: categorize the vendor, decide the anomaly flag against the history
    committed so far, append to the store. `category` and `is_anomaly` are
    derived here exactly once and never recomputed afterwards.

    The history read and the append happen under one lock, so an anomaly
    check never races a concurrent create and every committed expense is
    part of the baseline for the next one.
    """

    def __init__(
        self,
        repository: ExpenseRepository,
        categorizer: Categorizer,
        detector: AnomalyDetector,
        lock: Optional[threading.Lock] = None,
    ):
        self.repository = repository
        self.categorizer = categorizer
        self.detector = detector
        self._lock = lock if lock is not None else threading.Lock()

    def ingest(self, new_expense: NewExpense) -> Expense:
        """
        Categorize, flag and persist a validated expense.

        Raises:
            StoreError: If the store could not read history or persist the record
        """
        category = self.categorizer.categorize(new_expense.vendor_name)

        with self._lock:
            is_anomaly = self.detector.evaluate(new_expense.amount, category, self.repository)

            expense = Expense(
                date=new_expense.date,
                amount=new_expense.amount,
                vendor_name=new_expense.vendor_name,
                description=new_expense.description,
                category=category,
                is_anomaly=is_anomaly,
            )
            saved = self.repository.append(expense)

        if saved.is_anomaly:
            logger.info(
                "Flagged expense %s as anomalous (%s, %s)",
                saved.id, saved.category.value, saved.amount,
            )
        return saved
