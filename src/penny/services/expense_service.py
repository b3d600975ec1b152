import threading
from typing import Any, Dict, List, Optional

from penny.anomaly.detector import AnomalyDetector
from penny.categorization.categorizer import Categorizer
from penny.domain.models import Expense
from penny.logging_setup import get_logger
from penny.repositories.base import ExpenseNotFoundError, ExpenseRepository
from penny.services.aggregation import AggregationEngine
from penny.services.csv_import import CsvImportPipeline
from penny.services.ingestion import ExpenseIngestor
from penny.services.models import CsvImportResult, DashboardView
from penny.services.validation import validate_expense

logger = get_logger(__name__)


class ExpenseService:
    """
    Request-level operations on expenses.

    A thin orchestrator: validation, categorization, anomaly detection,
    persistence and aggregation are each delegated to their own component.
    Collaborators not passed in are created lazily with their defaults.
    """

    def __init__(
        self,
        repository: ExpenseRepository,
        categorizer: Optional[Categorizer] = None,
        detector: Optional[AnomalyDetector] = None,
        aggregation_engine: Optional[AggregationEngine] = None,
    ):
        self.repository = repository
        self._categorizer: Optional[Categorizer] = categorizer
        self._detector: Optional[AnomalyDetector] = detector
        self._aggregation_engine: Optional[AggregationEngine] = aggregation_engine
        self._ingestor: Optional[ExpenseIngestor] = None
        self._ingest_lock = threading.Lock()

    @property
    def categorizer(self) -> Categorizer:
        """Lazy-load categorizer"""
        if self._categorizer is None:
            self._categorizer = Categorizer()
        return self._categorizer

    @property
    def detector(self) -> AnomalyDetector:
        """Lazy-load anomaly detector"""
        if self._detector is None:
            self._detector = AnomalyDetector()
        return self._detector

    @property
    def aggregation_engine(self) -> AggregationEngine:
        if self._aggregation_engine is None:
            self._aggregation_engine = AggregationEngine()
        return self._aggregation_engine

    @property
    def ingestor(self) -> ExpenseIngestor:
        if self._ingestor is None:
            self._ingestor = ExpenseIngestor(
                repository=self.repository,
                categorizer=self.categorizer,
                detector=self.detector,
                lock=self._ingest_lock,
            )
        return self._ingestor

    def list_expenses(self) -> List[Expense]:
        """All expenses, newest first."""
        return self.repository.get_all()

    def get_expense(self, expense_id: int) -> Expense:
        """
        Get a single expense.

        Raises:
            ExpenseNotFoundError: If no expense has this ID
        """
        expense = self.repository.get_by_id(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense

    def create_expense(
        self,
        date: Any,
        amount: Any,
        vendor_name: Any,
        description: Any = None,
    ) -> Expense:
        """
        Validate, categorize, flag and store a new expense.

        Args:
            date: Calendar date or date string
            amount: Positive amount
            vendor_name: Vendor name, non-empty after trimming
            description: Optional free text

        Returns:
            The stored expense with derived category and anomaly flag

        Raises:
            ValidationError: If any field is invalid. Nothing is categorized or stored.
            StoreError: If the store fails
        """
        new_expense = validate_expense(date, amount, vendor_name, description)
        saved = self.ingestor.ingest(new_expense)
        logger.info("Created %r", saved)
        return saved

    def delete_expense(self, expense_id: int) -> None:
        """
        Delete an expense.

        Anomaly flags of the remaining expenses are left as they were decided.

        Raises:
            ExpenseNotFoundError: If no expense has this ID
        """
        if not self.repository.delete(expense_id):
            raise ExpenseNotFoundError(expense_id)
        logger.info("Deleted expense %s", expense_id)

    def import_csv(
        self,
        content: bytes,
        cancel_event: Optional[threading.Event] = None,
    ) -> CsvImportResult:
        """
        Bulk import expenses from CSV content.

        Example:
            ```
            result = service.import_csv(Path("expenses.csv").read_bytes())
            print(f"{result.added} added, {result.failed} failed")
            ```
        """
        pipeline = CsvImportPipeline(self.ingestor)
        return pipeline.import_csv(content, cancel_event=cancel_event)

    def get_dashboard(self) -> DashboardView:
        """Dashboard recomputed from every stored expense."""
        return self.aggregation_engine.build_dashboard(self.repository.get_all())

    def get_category_rules(self) -> Dict[str, str]:
        """Active token -> category mapping, in priority order."""
        return {token: category.value for token, category in self.categorizer.rules().items()}
