import pytest
import threading
from decimal import Decimal

from penny.domain.enums import Category
from penny.repositories.base import StoreError
from penny.services.csv_import import CsvImportPipeline
from penny.services.expense_service import ExpenseService
from penny.services.ingestion import ExpenseIngestor
from penny.services.models import CsvImportResult

@pytest.mark.integration
class TestSampleImport:
    """Import of the ten-row sample file into an empty store"""

    def test_all_rows_added(self, service: ExpenseService, sample_csv: bytes):
        # Act
        result = service.import_csv(sample_csv)

        # Assert
        assert result.added == 10
        assert result.failed == 0
        assert result.errors == []
        assert result.success is True
        assert result.cancelled is False

    def test_only_the_laptop_is_flagged(self, service: ExpenseService, sample_csv: bytes):
        # Act
        service.import_csv(sample_csv)

        # Assert
        flagged = [e for e in service.list_expenses() if e.is_anomaly]
        assert len(flagged) == 1
        assert flagged[0].vendor_name == "Amazon"
        assert flagged[0].amount == Decimal("75000.00")
        assert flagged[0].description == "Laptop (anomaly test)"

    def test_rows_are_categorized(self, service: ExpenseService, sample_csv: bytes):
        result = service.import_csv(sample_csv)

        categories = [e.category for e in result.imported]
        assert categories == [
            Category.FOOD, Category.SHOPPING, Category.TRANSPORT, Category.ENTERTAINMENT,
            Category.UTILITIES, Category.SHOPPING, Category.FOOD, Category.TRANSPORT,
            Category.ENTERTAINMENT, Category.HEALTH,
        ]

    def test_rows_stored_in_file_order(self, service: ExpenseService, sample_csv: bytes):
        result = service.import_csv(sample_csv)

        ids = [e.id for e in result.imported]
        assert ids == sorted(ids)

    def test_dashboard_after_import(self, service: ExpenseService, sample_csv: bytes):
        # Arrange
        service.import_csv(sample_csv)

        # Act
        view = service.get_dashboard()

        # Assert
        assert view.expense_count == 10
        assert view.total_spent == Decimal("82428.00")
        assert list(view.monthly_by_category) == ["2024-01"]
        assert view.top_vendors[0].vendor_name == "Amazon"
        assert view.top_vendors[0].total == Decimal("77500.00")
        assert len(view.top_vendors) == 5
        assert view.anomaly_count == 1

    def test_reimport_uses_growing_history(self, service: ExpenseService, sample_csv: bytes):
        """
        The first import is part of the baseline for the second one. Shopping
        now holds 2500, 75000, 2500, so mean + 2.5 stdev is about 131k and
        the second laptop is no longer unusual. Earlier flags are kept.
        """
        service.import_csv(sample_csv)

        second = service.import_csv(sample_csv)

        assert second.added == 10
        assert [e for e in second.imported if e.is_anomaly] == []
        assert service.get_dashboard().anomaly_count == 1

@pytest.mark.integration
class TestPartialFailure:

    def test_bad_rows_reported_in_order(self, service: ExpenseService, invalid_csv: bytes):
        # Act
        result = service.import_csv(invalid_csv)

        # Assert
        assert result.added == 2
        assert result.failed == 5
        assert result.errors == [
            "row 2: invalid date",
            "row 3: invalid amount",
            "row 4: vendor name required",
            "row 5: invalid amount",
            "row 7: malformed row",
        ]
        assert result.partial_success is True
        assert len(service.list_expenses()) == 2

    def test_error_reporting_is_repeatable(self, service: ExpenseService, invalid_csv: bytes):
        first = service.import_csv(invalid_csv)
        second = service.import_csv(invalid_csv)

        assert (second.added, second.failed, second.errors) == (first.added, first.failed, first.errors)

    def test_empty_file(self, service: ExpenseService):
        result = service.import_csv(b"")

        assert result.to_dict() == {"added": 0, "failed": 1, "errors": ["row 0: missing header"]}

    def test_headerless_file_reports_missing_header(self, service: ExpenseService):
        # Arrange
        content = b"2024-01-10,350.00,Swiggy,Dinner\n2024-01-11,100.00,Uber,ride\n"

        # Act
        result = service.import_csv(content)

        # Assert
        assert result.to_dict() == {"added": 1, "failed": 1, "errors": ["row 0: missing header"]}
        assert [e.vendor_name for e in service.list_expenses()] == ["Uber"]

    def test_oversized_row_does_not_drop_the_rest(self, service: ExpenseService):
        # Arrange
        huge = b"2024-01-10,350.00,Swiggy," + b"x" * (2 * 1024 * 1024) + b"\n"
        content = (
            b"date,amount,vendor_name,description\n"
            + huge
            + b"2024-01-11,100.00,Uber,ride\n"
            + b'2024-01-12,"1,500.00",Amazon,Phone\n'
        )

        # Act
        result = service.import_csv(content)

        # Assert
        assert result.added == 2
        assert result.errors == ["row 1: malformed row"]
        amounts = sorted(e.amount for e in service.list_expenses())
        assert amounts == [Decimal("100.00"), Decimal("1500.00")]

    def test_result_counts_must_match_errors(self):
        with pytest.raises(ValueError, match="Count mismatch"):
            CsvImportResult(failed=2, errors=["row 1: invalid date"])

@pytest.mark.integration
class TestPipelineControl:

    def test_cancel_before_start_imports_nothing(self, service: ExpenseService, sample_csv: bytes):
        # Arrange
        cancel = threading.Event()
        cancel.set()

        # Act
        result = service.import_csv(sample_csv, cancel_event=cancel)

        # Assert
        assert result.cancelled is True
        assert result.added == 0
        assert service.list_expenses() == []

    def test_cancel_midway_keeps_committed_rows(self, service: ExpenseService, sample_csv: bytes, mocker):
        # Arrange: cancel once the third row has been stored
        cancel = threading.Event()
        ingest = service.ingestor.ingest

        def ingest_then_maybe_cancel(new_expense):
            saved = ingest(new_expense)
            if saved.id == 3:
                cancel.set()
            return saved

        mocker.patch.object(service.ingestor, "ingest", side_effect=ingest_then_maybe_cancel)

        # Act
        result = service.import_csv(sample_csv, cancel_event=cancel)

        # Assert
        assert result.cancelled is True
        assert result.added == 3
        assert len(service.list_expenses()) == 3

    def test_store_error_aborts_import(self, service: ExpenseService, sample_csv: bytes, mocker):
        """Store failures are fatal; rows committed before them stay committed"""
        # Arrange
        append = service.repository.append
        calls = {"n": 0}

        def failing_append(expense):
            calls["n"] += 1
            if calls["n"] == 4:
                raise StoreError("disk full")
            return append(expense)

        mocker.patch.object(service.repository, "append", side_effect=failing_append)

        # Act / Assert
        with pytest.raises(StoreError):
            service.import_csv(sample_csv)

        assert len(service.list_expenses()) == 3

    def test_custom_parser(self, repo, categorizer, detector, mocker):
        # Arrange
        parser = mocker.Mock()
        parser.parse_rows.return_value = iter([])
        pipeline = CsvImportPipeline(ExpenseIngestor(repo, categorizer, detector), parser=parser)

        # Act
        result = pipeline.import_csv(b"anything")

        # Assert
        parser.parse_rows.assert_called_once_with(b"anything")
        assert result.added == 0
