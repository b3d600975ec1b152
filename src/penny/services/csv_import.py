import threading
from typing import Optional

from penny.logging_setup import get_logger
from penny.parsers.base import ExpenseFileParser, ParsedRow, RowError
from penny.parsers.csv_parser import CsvExpenseParser
from penny.services.ingestion import ExpenseIngestor
from penny.services.models import CsvImportResult

logger = get_logger(__name__)


class CsvImportPipeline:
    """
    Bulk import of expenses from CSV content.

    Rows are handled strictly one after another, in file order:
    parse and validate, then categorize, flag and persist. A bad row is
    recorded in the result and the import moves on; it never aborts the
    batch. Because each row is committed before the next is checked, rows
    earlier in the file are part of the anomaly baseline for later ones.

    Usage:
        pipeline = CsvImportPipeline(ingestor)
        result = pipeline.import_csv(content)
        print(result.added, result.failed, result.errors)
    """

    def __init__(
        self,
        ingestor: ExpenseIngestor,
        parser: Optional[ExpenseFileParser] = None,
    ):
        self.ingestor = ingestor
        self.parser = parser if parser is not None else CsvExpenseParser()

    def import_csv(
        self,
        raw_content: bytes,
        cancel_event: Optional[threading.Event] = None,
    ) -> CsvImportResult:
        """
        Import every row of a CSV file.

        Args:
            raw_content: Raw uploaded bytes
            cancel_event: Optional event; once set, the import stops before
                the next row. A row already in progress always completes.

        Returns:
            CsvImportResult with counts and the ordered list of row errors

        Raises:
            StoreError: If persisting a row fails. Rows committed before the
                failure stay committed.
        """
        result = CsvImportResult()

        for row in self.parser.parse_rows(raw_content):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info("CSV import cancelled before row %d", row.row_number)
                break

            if isinstance(row, RowError):
                result.failed += 1
                result.errors.append(str(row))
                logger.debug("Rejected %s", row)
                continue

            assert isinstance(row, ParsedRow)
            saved = self.ingestor.ingest(row.expense)
            result.added += 1
            result.imported.append(saved)

        logger.info("CSV import: added=%d, failed=%d", result.added, result.failed)
        return result
