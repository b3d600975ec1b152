import csv
import io
from typing import Iterator, List

from penny.logging_setup import get_logger
from penny.parsers.base import ExpenseFileParser, ParsedRow, RowError, RowResult
from penny.services.validation import ValidationError, validate_expense

logger = get_logger(__name__)

# Largest field accepted, in characters; longer fields fail only their own row
MAX_FIELD_SIZE = 1024 * 1024

if csv.field_size_limit() < MAX_FIELD_SIZE:
    csv.field_size_limit(MAX_FIELD_SIZE)


class CsvExpenseParser(ExpenseFileParser):
    """
    Parser for expense CSV uploads.

    Handles the format:
        date,amount,vendor_name,description
        2024-01-10,350.00,Swiggy,Dinner
        2024-01-15,75000.00,Amazon,"Laptop, 16GB"

    - The header row is required and rows map to columns by position; a
      first record that is itself a valid expense is reported as a missing header
    - Description may be empty; commas inside it need standard CSV quoting
    - Blank lines are skipped but still count towards row numbers

    Example:
        parser = CsvExpenseParser()
        for result in parser.parse_rows(content):
            ...
    """

    EXPECTED_HEADER = ["date", "amount", "vendor_name", "description"]

    def parse_rows(self, content: bytes) -> Iterator[RowResult]:
        """Parse CSV content into per-row results, lazily."""
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning("Rejected CSV upload: %s", e)
            yield RowError(0, "file is not valid UTF-8")
            return

        reader = csv.reader(io.StringIO(text, newline=""))

        try:
            header = next(reader)
        except StopIteration:
            yield RowError(0, "missing header")
            return
        except csv.Error:
            yield RowError(0, "malformed header")
            return

        if self._is_data_row(header):
            # The first record would otherwise be consumed as a header and vanish
            logger.warning("CSV upload has no header row, first record rejected")
            yield RowError(0, "missing header")
        else:
            self._check_header(header)

        row_number = 0
        while True:
            row_number += 1
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                # e.g. a field over the size limit; the reader resumes at the next line
                logger.warning("Unreadable CSV row %d: %s", row_number, e)
                yield RowError(row_number, "malformed row")
                continue

            if not row:
                continue

            yield self._parse_row(row_number, row)

    def _parse_row(self, row_number: int, row: List[str]) -> RowResult:
        """Validate a single row; failures become RowError."""
        if len(row) != len(self.EXPECTED_HEADER):
            return RowError(row_number, "malformed row")

        date_raw, amount_raw, vendor_raw, description_raw = row

        try:
            expense = validate_expense(date_raw, amount_raw, vendor_raw, description_raw)
        except ValidationError as e:
            return RowError(row_number, e.message)

        return ParsedRow(row_number, expense)

    def _is_data_row(self, record: List[str]) -> bool:
        """True when a record is a valid expense rather than a header"""
        return isinstance(self._parse_row(0, record), ParsedRow)

    def _check_header(self, header: List[str]) -> None:
        normalized = [col.strip().lower().replace(" ", "_") for col in header]
        if normalized != self.EXPECTED_HEADER:
            logger.warning(
                "Unexpected CSV header %s, mapping columns by position as %s",
                header, self.EXPECTED_HEADER,
            )

    def __repr__(self) -> str:
        return "CsvExpenseParser()"
