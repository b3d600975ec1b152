from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Union

from penny.domain.models import NewExpense

@dataclass(frozen=True)
class ParsedRow:
    """A data row that passed validation"""
    row_number: int
    expense: NewExpense


@dataclass(frozen=True)
class RowError:
    """A data row that failed; recorded in the import result, never raised"""
    row_number: int
    message: str

    def __str__(self) -> str:
        return f"row {self.row_number}: {self.message}"


RowResult = Union[ParsedRow, RowError]


class ExpenseFileParser(ABC):
    """
    Abstract base class for bulk expense file parsers.

    A parser turns raw file content into one tagged result per data row.
    Rows are yielded lazily and in file order; a bad row becomes a RowError
    and never stops the iteration.
    """

    @abstractmethod
    def parse_rows(self, content: bytes) -> Iterator[RowResult]:
        """
        Parse raw file content.

        Args:
            content: Raw uploaded bytes

        Yields:
            ParsedRow or RowError per data row. Row numbers are 1-based; the
            header is row 0.
        """
        pass
