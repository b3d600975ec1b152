"""
Input validation shared by single-expense creation and CSV import.

Every parser raises ValidationError carrying the offending field and a short
message; the CSV pipeline reports that message per row, the API turns it into
a 400 response.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from penny.domain.models import NewExpense

# Supported date formats, most specific first
DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
)

CURRENCY_SYMBOLS = ("$", "₹")

# "1,500.00" or "12,50,000" (Indian grouping); commas anywhere else are rejected
THOUSANDS_PATTERN = re.compile(r"^\d{1,3}(,\d{2,3})*,\d{3}(\.\d*)?$")

MAX_FRACTION_DIGITS = 2


class ValidationError(Exception):
    """Raised when an expense request fails validation."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def parse_date(raw: Any) -> date:
    """
    Parse a calendar date.

    Accepts `date` objects (but not datetimes) and strings in DATE_FORMATS.

    Raises:
        ValidationError: If the value is not a calendar date
    """
    if isinstance(raw, datetime):
        raise ValidationError("date", "invalid date")
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("date", "invalid date")

    text = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise ValidationError("date", "invalid date")


def parse_amount(raw: Any) -> Decimal:
    """
    Parse a positive currency amount with at most two fraction digits.

    Handles:
    - Decimal, int and numeric strings: "350", "350.50"
    - A leading currency symbol: "$12.00", "₹350"
    - Thousands separators: "1,500.00", "₹12,50,000"

    Floats are converted through their shortest repr ("0.1" not 0.1000000000000000055).

    Raises:
        ValidationError: If the value is not a positive decimal
    """
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("amount", "invalid amount")

    if isinstance(raw, Decimal):
        amount = raw
    elif isinstance(raw, (int, float)):
        amount = Decimal(str(raw))
    elif isinstance(raw, str):
        cleaned = raw.strip()
        if cleaned[:1] in CURRENCY_SYMBOLS:
            cleaned = cleaned[1:].lstrip()
        if THOUSANDS_PATTERN.match(cleaned):
            cleaned = cleaned.replace(",", "")
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            raise ValidationError("amount", "invalid amount")
    else:
        raise ValidationError("amount", "invalid amount")

    if not amount.is_finite() or amount <= 0:
        raise ValidationError("amount", "invalid amount")

    exponent = amount.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -MAX_FRACTION_DIGITS:
        raise ValidationError("amount", "invalid amount")

    return amount


def require_vendor(raw: Any) -> str:
    """
    Return the trimmed vendor name.

    Raises:
        ValidationError: If the vendor name is missing or blank
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("vendor_name", "vendor name required")
    return raw.strip()


def clean_description(raw: Any) -> Optional[str]:
    """Trimmed description, or None when empty"""
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def validate_expense(
    date_value: Any,
    amount_value: Any,
    vendor_value: Any,
    description_value: Any = None,
) -> NewExpense:
    """
    Validate raw field values into a NewExpense.

    Fields are checked in order (date, amount, vendor) and the first failure
    is raised.

    Raises:
        ValidationError: On the first invalid field
    """
    expense_date = parse_date(date_value)
    amount = parse_amount(amount_value)
    vendor_name = require_vendor(vendor_value)

    return NewExpense(
        date=expense_date,
        amount=amount,
        vendor_name=vendor_name,
        description=clean_description(description_value),
    )
