"""
Vendor categorization for expense tracking.

Assigns one of the fixed categories to a vendor name using a chain of
responsibility over an ordered substring rule table.

Quick Start:
    >>> from penny.categorization import Categorizer
    >>>
    >>> categorizer = Categorizer()
    >>> categorizer.categorize("Uber Eats")
    <Category.FOOD: 'Food'>
"""
from penny.categorization.categorizer import Categorizer
from penny.categorization.base import CategorizationRule
from penny.categorization.rules import (
    KeywordRule,
    DefaultRule,
    parse_rule_table,
)

__all__ = [
    "Categorizer",
    "CategorizationRule",
    "KeywordRule",
    "DefaultRule",
    "parse_rule_table",
]
