from abc import ABC, abstractmethod
from typing import Optional

from penny.domain.enums import Category

class CategorizationRule(ABC):
    """
    Abstract base class for all categorization rules.

    Implements Chain of Responsibility:
    - Each rule tries to categorize a vendor name
    - If it can't it passes to the next rule
    - Rules are tried in priority order

    Usage:
        Create chain: user -> built-in -> default
        ```
        user_rule = KeywordRule(user_table)
        builtin_rule = KeywordRule(builtin_table)
        default_rule = DefaultRule()

        user_rule.set_next(builtin_rule).set_next(default_rule)

        category = user_rule.categorize("swiggy late night")
        ```

    Vendor names handed to the chain are already normalized (trimmed, lowercase).
    """

    def __init__(self):
        self._next_rule: Optional['CategorizationRule'] = None

    def set_next(self, rule: 'CategorizationRule') -> 'CategorizationRule':
        """
        Set the next rule in the chain.

        Args:
            rule: The next rule to try if this one doesn't match

        Returns:
            The rule that was set (for chaining)

        Example:
            `rule1.set_next(rule2).set_next(rule3)`
        """
        self._next_rule = rule
        return rule

    @property
    def next_rule(self) -> Optional['CategorizationRule']:
        return self._next_rule

    @abstractmethod
    def _match(self, vendor: str) -> Optional[Category]:
        """
        Return the category this rule assigns to the vendor, or None.

        Args:
            vendor: Normalized vendor name
        """
        pass

    def categorize(self, vendor: str) -> Optional[Category]:
        """
        Attempt to categorize a vendor name.

        Tries this rule first and falls through to the next rule in the chain.

        Args:
            vendor: Normalized vendor name

        Returns:
            Category, or None if no rule in the chain matched
        """
        category = self._match(vendor)
        if category is not None:
            return category

        if self._next_rule:
            return self._next_rule.categorize(vendor)

        return None

    def __repr__(self):
        return f"{self.__class__.__name__}()"
