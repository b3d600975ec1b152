from typing import Any, Dict, Iterable, List, Optional, Tuple

from penny.categorization.base import CategorizationRule
from penny.domain.enums import Category
from penny.domain.models import CategoryRule


def parse_rule_table(rules_config: Iterable[Dict[str, Any]]) -> Tuple[CategoryRule, ...]:
    """
    Turn rule definitions from JSON config into an ordered rule table.

    Config format:
        {
            "rules": [
                {"token": "uber eats", "category": "Food"},
                {"token": "uber", "category": "Transport"}
            ]
        }

    Raises:
        ValueError: If a token is blank or a category is unknown
    """
    table: List[CategoryRule] = []
    for position, rule_def in enumerate(rules_config):
        token = str(rule_def.get("token", "")).strip().lower()
        if not token:
            raise ValueError(f"Rule #{position} has an empty token")

        try:
            category = Category(rule_def.get("category"))
        except ValueError:
            raise ValueError(
                f"Rule #{position} ('{token}') has unknown category {rule_def.get('category')!r}"
            )

        table.append(CategoryRule(match_token=token, category=category))

    return tuple(table)


class KeywordRule(CategorizationRule):
    """
    Rule that matches substrings of vendor names against an ordered table.

    The first entry whose token appears in the vendor name wins, so more
    specific tokens ("uber eats") must come before broader ones ("uber").

    Example:
        ```
        rule = KeywordRule((
            CategoryRule("uber eats", Category.FOOD),
            CategoryRule("uber", Category.TRANSPORT),
        ))
        ```
    """

    def __init__(self, table: Iterable[CategoryRule], name: str = "keywords"):
        super().__init__()
        self.table: Tuple[CategoryRule, ...] = tuple(table)
        self.name = name

    def _match(self, vendor: str) -> Optional[Category]:
        for rule in self.table:
            if rule.matches(vendor):
                return rule.category
        return None

    def __repr__(self):
        return f"KeywordRule({self.name}, {len(self.table)} tokens)"


class DefaultRule(CategorizationRule):
    """
    Fallback rule that always matches.

    Should be the last rule in the chain.
    """

    def __init__(self, default_category: Category = Category.OTHER):
        super().__init__()
        self.default_category = default_category

    def _match(self, _: str) -> Optional[Category]:
        """Always matches"""
        return self.default_category

    def __repr__(self) -> str:
        return f"DefaultRule('{self.default_category.value}')"
