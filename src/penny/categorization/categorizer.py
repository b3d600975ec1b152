from typing import Any, Dict, List, Optional, Tuple

from penny.categorization.base import CategorizationRule
from penny.categorization.rules import DefaultRule, KeywordRule, parse_rule_table
from penny.config.settings import ConfigLoader
from penny.domain.enums import Category
from penny.domain.models import CategoryRule
from penny.logging_setup import get_logger

logger = get_logger(__name__)


class Categorizer:
    """
    Main engine for assigning a category to a vendor name.

    Builds a chain of rules in priority order:
    1. User-defined rules (categorization_rules.json, optional)
    2. Built-in rule table (rules.json)
    3. Default (Other)

    The rule table is loaded once at construction and never mutated, so a
    single instance can be shared across threads.

    Usage:
        # Production - loads from ConfigLoader
        categorizer = Categorizer()

        # Testing - inject a custom table
        categorizer = Categorizer(
            config={"rules": [{"token": "hdfc", "category": "Finance"}]},
            use_defaults=False,
        )

        category = categorizer.categorize("HDFC Bank")
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        use_defaults: bool = True,
    ):
        """
        Initialize the categorizer.

        Args:
            config: Optional user rules dict. If None, loads from ConfigLoader.
            use_defaults: Whether to include the built-in rule table
        """
        self.use_defaults = use_defaults
        self._rule_chain: Optional[CategorizationRule] = None
        self._table: Tuple[CategoryRule, ...] = ()

        self._build_rule_chain(config)

    def _build_rule_chain(self, user_config: Optional[Dict[str, Any]] = None) -> None:
        """
        Build the chain of responsibility for categorization rules.

        Args:
            user_config: Optional user config dict for testing
        """
        if user_config is None:
            user_config = ConfigLoader.load_user_rules_config()

        rules: List[CategorizationRule] = []
        table: List[CategoryRule] = []

        user_table = parse_rule_table(user_config.get("rules", []))
        if user_table:
            rules.append(KeywordRule(user_table, name="user"))
            table.extend(user_table)

        if self.use_defaults:
            builtin_table = parse_rule_table(ConfigLoader.load_rules_config().get("rules", []))
            if builtin_table:
                rules.append(KeywordRule(builtin_table, name="built-in"))
                table.extend(builtin_table)

        rules.append(DefaultRule(Category.OTHER))

        self._rule_chain = rules[0]
        for i in range(len(rules) - 1):
            rules[i].set_next(rules[i + 1])

        self._table = tuple(table)
        logger.info(
            "Loaded %d categorization rules (%d user)", len(self._table), len(user_table)
        )

    @property
    def table(self) -> Tuple[CategoryRule, ...]:
        """The effective ordered rule table, user rules first"""
        return self._table

    def categorize(self, vendor_name: Optional[str]) -> Category:
        """
        Categorize a vendor name.

        Matching is case-insensitive; the first rule whose token appears in
        the vendor name wins. Blank names and unmatched names are `Other`.

        Example:
            ```
            >>> Categorizer().categorize("Swiggy Late Night")
            <Category.FOOD: 'Food'>
            ```
        """
        if not self._rule_chain:
            raise RuntimeError("Rule chain not initialized")

        if vendor_name is None or not vendor_name.strip():
            return Category.OTHER

        category = self._rule_chain.categorize(vendor_name.strip().lower())

        assert category is not None, "Rule chain should never return None"

        return category

    def rules(self) -> Dict[str, Category]:
        """
        Token to category mapping of the effective table, in priority order.

        When a token appears more than once only its first (winning) entry is kept.
        """
        mapping: Dict[str, Category] = {}
        for rule in self._table:
            mapping.setdefault(rule.match_token, rule.category)
        return mapping

    def get_rule_chain_info(self) -> str:
        """
        Get information about the current rule chain.

        Returns:
            String description of the current rule chain.
        """
        if not self._rule_chain:
            return "No rules loaded"

        rules = []
        current: Optional[CategorizationRule] = self._rule_chain
        priority = 1

        while current:
            rules.append(f"{priority}. {current}")
            current = current.next_rule
            priority += 1

        return "\n".join(rules)

    def __repr__(self) -> str:
        return f"Categorizer({len(self._table)} rules)"
