import statistics
from decimal import Decimal
from typing import Optional, Sequence, TYPE_CHECKING

from penny.config.settings import AnomalySettings
from penny.domain.enums import Category
from penny.logging_setup import get_logger

if TYPE_CHECKING:
    from penny.repositories.base import ExpenseRepository

logger = get_logger(__name__)


class AnomalyDetector:
    """
    Decides whether a new expense amount is unusual for the user.

    The test is self-calibrating per category:

    - With at least `min_sample_size` prior expenses in the same category the
      candidate is anomalous when `amount > mean + k * stdev` of that history.
      An all-identical history (stdev 0) flags any amount that differs from it.
    - With thinner history (bootstrap case) the candidate is anomalous when it
      exceeds `bootstrap_multiplier` times the median of all prior expenses, or
      `bootstrap_ceiling` when there is no history at all.

    History is always strictly prior to the candidate; the decision is made
    once, at ingestion, and never revisited.

    Usage:
        detector = AnomalyDetector(AnomalySettings())
        detector.is_anomaly(Decimal("75000"), [Decimal("2500")], all_amounts)
    """

    def __init__(self, settings: Optional[AnomalySettings] = None):
        """
        Args:
            settings: Detector thresholds. If None, loads anomaly.json.
        """
        self.settings = settings if settings is not None else AnomalySettings.from_config()

    def is_anomaly(
        self,
        amount: Decimal,
        category_history: Sequence[Decimal],
        all_history: Sequence[Decimal] = (),
    ) -> bool:
        """
        Decide whether `amount` is anomalous.

        Args:
            amount: Candidate expense amount
            category_history: Prior amounts in the candidate's category
            all_history: Prior amounts across every category, used while
                the category history is too short

        Returns:
            True if the amount should be flagged
        """
        if len(category_history) < self.settings.min_sample_size:
            return self._exceeds_bootstrap(amount, all_history)

        mean = statistics.mean(category_history)
        stdev = statistics.stdev(category_history, xbar=mean)

        if stdev == 0:
            return amount != mean

        threshold = mean + self.settings.sensitivity * stdev
        return amount > threshold

    def _exceeds_bootstrap(self, amount: Decimal, all_history: Sequence[Decimal]) -> bool:
        if not all_history:
            return amount > self.settings.bootstrap_ceiling

        median = Decimal(statistics.median(all_history))
        return amount > self.settings.bootstrap_multiplier * median

    def evaluate(
        self,
        amount: Decimal,
        category: Category,
        repository: "ExpenseRepository",
    ) -> bool:
        """
        Decide using the history currently committed to the store.

        Callers that need the decision to be consistent with a following append
        must hold the ingestion lock around both.
        """
        category_history = repository.get_amounts(category=category)

        all_history: Sequence[Decimal] = ()
        if len(category_history) < self.settings.min_sample_size:
            all_history = repository.get_amounts()

        flagged = self.is_anomaly(amount, category_history, all_history)

        logger.debug(
            "Anomaly check [category=%s, amount=%s, history=%d, flagged=%s]",
            category.value, amount, len(category_history), flagged,
        )
        return flagged

    def __repr__(self) -> str:
        s = self.settings
        return (
            f"AnomalyDetector(k={s.sensitivity}, min_samples={s.min_sample_size}, "
            f"bootstrap={s.bootstrap_multiplier}x/{s.bootstrap_ceiling})"
        )
