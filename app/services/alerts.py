import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Sequence
from uuid import UUID

from app.models.category import Category

logger = logging.getLogger(__name__)


class AlertLevel(str, Enum):
    """Spent-percentage bands of a category, lowest first."""
    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"
    OVER_BUDGET = "over_budget"

    @property
    def rank(self) -> int:
        return list(AlertLevel).index(self)


DEFAULT_THRESHOLDS = (75, 90, 100)


def classify_percentage(percentage: Decimal, thresholds: Sequence[int] = DEFAULT_THRESHOLDS) -> AlertLevel:
    """Map a spent percentage to its band. ``thresholds`` are warning, critical, over-budget."""
    warning, critical, over = thresholds
    if percentage >= over:
        return AlertLevel.OVER_BUDGET
    if percentage >= critical:
        return AlertLevel.CRITICAL
    if percentage >= warning:
        return AlertLevel.WARNING
    return AlertLevel.NONE


@dataclass(frozen=True)
class BudgetAlert:
    budget_id: UUID
    user_id: UUID
    category: Category
    level: AlertLevel
    percentage: Decimal


AlertHandler = Callable[[BudgetAlert], None]


def log_alert(alert: BudgetAlert) -> None:
    if alert.level is AlertLevel.OVER_BUDGET:
        logger.warning(
            f"ALERT: {alert.category.value} budget of {alert.budget_id} exceeded "
            f"({alert.percentage}% spent)"
        )
    else:
        logger.warning(
            f"ALERT: {alert.category.value} budget of {alert.budget_id} at "
            f"{alert.percentage}% ({alert.level.value})"
        )


def crossed_alert(
    before: Decimal,
    after: Decimal,
    thresholds: Sequence[int] = DEFAULT_THRESHOLDS,
) -> Optional[AlertLevel]:
    """Band reached by moving from ``before`` to ``after``, if it is a higher band."""
    previous = classify_percentage(before, thresholds)
    current = classify_percentage(after, thresholds)
    if current.rank > previous.rank:
        return current
    return None
