import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint, Uuid

from app.core.db import Base
from app.models.category import Category

ZERO = Decimal("0")
CENT = Decimal("0.01")


def spent_percentage(spent: Decimal, budget: Decimal) -> Decimal:
    """Share of a category budget already spent, in percent with two decimals.

    Returns 0 for a zero budget. Values above 100 are returned as-is.
    """
    if budget == ZERO:
        return Decimal("0.00")
    ratio = (Decimal(spent) / Decimal(budget)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
    return (ratio * 100).quantize(CENT)


def budget_consistency_error(
    total_income: Optional[Decimal],
    leisure_budget: Optional[Decimal],
    essentials_budget: Optional[Decimal],
    savings_budget: Optional[Decimal],
) -> Optional[str]:
    """Check the planning rules of a monthly budget.

    Returns a human readable description of the first violated rule, or None
    when the allocation is admissible.
    """
    if total_income is None or total_income <= ZERO:
        return "Total income must be greater than 0."
    for label, value in (
        ("Leisure", leisure_budget),
        ("Essentials", essentials_budget),
        ("Savings", savings_budget),
    ):
        if value is None or value < ZERO:
            return f"{label} budget must be zero or positive."

    total_budget = leisure_budget + essentials_budget + savings_budget
    if total_budget > total_income:
        return f"Total budget ({total_budget}) exceeds total income ({total_income})."

    available_after_essentials = total_income - essentials_budget
    if savings_budget > available_after_essentials:
        return (
            f"Savings budget ({savings_budget}) exceeds income available "
            f"after essentials ({available_after_essentials})."
        )
    return None


class Budget(Base):
    """Model for a user's monthly budget.

    Holds the planned allocation of one month's income across the three
    categories together with the running spent total of each category.

    Columns:
        budget_id (UUID): Unique identifier for the budget.
        user_id (UUID): The user that owns this budget.
        total_income (Decimal): Monthly income, strictly positive.
        leisure_budget / essentials_budget / savings_budget (Decimal): Planned amounts.
        leisure_spent / essentials_spent / savings_spent (Decimal): Running totals
            maintained incrementally as expenses are applied.
        month (int): Calendar month the budget governs.
        year (int): Calendar year the budget governs.
        version (int): Optimistic concurrency counter, bumped on every write.
        created_at (datetime): Timestamp when the budget was created.
        updated_at (datetime): Timestamp when the budget was last updated.

    Important:
        only one budget per user and month
    """
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_budgets_user_month"),
    )

    budget_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    total_income = Column(Numeric(precision=12, scale=2), nullable=False)
    leisure_budget = Column(Numeric(precision=12, scale=2), nullable=False, default=ZERO)
    essentials_budget = Column(Numeric(precision=12, scale=2), nullable=False, default=ZERO)
    savings_budget = Column(Numeric(precision=12, scale=2), nullable=False, default=ZERO)
    leisure_spent = Column(Numeric(precision=12, scale=2), nullable=False, default=ZERO)
    essentials_spent = Column(Numeric(precision=12, scale=2), nullable=False, default=ZERO)
    savings_spent = Column(Numeric(precision=12, scale=2), nullable=False, default=ZERO)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    def budget_for(self, category: Category) -> Decimal:
        return Decimal(getattr(self, category.budget_field))

    def spent_for(self, category: Category) -> Decimal:
        return Decimal(getattr(self, category.spent_field) or ZERO)

    def remaining(self, category: Category) -> Decimal:
        return self.budget_for(category) - self.spent_for(category)

    def spent_percentage(self, category: Category) -> Decimal:
        return spent_percentage(self.spent_for(category), self.budget_for(category))

    def is_over_budget(self, category: Category) -> bool:
        return self.spent_for(category) > self.budget_for(category)

    @property
    def total_budget(self) -> Decimal:
        return sum((self.budget_for(c) for c in Category), ZERO)

    @property
    def total_spent(self) -> Decimal:
        return sum((self.spent_for(c) for c in Category), ZERO)

    @property
    def remaining_balance(self) -> Decimal:
        return Decimal(self.total_income) - self.total_spent

    @property
    def is_budget_over_income(self) -> bool:
        return self.total_budget > Decimal(self.total_income)

    def consistency_error(self) -> Optional[str]:
        return budget_consistency_error(
            self.total_income, self.leisure_budget, self.essentials_budget, self.savings_budget
        )

    def apply_expense(self, category: Category, amount: Decimal) -> None:
        """Add ``amount`` to the category's spent total. Overspend is allowed here."""
        setattr(self, category.spent_field, self.spent_for(category) + amount)
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def __str__(self):
        return f"Budget(budget_id={self.budget_id}, user_id={self.user_id}, month={self.month}, year={self.year}, total_income={self.total_income})"
