import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Numeric, String, Text, Uuid

from app.core.db import Base
from app.models.category import Category

MIN_DESCRIPTION_LENGTH = 3


def expense_validation_error(
    user_id: Any,
    budget_id: Any,
    category: Any,
    amount: Optional[Decimal],
    description: Optional[str],
) -> Optional[str]:
    """Return the first invariant an expense breaks, or None if it is valid."""
    if not user_id:
        return "User id is required."
    if not budget_id:
        return "Budget id is required."
    try:
        Category.parse(category)
    except ValueError as exc:
        return str(exc)
    if amount is None or amount <= 0:
        return "Amount must be greater than 0."
    if description is None or not description.strip():
        return "Description is required."
    if len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        return f"Description must contain at least {MIN_DESCRIPTION_LENGTH} characters."
    return None


class Expense(Base):
    """Model for a single spend event.

    Columns:
        expense_id (UUID): Unique identifier for the expense.
        user_id (UUID): The user who spent the money.
        budget_id (UUID): The monthly budget the expense was applied to.
        category (Category): leisure, essentials or savings.
        amount (Decimal): Amount spent, strictly positive.
        description (str): Free text, at least three characters.
        payment_method (str): Payment method used (e.g., cash, card) (nullable).
        location (str): Where the money was spent (nullable).
        notes (str): Additional notes about the expense (nullable).
        expense_date (datetime): When the spend happened, defaults to creation time.
        created_at (datetime): Timestamp when the record was created.
        updated_at (datetime): Timestamp when the record was last updated.
    """
    __tablename__ = "expenses"

    expense_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    budget_id = Column(Uuid(as_uuid=True), ForeignKey("budgets.budget_id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(Enum(Category, name="expense_category", values_callable=lambda e: [c.value for c in e]), nullable=False)
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    description = Column(String, nullable=False)
    payment_method = Column(String, nullable=True)
    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    expense_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def validation_error(self) -> Optional[str]:
        return expense_validation_error(
            self.user_id, self.budget_id, self.category, self.amount, self.description
        )

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def __str__(self):
        return f"Expense(expense_id={self.expense_id}, category={self.category}, amount={self.amount}, description={self.description})"
