"""Expense logging against the user's active monthly budget.

Creating an expense is a paired write: the expense row and the increment of
the budget's spent total. Both happen in the session's transaction and are
committed together; if the second step fails the transaction is rolled back
and :class:`PartialApplyFailure` is raised instead of reporting success.

Overspend policy: a new expense that would take its category past the
planned amount is rejected with :class:`OverspendRejected` before anything is
written. The same check guards a reconciled update that moves an amount
between categories or raises it. The lower-level
``BudgetEngine.add_expense_amount`` still accepts overspend so direct budget
corrections remain possible.

Updating or deleting an expense leaves the budget's spent totals alone unless
``reconcile_on_change`` is set, in which case compensating deltas are applied
in the same transaction. Budget alerts raised by those deltas, like the ones
from a new expense, are only sent once the transaction has committed. Without
it the cached totals can drift from the sum of the expenses;
``BudgetEngine.recalculate_spent`` repairs that.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from functools import partial
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    BudgetEngineError, BudgetMismatch, NoActiveBudget, NotFound, OverspendRejected,
    PartialApplyFailure, ValidationError,
)
from app.models.budget import CENT, ZERO
from app.models.category import Category
from app.models.expense import Expense, expense_validation_error
from app.repositories.base import ExpenseStore
from app.services.budget_engine import BudgetEngine, parse_category
from app.utils.date import as_naive_utc
from schemas.expense import ExpenseSummary

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "category", "amount", "description", "payment_method", "location", "notes", "expense_date",
)


class ExpenseEngine:
    def __init__(
        self,
        expenses: ExpenseStore,
        budget_engine: BudgetEngine,
        reconcile_on_change: bool = False,
    ):
        self.expenses = expenses
        self.budget_engine = budget_engine
        self.reconcile_on_change = reconcile_on_change

    async def get(self, expense_id: UUID) -> Expense:
        expense = await self.expenses.get(expense_id)
        if not expense:
            raise NotFound("Expense not found", details={"expense_id": str(expense_id)})
        return expense

    async def create_expense(
        self,
        user_id: UUID,
        budget_id: UUID,
        category: Any,
        amount: Decimal,
        description: str,
        payment_method: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        expense_date: Optional[datetime] = None,
    ) -> Expense:
        logger.info(f"Creating expense of {amount} in {category} for user {user_id}")

        error = expense_validation_error(user_id, budget_id, category, amount, description)
        if error:
            logger.warning(f"Expense rejected: {error}")
            raise ValidationError(error)
        category = Category.parse(category)

        budget = await self.budget_engine.get_current(user_id)
        if budget is None:
            logger.warning(f"No budget for the current month for user {user_id}")
            raise NoActiveBudget("No budget found for the current month. Create a budget first.")

        if str(budget.budget_id) != str(budget_id):
            logger.warning(
                f"Budget {budget_id} does not match the current budget {budget.budget_id} of user {user_id}"
            )
            raise BudgetMismatch(
                "The budget id does not match the user's current budget.",
                details={"current_budget_id": str(budget.budget_id)},
            )

        self._ensure_within_budget(budget, category, amount)

        now = datetime.utcnow()
        expense = Expense(
            user_id=user_id,
            budget_id=budget.budget_id,
            category=category,
            amount=amount,
            description=description.strip(),
            payment_method=payment_method,
            location=location,
            notes=notes,
            expense_date=as_naive_utc(expense_date) or now,
            created_at=now,
            updated_at=now,
        )

        try:
            await self.expenses.save(expense)
        except SQLAlchemyError:
            await self.expenses.rollback()
            logger.error(f"Expense for budget {budget_id} could not be stored")
            raise

        try:
            await self.budget_engine.add_expense_amount(budget.budget_id, category, amount, commit=False)
            await self.expenses.commit()
        except (SQLAlchemyError, BudgetEngineError) as exc:
            await self.expenses.rollback()
            self.budget_engine.discard_pending_alerts()
            logger.error(f"Expense for budget {budget_id} could not be applied: {exc}")
            raise PartialApplyFailure(
                "The expense could not be applied to the budget. Nothing was recorded; retry the request.",
                details={"budget_id": str(budget_id)},
            ) from exc
        self.budget_engine.dispatch_pending_alerts()

        logger.info(f"Expense {expense.expense_id} created")
        return expense

    async def update_expense(self, expense_id: UUID, fields: Dict[str, Any]) -> Expense:
        logger.info(f"Updating expense {expense_id}")
        expense = await self.get(expense_id)

        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        merged = {name: getattr(expense, name) for name in UPDATABLE_FIELDS}
        merged.update({name: value for name, value in fields.items() if value is not None})

        error = expense_validation_error(
            expense.user_id, expense.budget_id, merged["category"], merged["amount"], merged["description"]
        )
        if error:
            logger.warning(f"Update of expense {expense_id} rejected: {error}")
            raise ValidationError(error)
        merged["category"] = Category.parse(merged["category"])
        merged["description"] = merged["description"].strip()
        merged["expense_date"] = as_naive_utc(merged["expense_date"])

        old_category, old_amount = Category.parse(expense.category), Decimal(expense.amount)
        new_category, new_amount = merged["category"], Decimal(merged["amount"])
        budget_id = expense.budget_id
        reconcile = self._reconcile(budget_id, old_category, old_amount, new_category, new_amount)
        if reconcile is not None:
            budget = await self.budget_engine.get(budget_id)
            released = old_amount if old_category == new_category else ZERO
            self._ensure_within_budget(budget, new_category, new_amount, released)

        for name, value in merged.items():
            setattr(expense, name, value)
        expense.touch()

        await self._write(expense, reconcile)
        logger.info(f"Expense {expense_id} updated")
        return expense

    async def delete_expense(self, expense_id: UUID) -> bool:
        logger.info(f"Deleting expense {expense_id}")
        expense = await self.expenses.get(expense_id)
        if not expense:
            return False
        reconcile = None
        if self.reconcile_on_change:
            reconcile = partial(
                self.budget_engine.reverse_expense_amount,
                expense.budget_id, expense.category, Decimal(expense.amount),
            )
        await self._write(expense, reconcile, delete=True)
        return True

    async def list_by_user(self, user_id: UUID) -> List[Expense]:
        logger.debug(f"Listing expenses of user {user_id}")
        return await self.expenses.list_by_user(user_id)

    async def list_by_budget(self, budget_id: UUID) -> List[Expense]:
        logger.debug(f"Listing expenses of budget {budget_id}")
        return await self.expenses.list_by_budget(budget_id)

    async def list_by_category(self, category: Any, user_id: Optional[UUID] = None) -> List[Expense]:
        return await self.expenses.list_by_category(parse_category(category), user_id)

    async def search_by_description(self, text: str) -> List[Expense]:
        if not text or not text.strip():
            raise ValidationError("Search text is required.")
        return await self.expenses.search_description(text.strip())

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Expense]:
        if start > end:
            raise ValidationError("Start date must not be after end date.")
        return await self.expenses.list_by_date_range(start, end)

    async def category_total(self, budget_id: UUID, category: Any) -> Decimal:
        category = parse_category(category)
        totals = await self.expenses.totals_by_category(budget_id)
        return totals.get(category, ZERO)

    async def summary(self, user_id: UUID) -> ExpenseSummary:
        logger.info(f"Building expense summary for user {user_id}")
        expenses = await self.expenses.list_by_user(user_id)

        categories = {category.value: ZERO for category in Category}
        for expense in expenses:
            category = Category.parse(expense.category)
            categories[category.value] += Decimal(expense.amount)

        total = sum(categories.values(), ZERO)
        count = len(expenses)
        average = (total / count).quantize(CENT, rounding=ROUND_HALF_UP) if count else Decimal("0.00")
        return ExpenseSummary(
            user_id=user_id,
            categories=categories,
            total_expenses=total,
            expense_count=count,
            average_expense=average,
        )

    def _ensure_within_budget(
        self, budget, category: Category, amount: Decimal, released: Decimal = ZERO
    ) -> None:
        """Reject an amount that would take the category past its planned budget.

        ``released`` is spent already counted for the same expense, given back first.
        """
        new_total = max(budget.spent_for(category) - released, ZERO) + amount
        limit = budget.budget_for(category)
        if new_total > limit:
            overage = new_total - limit
            logger.warning(f"Expense would exceed the {category.value} budget by {overage}")
            raise OverspendRejected(
                f"This expense would exceed your {category.value} budget by {overage:.2f}",
                category=category.value,
                overage=overage,
            )

    def _reconcile(self, budget_id, old_category, old_amount, new_category, new_amount):
        if not self.reconcile_on_change:
            return None
        if old_category == new_category and old_amount == Decimal(new_amount):
            return None
        return partial(self._move_amount, budget_id, old_category, old_amount, new_category, Decimal(new_amount))

    async def _move_amount(self, budget_id, old_category, old_amount, new_category, new_amount) -> None:
        await self.budget_engine.reverse_expense_amount(budget_id, old_category, old_amount)
        await self.budget_engine.add_expense_amount(budget_id, new_category, new_amount, commit=False)

    async def _write(self, expense: Expense, reconcile=None, delete: bool = False) -> None:
        """Persist the expense change, plus the budget correction when reconciling."""
        expense_id = expense.expense_id
        try:
            if delete:
                await self.expenses.delete(expense)
            else:
                await self.expenses.save(expense)
        except SQLAlchemyError:
            await self.expenses.rollback()
            raise

        try:
            if reconcile is not None:
                await reconcile()
            await self.expenses.commit()
        except (SQLAlchemyError, BudgetEngineError) as exc:
            await self.expenses.rollback()
            self.budget_engine.discard_pending_alerts()
            if reconcile is None:
                raise
            logger.error(f"Budget reconciliation for expense {expense_id} failed: {exc}")
            raise PartialApplyFailure(
                "The expense change could not be reconciled with its budget. Nothing was recorded.",
                details={"expense_id": str(expense_id)},
            ) from exc
        self.budget_engine.dispatch_pending_alerts()
