"""Budget creation, updates and expense application under the planning rules.

Rules enforced on every create/update:

1. leisure + essentials + savings <= total income
2. savings <= total income - essentials
3. every amount non-negative, total income strictly positive
4. one budget per user and calendar month (create only)

Spent totals are only ever changed by :meth:`BudgetEngine.add_expense_amount`
(and the explicit :meth:`BudgetEngine.recalculate_spent` repair); plain
updates never touch them.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import ConcurrentModification, DuplicateBudget, NotFound, ValidationError
from app.models.budget import CENT, ZERO, Budget, budget_consistency_error
from app.models.category import Category
from app.repositories.base import BudgetStore, ExpenseStore, UserStore
from app.services.alerts import DEFAULT_THRESHOLDS, AlertHandler, BudgetAlert, crossed_alert, log_alert
from schemas.budget import AdjustmentSuggestion, AdjustmentType, BudgetVerdict

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("total_income", "leisure_budget", "essentials_budget", "savings_budget")


def parse_category(value) -> Category:
    try:
        return Category.parse(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None


def compute_auto_adjustment(budget: Budget) -> AdjustmentSuggestion:
    """Suggest category amounts that restore the income rules. Pure, nothing is saved."""
    income = Decimal(budget.total_income)
    total_budget = budget.total_budget

    if total_budget > income:
        excess = total_budget - income
        suggestions: Dict[str, Decimal] = {}
        for category in Category:
            planned = budget.budget_for(category)
            ratio = (planned / total_budget).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
            reduced = (planned - excess * ratio).quantize(CENT, rounding=ROUND_HALF_UP)
            suggestions[category.value] = max(reduced, ZERO)
        return AdjustmentSuggestion(
            type=AdjustmentType.REDUCTION,
            reason="Total budget exceeds total income",
            reduction_needed=excess,
            suggestions=suggestions,
        )

    available_after_essentials = income - budget.budget_for(Category.ESSENTIALS)
    if budget.budget_for(Category.SAVINGS) > available_after_essentials:
        return AdjustmentSuggestion(
            type=AdjustmentType.SAVINGS_ADJUSTMENT,
            reason="Savings exceed the income available after essentials",
            max_savings=available_after_essentials,
            suggestions={Category.SAVINGS.value: available_after_essentials},
        )

    return AdjustmentSuggestion(
        type=AdjustmentType.BALANCED,
        reason="Budget is already balanced",
        suggestions={},
    )


class BudgetEngine:
    def __init__(
        self,
        budgets: BudgetStore,
        users: UserStore,
        expenses: Optional[ExpenseStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
        alert_handlers: Optional[List[AlertHandler]] = None,
        alert_thresholds: Sequence[int] = DEFAULT_THRESHOLDS,
    ):
        self.budgets = budgets
        self.users = users
        self.expenses = expenses
        self.clock = clock or datetime.utcnow
        self.alert_handlers = alert_handlers if alert_handlers is not None else [log_alert]
        self.alert_thresholds = tuple(alert_thresholds)
        self.pending_alerts: List[BudgetAlert] = []

    def current_period(self):
        now = self.clock()
        return now.year, now.month

    async def get(self, budget_id: UUID) -> Budget:
        budget = await self.budgets.get(budget_id)
        if not budget:
            raise NotFound("Budget not found", details={"budget_id": str(budget_id)})
        return budget

    async def get_current(self, user_id: UUID) -> Optional[Budget]:
        year, month = self.current_period()
        logger.debug(f"Looking up budget of {user_id} for {year}-{month:02d}")
        return await self.budgets.find_by_user_and_month(user_id, year, month)

    async def list_for_user(self, user_id: UUID) -> List[Budget]:
        return await self.budgets.list_by_user(user_id)

    async def create(
        self,
        user_id: UUID,
        total_income: Decimal,
        leisure_budget: Decimal,
        essentials_budget: Decimal,
        savings_budget: Decimal,
    ) -> Budget:
        logger.info(f"Creating budget for user {user_id}")
        if not user_id:
            raise ValidationError("User id is required.")

        error = budget_consistency_error(total_income, leisure_budget, essentials_budget, savings_budget)
        if error:
            logger.warning(f"Budget rejected for {user_id}: {error}")
            raise ValidationError(error)

        if not await self.users.exists(user_id):
            raise NotFound("User not found", details={"user_id": str(user_id)})

        year, month = self.current_period()
        existing = await self.budgets.find_by_user_and_month(user_id, year, month)
        if existing:
            logger.warning(f"Budget already exists for {user_id} in {year}-{month:02d}")
            raise DuplicateBudget(
                "A budget already exists for this month. Update it instead.",
                details={"budget_id": str(existing.budget_id)},
            )

        now = self.clock()
        budget = Budget(
            user_id=user_id,
            total_income=total_income,
            leisure_budget=leisure_budget,
            essentials_budget=essentials_budget,
            savings_budget=savings_budget,
            leisure_spent=ZERO,
            essentials_spent=ZERO,
            savings_spent=ZERO,
            year=year,
            month=month,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.budgets.save(budget)
            await self.budgets.commit()
        except IntegrityError:
            # another request created the month's budget between lookup and insert
            await self.budgets.rollback()
            raise DuplicateBudget("A budget already exists for this month. Update it instead.")
        logger.info(f"Budget {budget.budget_id} created for {user_id}")
        return budget

    async def update(self, budget_id: UUID, fields: Dict[str, Optional[Decimal]]) -> Budget:
        """Apply the provided planning fields; all-or-nothing."""
        logger.info(f"Updating budget {budget_id}")
        budget = await self.get(budget_id)

        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        merged = {name: getattr(budget, name) for name in UPDATABLE_FIELDS}
        merged.update({name: value for name, value in fields.items() if value is not None})

        error = budget_consistency_error(**merged)
        if error:
            logger.warning(f"Update of budget {budget_id} rejected: {error}")
            raise ValidationError(error)

        for name, value in merged.items():
            setattr(budget, name, value)
        budget.touch()
        await self._persist(budget)
        logger.info(f"Budget {budget_id} updated")
        return budget

    async def delete(self, budget_id: UUID) -> bool:
        budget = await self.budgets.get(budget_id)
        if not budget:
            return False
        if self.expenses is not None:
            removed = await self.expenses.delete_for_budget(budget_id)
            logger.info(f"Removed {removed} expenses of budget {budget_id}")
        await self.budgets.delete(budget)
        await self.budgets.commit()
        logger.info(f"Budget {budget_id} deleted")
        return True

    async def add_expense_amount(
        self, budget_id: UUID, category, amount: Decimal, commit: bool = True
    ) -> Budget:
        """Increase a category's spent total. Overspend is allowed and only alerted.

        With ``commit=False`` the change is flushed but left for the caller's
        transaction to commit, and any alert is queued until the caller runs
        :meth:`dispatch_pending_alerts` after its commit.
        """
        logger.info(f"Adding {amount} to {category} of budget {budget_id}")
        if amount is None or amount <= ZERO:
            raise ValidationError("Amount must be greater than 0.")
        category = parse_category(category)
        budget = await self.get(budget_id)

        before = budget.spent_percentage(category)
        budget.apply_expense(category, amount)
        after = budget.spent_percentage(category)

        alert = self._crossed_alert(budget, category, before, after)
        if commit:
            await self._persist(budget)
            self._dispatch(alert)
        else:
            await self.budgets.save(budget)
            if alert is not None:
                self.pending_alerts.append(alert)
        return budget

    def dispatch_pending_alerts(self) -> None:
        alerts, self.pending_alerts = self.pending_alerts, []
        for alert in alerts:
            self._dispatch(alert)

    def discard_pending_alerts(self) -> None:
        self.pending_alerts = []

    async def reverse_expense_amount(self, budget_id: UUID, category, amount: Decimal) -> Budget:
        """Take a previously applied amount back out of a category, floored at 0.

        Only flushes; the caller owns the transaction.
        """
        category = parse_category(category)
        budget = await self.get(budget_id)
        setattr(budget, category.spent_field, max(budget.spent_for(category) - amount, ZERO))
        budget.touch()
        await self.budgets.save(budget)
        return budget

    async def recalculate_spent(self, budget_id: UUID) -> Budget:
        """Rebuild the spent totals from the budget's expenses."""
        if self.expenses is None:
            raise RuntimeError("recalculate_spent needs an expense store")
        budget = await self.get(budget_id)
        totals = await self.expenses.totals_by_category(budget_id)
        for category in Category:
            setattr(budget, category.spent_field, totals.get(category, ZERO))
        budget.touch()
        await self._persist(budget)
        logger.info(f"Spent totals of budget {budget_id} recalculated")
        return budget

    def validate(self, budget: Budget) -> BudgetVerdict:
        error = budget.consistency_error()
        if error:
            logger.warning(f"Budget {budget.budget_id} invalid: {error}")
        return BudgetVerdict(budget_id=budget.budget_id, valid=error is None, reason=error)

    def compute_auto_adjustment(self, budget: Budget) -> AdjustmentSuggestion:
        logger.info(f"Computing adjustments for budget {budget.budget_id}")
        return compute_auto_adjustment(budget)

    async def _persist(self, budget: Budget) -> None:
        budget_id = budget.budget_id
        try:
            await self.budgets.save(budget)
            await self.budgets.commit()
        except StaleDataError:
            await self.budgets.rollback()
            logger.warning(f"Budget {budget_id} was modified concurrently")
            raise ConcurrentModification(
                "The budget was modified by another request. Reload and retry.",
                details={"budget_id": str(budget_id)},
            )

    def _crossed_alert(
        self, budget: Budget, category: Category, before: Decimal, after: Decimal
    ) -> Optional[BudgetAlert]:
        level = crossed_alert(before, after, self.alert_thresholds)
        if level is None:
            return None
        return BudgetAlert(
            budget_id=budget.budget_id,
            user_id=budget.user_id,
            category=category,
            level=level,
            percentage=after,
        )

    def _dispatch(self, alert: Optional[BudgetAlert]) -> None:
        if alert is None:
            return
        for handler in self.alert_handlers:
            handler(alert)
