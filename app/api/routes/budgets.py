import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_budget_engine
from app.core.config import settings
from app.core.exceptions import NotFound
from app.models.budget import Budget
from app.models.category import Category
from app.services.alerts import classify_percentage
from app.services.budget_engine import BudgetEngine
from schemas.budget import (
    AddExpenseAmountRequest, AdjustmentSuggestion, BudgetCreate, BudgetDeleteResponse,
    BudgetListResponse, BudgetResponse, BudgetUpdate, BudgetVerdict, CategoryBreakdown,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["budgets"])


def budget_to_response(budget: Budget) -> BudgetResponse:
    """
    Build the budget payload with its derived per-category figures.
    """
    categories = {}
    for category in Category:
        percentage = budget.spent_percentage(category)
        categories[category.value] = CategoryBreakdown(
            budget=budget.budget_for(category),
            spent=budget.spent_for(category),
            remaining=budget.remaining(category),
            percentage=percentage,
            is_over_budget=budget.is_over_budget(category),
            alert_level=classify_percentage(percentage, settings.BUDGET_ALERT_THRESHOLDS).value,
        )

    return BudgetResponse(
        budget_id=budget.budget_id,
        user_id=budget.user_id,
        month=budget.month,
        year=budget.year,
        total_income=budget.total_income,
        leisure_budget=budget.leisure_budget,
        essentials_budget=budget.essentials_budget,
        savings_budget=budget.savings_budget,
        leisure_spent=budget.leisure_spent,
        essentials_spent=budget.essentials_spent,
        savings_spent=budget.savings_spent,
        total_budget=budget.total_budget,
        total_spent=budget.total_spent,
        remaining_balance=budget.remaining_balance,
        is_budget_over_income=budget.is_budget_over_income,
        categories=categories,
        version=budget.version,
        created_at=budget.created_at,
        updated_at=budget.updated_at,
    )


@router.post("", response_model=BudgetResponse, status_code=status.HTTP_201_CREATED)
async def create_budget(
    budget: BudgetCreate,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Create the current month's budget for a user.
    """
    new_budget = await engine.create(
        user_id=budget.user_id,
        total_income=budget.total_income,
        leisure_budget=budget.leisure_budget,
        essentials_budget=budget.essentials_budget,
        savings_budget=budget.savings_budget,
    )
    return budget_to_response(new_budget)


@router.get("/current/{user_id}", response_model=BudgetResponse)
async def get_current_budget(
    user_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Get the user's budget for the current month.
    """
    budget = await engine.get_current(user_id)
    if not budget:
        raise NotFound("No budget found for the current month", details={"user_id": str(user_id)})
    return budget_to_response(budget)


@router.get("/user/{user_id}", response_model=BudgetListResponse)
async def get_user_budgets(
    user_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    budgets = await engine.list_for_user(user_id)
    return BudgetListResponse(
        budgets=[budget_to_response(b) for b in budgets],
        count=len(budgets),
    )


@router.get("/{budget_id}", response_model=BudgetResponse)
async def get_budget_detail(
    budget_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    budget = await engine.get(budget_id)
    return budget_to_response(budget)


@router.put("/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: UUID,
    budget_update: BudgetUpdate,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Update income and/or category budgets; spent amounts are left alone.
    """
    budget = await engine.update(budget_id, budget_update.model_dump(exclude_unset=True))
    return budget_to_response(budget)


@router.delete("/{budget_id}", response_model=BudgetDeleteResponse)
async def delete_budget(
    budget_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Delete a budget together with the expenses logged against it.
    """
    deleted = await engine.delete(budget_id)
    if not deleted:
        raise NotFound("Budget not found", details={"budget_id": str(budget_id)})
    return BudgetDeleteResponse()


@router.get("/{budget_id}/adjustments", response_model=AdjustmentSuggestion)
async def get_budget_adjustments(
    budget_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Suggest amounts that bring the budget back within income. Nothing is saved.
    """
    budget = await engine.get(budget_id)
    return engine.compute_auto_adjustment(budget)


@router.post("/{budget_id}/validate", response_model=BudgetVerdict)
async def validate_budget(
    budget_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    budget = await engine.get(budget_id)
    return engine.validate(budget)


@router.post("/{budget_id}/expenses", response_model=BudgetResponse)
async def add_expense_amount(
    budget_id: UUID,
    payload: AddExpenseAmountRequest,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Add an amount straight to a category's spent total. Overspend is accepted.
    """
    budget = await engine.add_expense_amount(budget_id, payload.category, payload.amount)
    return budget_to_response(budget)


@router.post("/{budget_id}/reconcile", response_model=BudgetResponse)
async def reconcile_budget(
    budget_id: UUID,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """
    Recompute spent totals from the expenses logged against the budget.
    """
    budget = await engine.recalculate_spent(budget_id)
    return budget_to_response(budget)
