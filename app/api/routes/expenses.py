import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from app.api.dependencies import get_expense_engine
from app.core.exceptions import NotFound, ValidationError
from app.models.category import Category
from app.models.expense import Expense
from app.services.expense_engine import ExpenseEngine
from app.utils.date import parse_with_dateutil
from schemas.expense import (
    CategoryTotalResponse, ExpenseCreate, ExpenseDeleteResponse, ExpenseListResponse,
    ExpenseResponse, ExpenseSummary, ExpenseUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def to_list_response(expenses: List[Expense]) -> ExpenseListResponse:
    return ExpenseListResponse(
        expenses=[ExpenseResponse.model_validate(expense) for expense in expenses],
        count=len(expenses),
    )


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense: ExpenseCreate,
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    """Log an expense against the user's current budget"""
    created = await engine.create_expense(
        user_id=expense.user_id,
        budget_id=expense.budget_id,
        category=expense.category,
        amount=expense.amount,
        description=expense.description,
        payment_method=expense.payment_method,
        location=expense.location,
        notes=expense.notes,
        expense_date=expense.expense_date,
    )
    return ExpenseResponse.model_validate(created)


@router.get("/user/{user_id}", response_model=ExpenseListResponse)
async def get_expenses_by_user(
    user_id: uuid.UUID,
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    return to_list_response(await engine.list_by_user(user_id))


@router.get("/budget/{budget_id}", response_model=ExpenseListResponse)
async def get_expenses_by_budget(
    budget_id: uuid.UUID,
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    return to_list_response(await engine.list_by_budget(budget_id))


@router.get("/budget/{budget_id}/category/{category}/total", response_model=CategoryTotalResponse)
async def get_category_total(
    budget_id: uuid.UUID,
    category: str,
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    """Sum of a budget's expenses in one category"""
    total = await engine.category_total(budget_id, category)
    return CategoryTotalResponse(budget_id=budget_id, category=Category.parse(category), total=total)


@router.get("/category/{category}", response_model=ExpenseListResponse)
async def get_expenses_by_category(
    category: str,
    user_id: Optional[uuid.UUID] = Query(None, description="Restrict to one user's expenses"),
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    return to_list_response(await engine.list_by_category(category, user_id))


@router.get("/search", response_model=ExpenseListResponse)
async def search_expenses(
    q: str = Query(..., description="Text contained in the description (case-insensitive)"),
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    return to_list_response(await engine.search_by_description(q))


@router.get("/range", response_model=ExpenseListResponse)
async def get_expenses_by_date_range(
    from_date: str = Query(..., description="Start date, inclusive (YYYY-MM-DD or ISO datetime)"),
    to_date: str = Query(..., description="End date, inclusive (YYYY-MM-DD or ISO datetime)"),
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    start = parse_with_dateutil(from_date)
    end = parse_with_dateutil(to_date, end_of_day=True)
    if start is None or end is None:
        raise ValidationError(
            "from_date and to_date must be valid dates",
            details={"from_date": from_date, "to_date": to_date},
        )
    return to_list_response(await engine.list_by_date_range(start, end))


@router.get("/summary/{user_id}", response_model=ExpenseSummary)
async def get_expense_summary(
    user_id: uuid.UUID,
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    """Per-category totals, grand total, count and average of a user's expenses"""
    return await engine.summary(user_id)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense_detail(
    expense_id: uuid.UUID = Path(...),
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    return ExpenseResponse.model_validate(await engine.get(expense_id))


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: uuid.UUID,
    expense: ExpenseUpdate,
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    updated = await engine.update_expense(expense_id, expense.model_dump(exclude_unset=True))
    return ExpenseResponse.model_validate(updated)


@router.delete("/{expense_id}", response_model=ExpenseDeleteResponse)
async def drop_expense(
    expense_id: uuid.UUID = Path(...),
    engine: ExpenseEngine = Depends(get_expense_engine),
):
    if not await engine.delete_expense(expense_id):
        raise NotFound("Expense not found", details={"expense_id": str(expense_id)})
    return ExpenseDeleteResponse()
