from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.repositories.budget_repository import BudgetRepository
from app.repositories.expense_repository import ExpenseRepository
from app.repositories.user_repository import UserRepository
from app.services.budget_engine import BudgetEngine
from app.services.expense_engine import ExpenseEngine


def get_budget_engine(db: AsyncSession = Depends(get_db)) -> BudgetEngine:
    """
    Budget engine bound to the request's session
    """
    return BudgetEngine(
        budgets=BudgetRepository(db),
        users=UserRepository(db),
        expenses=ExpenseRepository(db),
        alert_thresholds=settings.BUDGET_ALERT_THRESHOLDS,
    )


def get_expense_engine(
    db: AsyncSession = Depends(get_db),
    budget_engine: BudgetEngine = Depends(get_budget_engine),
) -> ExpenseEngine:
    return ExpenseEngine(
        expenses=ExpenseRepository(db),
        budget_engine=budget_engine,
        reconcile_on_change=settings.RECONCILE_BUDGET_ON_EXPENSE_CHANGE,
    )
