"""Persistence seams consumed by the budget and expense engines."""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.budget import Budget
from app.models.category import Category
from app.models.expense import Expense


class UnitOfWork(Protocol):
    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class UserStore(Protocol):
    async def exists(self, user_id: UUID) -> bool: ...


class BudgetStore(UnitOfWork, Protocol):
    async def get(self, budget_id: UUID) -> Optional[Budget]: ...

    async def find_by_user_and_month(self, user_id: UUID, year: int, month: int) -> Optional[Budget]: ...

    async def list_by_user(self, user_id: UUID) -> List[Budget]: ...

    async def save(self, budget: Budget) -> Budget: ...

    async def delete(self, budget: Budget) -> None: ...


class ExpenseStore(UnitOfWork, Protocol):
    async def get(self, expense_id: UUID) -> Optional[Expense]: ...

    async def save(self, expense: Expense) -> Expense: ...

    async def delete(self, expense: Expense) -> None: ...

    async def delete_for_budget(self, budget_id: UUID) -> int: ...

    async def list_by_user(self, user_id: UUID) -> List[Expense]: ...

    async def list_by_budget(self, budget_id: UUID) -> List[Expense]: ...

    async def list_by_category(self, category: Category, user_id: Optional[UUID] = None) -> List[Expense]: ...

    async def search_description(self, text: str) -> List[Expense]: ...

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Expense]: ...

    async def totals_by_category(self, budget_id: UUID) -> Dict[Category, Decimal]: ...


class SQLAlchemyRepository:
    """Shared session handling; every repository of a request uses the same session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
