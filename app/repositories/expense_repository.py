import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, func
from sqlalchemy.future import select

from app.models.category import Category
from app.models.expense import Expense
from app.repositories.base import SQLAlchemyRepository

logger = logging.getLogger(__name__)


class ExpenseRepository(SQLAlchemyRepository):
    """Expense rows. Listings are ordered newest expense date first."""

    async def _list(self, *filters) -> List[Expense]:
        result = await self.session.execute(
            select(Expense).where(and_(*filters)).order_by(desc(Expense.expense_date))
        )
        return list(result.scalars().all())

    async def get(self, expense_id: UUID) -> Optional[Expense]:
        result = await self.session.execute(select(Expense).where(Expense.expense_id == expense_id))
        return result.scalar_one_or_none()

    async def save(self, expense: Expense) -> Expense:
        self.session.add(expense)
        await self.session.flush()
        return expense

    async def delete(self, expense: Expense) -> None:
        await self.session.delete(expense)
        await self.session.flush()

    async def delete_for_budget(self, budget_id: UUID) -> int:
        result = await self.session.execute(delete(Expense).where(Expense.budget_id == budget_id))
        return result.rowcount or 0

    async def list_by_user(self, user_id: UUID) -> List[Expense]:
        return await self._list(Expense.user_id == user_id)

    async def list_by_budget(self, budget_id: UUID) -> List[Expense]:
        return await self._list(Expense.budget_id == budget_id)

    async def list_by_category(self, category: Category, user_id: Optional[UUID] = None) -> List[Expense]:
        filters = [Expense.category == category]
        if user_id:
            filters.append(Expense.user_id == user_id)
        return await self._list(*filters)

    async def search_description(self, text: str) -> List[Expense]:
        return await self._list(Expense.description.icontains(text, autoescape=True))

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Expense]:
        return await self._list(Expense.expense_date >= start, Expense.expense_date <= end)

    async def totals_by_category(self, budget_id: UUID) -> Dict[Category, Decimal]:
        result = await self.session.execute(
            select(Expense.category, func.sum(Expense.amount))
            .where(Expense.budget_id == budget_id)
            .group_by(Expense.category)
        )
        totals = {category: Decimal("0") for category in Category}
        for category, amount in result.all():
            totals[category] = Decimal(amount or 0)
        return totals
