import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.future import select

from app.models.budget import Budget
from app.repositories.base import SQLAlchemyRepository

logger = logging.getLogger(__name__)


class BudgetRepository(SQLAlchemyRepository):
    """Budget rows, one per user and calendar month."""

    async def get(self, budget_id: UUID) -> Optional[Budget]:
        result = await self.session.execute(select(Budget).where(Budget.budget_id == budget_id))
        return result.scalar_one_or_none()

    async def find_by_user_and_month(self, user_id: UUID, year: int, month: int) -> Optional[Budget]:
        result = await self.session.execute(
            select(Budget).where(
                Budget.user_id == user_id,
                Budget.year == year,
                Budget.month == month,
            )
        )
        return result.scalars().first()

    async def list_by_user(self, user_id: UUID) -> List[Budget]:
        result = await self.session.execute(
            select(Budget)
            .where(Budget.user_id == user_id)
            .order_by(desc(Budget.year), desc(Budget.month))
        )
        return list(result.scalars().all())

    async def save(self, budget: Budget) -> Budget:
        """Stage the budget and flush; the version check runs here for updates."""
        self.session.add(budget)
        await self.session.flush()
        logger.debug(f"Flushed budget {budget.budget_id} (version {budget.version})")
        return budget

    async def delete(self, budget: Budget) -> None:
        await self.session.delete(budget)
        await self.session.flush()
