from uuid import UUID

from sqlalchemy.future import select

from app.models.user import User
from app.repositories.base import SQLAlchemyRepository


class UserRepository(SQLAlchemyRepository):
    async def exists(self, user_id: UUID) -> bool:
        result = await self.session.execute(select(User.user_id).where(User.user_id == user_id))
        return result.scalar_one_or_none() is not None
