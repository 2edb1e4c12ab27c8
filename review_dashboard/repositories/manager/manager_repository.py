"""
Manager Repository.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.database import handle_database_exception
from review_dashboard.models.manager import Manager
from review_dashboard.repositories.base import BaseRepository


class ManagerRepository(BaseRepository[Manager]):

    def __init__(self, session: AsyncSession):
        super().__init__(Manager, session)

    async def get_by_email(self, email: str) -> Optional[Manager]:
        """Case-insensitive email lookup"""
        try:
            result = await self.session.execute(
                select(Manager).where(func.lower(Manager.email) == email.strip().lower())
            )
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get manager by email") from e
        return result.scalar_one_or_none()

    async def create_manager(
        self,
        name: str,
        email: str,
        password_hash: str,
        is_first_user: bool = False
    ) -> Manager:
        manager = Manager(
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            is_first_user=is_first_user,
        )
        return await self.create(manager)
