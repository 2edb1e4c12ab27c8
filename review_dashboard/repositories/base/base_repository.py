"""
Base repository with standardized async CRUD operations and error handling.

Provides the foundation for all domain repositories.
"""

from typing import Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.database import handle_database_exception
from review_dashboard.core.logging import get_logger
from review_dashboard.models.base import BaseModel

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with standardized operations.

    Repositories flush but never commit; the calling service owns the
    transaction boundary.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    # ==================== Transaction Management ====================

    async def commit(self):
        """Commit current transaction."""
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise handle_database_exception(e, "commit") from e

    async def rollback(self):
        await self.session.rollback()

    # ==================== Read Operations ====================

    async def get_by_id(self, entity_id: int, *, refresh: bool = False) -> Optional[ModelType]:
        """
        Get entity by primary key.

        Args:
            entity_id: Primary key value
            refresh: Reload attributes even if the entity is already in the session
        """
        try:
            return await self.session.get(self.model, entity_id, populate_existing=refresh)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, f"get {self.model.__tablename__}") from e

    async def get_by_ids(self, entity_ids: Sequence[int]) -> List[ModelType]:
        if not entity_ids:
            return []
        try:
            result = await self.session.execute(
                select(self.model).where(self.model.id.in_(list(entity_ids)))
            )
        except SQLAlchemyError as e:
            raise handle_database_exception(e, f"get {self.model.__tablename__}") from e
        return list(result.scalars().all())

    async def exists(self, entity_id: int) -> bool:
        try:
            result = await self.session.execute(
                select(self.model.id).where(self.model.id == entity_id)
            )
        except SQLAlchemyError as e:
            raise handle_database_exception(e, f"exists {self.model.__tablename__}") from e
        return result.scalar_one_or_none() is not None

    async def count(self) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(self.model))
        except SQLAlchemyError as e:
            raise handle_database_exception(e, f"count {self.model.__tablename__}") from e
        return int(result.scalar_one())

    # ==================== Create Operations ====================

    async def create(self, entity: ModelType) -> ModelType:
        """
        Add and flush a new entity.

        Returns:
            The entity with its primary key populated
        """
        self.session.add(entity)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise handle_database_exception(e, f"create {self.model.__tablename__}") from e
        return entity
