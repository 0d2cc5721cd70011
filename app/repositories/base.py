"""Base repository implementation for the short-link service.

This module provides a generic BaseRepository class that follows the Repository pattern
for database operations, serving as a foundation for the concrete repositories.
"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union
import logging

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

# Type variable for model types
T = TypeVar("T", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class EntityNotFoundError(RepositoryError):
    """Exception raised when an entity cannot be found."""

    def __init__(self, model_type: Type[SQLModel], entity_id: Any):
        self.model_type = model_type
        self.entity_id = entity_id
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with id {entity_id} not found")


class DuplicateEntityError(RepositoryError):
    """Exception raised when a unique constraint is violated."""

    def __init__(self, model_type: Type[SQLModel], field_name: str, value: Any):
        self.model_type = model_type
        self.field_name = field_name
        self.value = value
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with {field_name}={value} already exists")


class OwnershipError(RepositoryError):
    """Exception raised when an entity belongs to a different owner."""

    def __init__(self, model_type: Type[SQLModel], entity_id: Any):
        self.model_type = model_type
        self.entity_id = entity_id
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with id {entity_id} belongs to another owner")


class BaseRepository(Generic[T, CreateSchemaType]):
    """
    Base repository implementing common operations for SQLModel entities.

    Errors from SQLAlchemy are logged and re-raised as ``RepositoryError``
    with the original exception chained. Transactions are owned by the
    caller: repositories flush but never commit.

    Type parameters:
        T: The SQLModel type this repository manages
        CreateSchemaType: The Pydantic model type for creation operations
    """

    def __init__(self, model_type: Type[T]):
        self.model_type = model_type

    async def get_by_id(self, db: AsyncSession, id: Any) -> Optional[T]:
        """
        Get an entity by its primary key.

        Args:
            db: Database session
            id: Entity ID

        Returns:
            The entity if found, None otherwise
        """
        try:
            return await db.get(self.model_type, id)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {self.model_type.__name__} with id {id}: {e}")
            raise RepositoryError(f"Database error retrieving entity: {e}") from e

    async def create(self, db: AsyncSession, data: Union[CreateSchemaType, Dict[str, Any]]) -> T:
        """
        Add a new entity and flush it so generated values are populated.

        Args:
            db: Database session
            data: Entity data (either as a Pydantic model or dictionary)

        Returns:
            The created entity

        Raises:
            RepositoryError: On database errors
        """
        data_dict = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
        try:
            entity = self.model_type(**data_dict)
            db.add(entity)
            await db.flush()
            await db.refresh(entity)
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error creating entity: {e}") from e

    async def count(self, db: AsyncSession, *conditions) -> int:
        """
        Count entities, optionally filtered by SQLAlchemy conditions.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(func.count()).select_from(self.model_type)
            if conditions:
                query = query.where(*conditions)
            result = await db.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.model_type.__name__} records: {e}")
            raise RepositoryError(f"Database error counting entities: {e}") from e

    async def exists(self, db: AsyncSession, *conditions, **filters) -> bool:
        """
        Check if an entity exists with the given filters.

        Args:
            db: Database session
            *conditions: Extra SQLAlchemy conditions
            **filters: Field=value pairs to filter by

        Raises:
            ValueError: If no condition is given
            RepositoryError: On database errors
        """
        clauses = list(conditions)
        clauses.extend(getattr(self.model_type, field) == value for field, value in filters.items())
        if not clauses:
            raise ValueError("No conditions provided for exists check")
        return await self.count(db, *clauses) > 0
