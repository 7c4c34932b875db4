"""
Base repository with standardized data access for all domain repositories.

Repositories work inside a unit of work owned by the caller: they add and
flush, but never commit or roll back the session themselves.
"""

from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hrportal.core.exceptions import RepositoryError, ResourceNotFoundError
from hrportal.core.logging import get_logger
from hrportal.models.base import BaseModel

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one mapped model.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Session of the current unit of work
        """
        self.model = model
        self.db = db

    # ==================== Create Operations ====================

    def create(self, entity: ModelType, flush: bool = True) -> ModelType:
        """
        Add an entity to the unit of work.

        Raises:
            RepositoryError: If the flush violates a constraint
        """
        try:
            self.db.add(entity)
            if flush:
                self.db.flush()
            logger.debug(f"Created {self.model.__name__} with id: {entity.id}")
            return entity
        except IntegrityError as e:
            raise RepositoryError(
                f"{self.model.__name__} violates a constraint",
                {"error": str(e.orig)},
            ) from e

    # ==================== Read Operations ====================

    def find_by_id(self, id: str) -> Optional[ModelType]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Find by ID failed: {str(e)}") from e

    def get_by_id(self, id: str) -> ModelType:
        """
        Get entity by ID or raise ``ResourceNotFoundError``.
        """
        entity = self.find_by_id(id)
        if entity is None:
            raise ResourceNotFoundError(self.model.__name__, id)
        return entity

    def get_for_update(self, id: str) -> Optional[ModelType]:
        """
        Load an entity with a row lock held until the unit of work ends.

        ``populate_existing`` refreshes an instance already in the identity map.
        """
        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalars().first()

    def find_by_ids(self, ids: Sequence[str]) -> List[ModelType]:
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(list(ids)))
        return list(self.db.execute(stmt).scalars().all())

    def find_by_criteria(
        self,
        criteria: Dict[str, Any],
        order_by: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """
        Find entities whose columns equal the given values.

        Args:
            criteria: Column name to value mapping
            order_by: Column names, prefixed with ``-`` for descending
            limit: Maximum number of rows
        """
        stmt = select(self.model)
        for key, value in criteria.items():
            column = getattr(self.model, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        for name in order_by or []:
            column = getattr(self.model, name.lstrip("-"))
            stmt = stmt.order_by(column.desc() if name.startswith("-") else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def count(self, criteria: Optional[Dict[str, Any]] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        for key, value in (criteria or {}).items():
            stmt = stmt.where(getattr(self.model, key) == value)
        return int(self.db.execute(stmt).scalar_one())

    def exists(self, criteria: Dict[str, Any]) -> bool:
        return self.count(criteria) > 0

    # ==================== Delete Operations ====================

    def delete(self, entity: ModelType, flush: bool = True) -> None:
        self.db.delete(entity)
        if flush:
            self.db.flush()
        logger.debug(f"Deleted {self.model.__name__} with id: {entity.id}")
