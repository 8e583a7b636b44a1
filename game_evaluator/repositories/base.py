"""
Base repository class for data access.

Repositories add and flush but never commit: the caller owns the unit of
work, so the pipeline can commit or roll back one game at a time.

Example:
    class GameRepository(BaseRepository[Game]):
        def find_by_identity_key(self, key: str) -> Optional[Game]:
            return self.where_first(Game.identity_key == key)
"""
import uuid
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Common data access helpers for one SQLAlchemy model.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    @staticmethod
    def new_id() -> str:
        """Generate a primary key for a new row."""
        return str(uuid.uuid4())

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID."""
        return self.db.query(self.model_type).filter(self.model_type.id == id).first()

    def create(self, **kwargs) -> T:
        """
        Add a new record and flush it so it is visible to later queries.

        Returns:
            The created record (not yet committed)
        """
        kwargs.setdefault("id", self.new_id())
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        self.db.flush()
        return instance

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where(self, *criterion) -> List[T]:
        """Filter records using SQLAlchemy expressions."""
        return self.db.query(self.model_type).filter(*criterion).all()

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.db.query(self.model_type).filter(*criterion).first()

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0
