from typing import Generic, TypeVar, Type, Optional, List
from sqlalchemy.orm import Session, Query

from marketplace.database.models.base import Base
from marketplace.database.soft_delete import scoped, mark_deleted
from marketplace.logger import logger
from marketplace.utils.time_utils import utc_now

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with soft-delete aware CRUD operations.

    Repositories never commit: the caller's session_scope owns the
    transaction, so every write made through a repository commits or rolls
    back together with the rest of the unit of work.
    """

    def __init__(self, model: Type[ModelType], db_session: Session):
        self.model = model
        self.db_session = db_session

    def query(self, include_deleted: bool = False) -> Query:
        return scoped(self.db_session.query(self.model), self.model, include_deleted)

    def create(self, **kwargs) -> ModelType:
        """Create a new record; constraint violations surface as IntegrityError on flush"""
        obj = self.model(**kwargs)
        self.db_session.add(obj)
        self.db_session.flush()
        logger.debug(f"[{self.__class__.__name__}] Created {self.model.__name__} with id: {obj.id}")
        return obj

    def get_by_id(self, id: str, include_deleted: bool = False) -> Optional[ModelType]:
        obj = self.query(include_deleted).filter(self.model.id == id).first()
        if not obj:
            logger.debug(f"[{self.__class__.__name__}] {self.model.__name__} not found with id: {id}")
        return obj

    def get_by_filter(self, include_deleted: bool = False, **filters) -> List[ModelType]:
        query = self.query(include_deleted)
        for key, value in filters.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)
        return query.all()

    def first_by_filter(self, include_deleted: bool = False, **filters) -> Optional[ModelType]:
        query = self.query(include_deleted)
        for key, value in filters.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)
        return query.first()

    def update(self, obj: ModelType, **kwargs) -> ModelType:
        for key, value in kwargs.items():
            if hasattr(obj, key):
                setattr(obj, key, value)
        obj.updated_at = utc_now()
        self.db_session.flush()
        return obj

    def soft_delete(self, id: str) -> Optional[ModelType]:
        """Soft-delete by id; deleting an already deleted record is a no-op"""
        obj = self.get_by_id(id, include_deleted=True)
        if not obj:
            return None
        if mark_deleted(obj):
            self.db_session.flush()
            logger.info(f"[{self.__class__.__name__}] Soft-deleted {self.model.__name__} with id: {id}")
        else:
            logger.debug(f"[{self.__class__.__name__}] {self.model.__name__} {id} already deleted")
        return obj

    def count(self, include_deleted: bool = False, **filters) -> int:
        query = self.query(include_deleted)
        for key, value in filters.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)
        return query.count()

    def exists(self, id: str) -> bool:
        return self.query().filter(self.model.id == id).first() is not None
