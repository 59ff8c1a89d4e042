import uuid
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import declarative_base, declared_attr

from marketplace.utils.time_utils import utc_now


def generate_id() -> str:
    return uuid.uuid4().hex


class BaseModel:
    """Base model with identity, timestamps and the soft-delete marker"""

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Soft delete: deleted_at is written once, on the transition to deleted
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            else:
                result[column.name] = value
        return result

    def __repr__(self):
        return f"<{self.__class__.__name__}(id='{self.id}')>"


# Create the base class for all models
Base = declarative_base(cls=BaseModel)

# Predicate shared by the partial unique indexes over live rows
LIVE_ROWS = "is_deleted = false"
