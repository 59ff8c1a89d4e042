from sqlalchemy import Column, String, Index
from marketplace.database.models.base import Base


class Analytics(Base):
    """Analytics model - append-only event stream feeding the counters"""
    __tablename__ = "analytics"

    entity_type = Column(String, nullable=False, index=True)  # property, user
    entity_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False, index=True)  # view, favorite, search
    user_id = Column(String, nullable=True, index=True)

    __table_args__ = (
        Index("ix_analytics_entity_event", "entity_type", "entity_id", "event_type"),
        Index("ix_analytics_created_at", "created_at"),
    )
