from sqlalchemy.orm import Session

from marketplace.database.models.analytics import Analytics
from marketplace.database.repository.base_repository import BaseRepository


class AnalyticsRepository(BaseRepository[Analytics]):
    """Repository for Analytics model"""

    def __init__(self, db_session: Session):
        super().__init__(Analytics, db_session)

    def record(self, entity_type: str, entity_id: str, event_type: str, user_id: str = None) -> Analytics:
        return self.create(entity_type=entity_type, entity_id=entity_id, event_type=event_type, user_id=user_id)

    def count_events(self, entity_type: str, entity_id: str, event_type: str) -> int:
        return self.count(entity_type=entity_type, entity_id=entity_id, event_type=event_type)
