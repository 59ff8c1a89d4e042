from typing import List
from sqlalchemy.orm import Session

from marketplace.database.models.notification import Notification
from marketplace.database.repository.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification model"""

    def __init__(self, db_session: Session):
        super().__init__(Notification, db_session)

    def list_for_recipient(self, recipient_id: str, unread_only: bool = False) -> List[Notification]:
        query = self.query().filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).all()
