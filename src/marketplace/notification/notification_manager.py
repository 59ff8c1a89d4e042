from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from marketplace.logger import logger
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.repository.notification_repository import NotificationRepository
from marketplace.notification.notification_model import NotificationModel, NotificationType
from marketplace.notification.send_notification import send_notification
from marketplace.utils.common_models import ActionResult, Actor
from marketplace.utils.engine_utils import engine_operation
from marketplace.utils.errors import NotAuthorized, NotFound


class NotificationManager():
    """Persists notifications inside the caller's transaction and delivers them after commit"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db = db_manager or get_database_manager()

    @staticmethod
    def notify(
        session: Session,
        recipient_id: str,
        type: NotificationType,
        title: str,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> NotificationModel:
        notification = NotificationRepository(session).create(
            recipient_id=recipient_id,
            type=type.value,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        return NotificationModel.model_validate(notification)

    @staticmethod
    def deliver(notifications: Iterable[NotificationModel]) -> int:
        delivered = 0
        for notification in notifications:
            if send_notification(notification.title, notification.message, notification.recipient_id):
                delivered += 1
        return delivered

    def list_notifications(self, recipient_id: str, unread_only: bool = False) -> List[NotificationModel]:
        with self.db.session_scope() as session:
            rows = NotificationRepository(session).list_for_recipient(recipient_id, unread_only=unread_only)
            return [NotificationModel.model_validate(row) for row in rows]

    def _get_own(self, repo: NotificationRepository, actor: Actor, notification_id: str):
        notification = repo.get_by_id(notification_id)
        if not notification:
            raise NotFound("Notification not found", notification_id=notification_id)
        if notification.recipient_id != actor.user_id and not actor.is_admin:
            raise NotAuthorized("Notification belongs to another user", notification_id=notification_id)
        return notification

    @engine_operation("NOTIFICATION_MANAGER")
    def mark_read(self, actor: Actor, notification_id: str) -> NotificationModel:
        with self.db.session_scope() as session:
            repo = NotificationRepository(session)
            notification = self._get_own(repo, actor, notification_id)
            if not notification.is_read:
                repo.update(notification, is_read=True)
            return NotificationModel.model_validate(notification)

    @engine_operation("NOTIFICATION_MANAGER")
    def delete_notification(self, actor: Actor, notification_id: str) -> NotificationModel:
        with self.db.session_scope() as session:
            repo = NotificationRepository(session)
            notification = repo.get_by_id(notification_id, include_deleted=True)
            if not notification:
                raise NotFound("Notification not found", notification_id=notification_id)
            if notification.recipient_id != actor.user_id and not actor.is_admin:
                raise NotAuthorized("Notification belongs to another user", notification_id=notification_id)
            repo.soft_delete(notification_id)
            logger.info(f"[NOTIFICATION_MANAGER] Notification {notification_id} deleted by {actor.user_id}")
            return NotificationModel.model_validate(notification)
