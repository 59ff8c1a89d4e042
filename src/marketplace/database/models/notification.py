from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Index
from marketplace.database.models.base import Base


class Notification(Base):
    """Notification model - in-app notifications addressed to a user"""
    __tablename__ = "notifications"

    recipient_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False, index=True)  # new_offer, offer_status, booking_confirmed
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False, index=True)

    # Entity the notification is about
    entity_type = Column(String, nullable=True)
    entity_id = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_notifications_recipient_is_read", "recipient_id", "is_read"),
    )
