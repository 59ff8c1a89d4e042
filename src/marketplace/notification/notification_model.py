from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotificationType(str, Enum):
    NEW_OFFER = 'new_offer'
    OFFER_STATUS = 'offer_status'
    BOOKING_CONFIRMED = 'booking_confirmed'


class NotificationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    is_read: bool
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    created_at: datetime
