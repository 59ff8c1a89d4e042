from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED}),
    BookingStatus.APPROVED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(BookingStatus(current), frozenset())


class BookingModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    buyer_id: str
    scheduled_date: datetime
    duration_minutes: int
    ends_at: datetime
    status: BookingStatus
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


class ScheduleBookingRequest(BaseModel):
    scheduled_date: datetime = Field(..., description='Start of the tour')
    duration_minutes: Optional[int] = Field(
        default=None, description='Length of the tour; defaults to the configured duration'
    )
