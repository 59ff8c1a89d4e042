from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from marketplace.database.models.booking import Booking
from marketplace.database.repository.base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    """Repository for Booking model"""

    def __init__(self, db_session: Session):
        super().__init__(Booking, db_session)

    def find_overlapping_approved(
        self,
        property_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> List[Booking]:
        """Live approved bookings whose [scheduled_date, ends_at) overlaps [start, end)"""
        query = self.query().filter(
            Booking.property_id == property_id,
            Booking.status == 'approved',
            Booking.scheduled_date < end,
            Booking.ends_at > start,
        )
        if exclude_id:
            query = query.filter(Booking.id != exclude_id)
        return query.order_by(Booking.scheduled_date).all()

    def list_for_property(self, property_id: str, status: Optional[str] = None) -> List[Booking]:
        query = self.query().filter(Booking.property_id == property_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.scheduled_date).all()

    def count_created_since(self, property_id: str, since: datetime, until: datetime) -> int:
        return self.query().filter(
            Booking.property_id == property_id,
            Booking.created_at >= since,
            Booking.created_at < until,
        ).count()
