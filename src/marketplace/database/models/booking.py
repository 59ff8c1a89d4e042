from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Index
from marketplace.database.models.base import Base


class Booking(Base):
    """Booking model - a requested property tour covering [scheduled_date, ends_at)"""
    __tablename__ = "bookings"

    property_id = Column(String, ForeignKey("properties.id"), nullable=False, index=True)
    buyer_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_date = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    status = Column(String, default="pending", nullable=False)  # pending, approved, rejected, completed, cancelled

    __table_args__ = (
        Index("ix_bookings_property_scheduled_date", "property_id", "scheduled_date"),
        Index("ix_bookings_property_status", "property_id", "status"),
    )
