from sqlalchemy import Column, String, DateTime, ForeignKey, Float, Index, text
from marketplace.database.models.base import Base, LIVE_ROWS

ACTIVE_OFFER_ROWS = f"status IN ('pending', 'countered') AND {LIVE_ROWS}"
ACCEPTED_OFFER_ROWS = f"status = 'accepted' AND {LIVE_ROWS}"


class Offer(Base):
    """Offer model - a buyer's bid on a property"""
    __tablename__ = "offers"

    property_id = Column(String, ForeignKey("properties.id"), nullable=False, index=True)
    buyer_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(String, default="pending", nullable=False, index=True)  # pending, countered, accepted, rejected, withdrawn
    status_reason = Column(String, nullable=True)  # expired, superseded
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_offers_property_buyer", "property_id", "buyer_id"),
        # At most one negotiable offer per (buyer, property)
        Index(
            "uq_offers_active_buyer_property", "buyer_id", "property_id",
            unique=True,
            sqlite_where=text(ACTIVE_OFFER_ROWS),
            postgresql_where=text(ACTIVE_OFFER_ROWS),
        ),
        # At most one winner per property
        Index(
            "uq_offers_accepted_property", "property_id",
            unique=True,
            sqlite_where=text(ACCEPTED_OFFER_ROWS),
            postgresql_where=text(ACCEPTED_OFFER_ROWS),
        ),
    )
