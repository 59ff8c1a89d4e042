from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from marketplace.database.models.offer import Offer
from marketplace.database.repository.base_repository import BaseRepository

NON_TERMINAL_STATUSES = ('pending', 'countered')


class OfferRepository(BaseRepository[Offer]):
    """Repository for Offer model"""

    def __init__(self, db_session: Session):
        super().__init__(Offer, db_session)

    def find_active(self, buyer_id: str, property_id: str) -> Optional[Offer]:
        """The live pending/countered offer of a buyer on a property, if any"""
        return self.query().filter(
            Offer.buyer_id == buyer_id,
            Offer.property_id == property_id,
            Offer.status.in_(NON_TERMINAL_STATUSES),
        ).first()

    def active_for_property(self, property_id: str, exclude_id: Optional[str] = None) -> List[Offer]:
        query = self.query().filter(
            Offer.property_id == property_id,
            Offer.status.in_(NON_TERMINAL_STATUSES),
        )
        if exclude_id:
            query = query.filter(Offer.id != exclude_id)
        return query.all()

    def expired_active(self, now: datetime) -> List[Offer]:
        return self.query().filter(
            Offer.status.in_(NON_TERMINAL_STATUSES),
            Offer.expires_at <= now,
        ).all()

    def list_for_property(self, property_id: str, status: Optional[str] = None) -> List[Offer]:
        query = self.query().filter(Offer.property_id == property_id)
        if status:
            query = query.filter(Offer.status == status)
        return query.order_by(Offer.created_at.desc()).all()

    def count_created_since(self, property_id: str, since: datetime, until: datetime) -> int:
        return self.query().filter(
            Offer.property_id == property_id,
            Offer.created_at >= since,
            Offer.created_at < until,
        ).count()
