from typing import Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.database.models.review import Review
from marketplace.database.repository.base_repository import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    """Repository for Review model"""

    def __init__(self, db_session: Session):
        super().__init__(Review, db_session)

    def find_live(self, user_id: str, property_id: str) -> Optional[Review]:
        return self.first_by_filter(user_id=user_id, property_id=property_id)

    def live_stats(self, property_id: str) -> Tuple[int, int]:
        """(count, sum) over the live reviews of a property"""
        count, total = self.db_session.query(
            func.count(Review.id), func.coalesce(func.sum(Review.rating), 0)
        ).filter(
            Review.property_id == property_id,
            Review.is_deleted.is_(False),
        ).one()
        return int(count), int(total)

    def live_stats_for_properties(self, property_ids) -> Tuple[int, int]:
        if not property_ids:
            return 0, 0
        count, total = self.db_session.query(
            func.count(Review.id), func.coalesce(func.sum(Review.rating), 0)
        ).filter(
            Review.property_id.in_(property_ids),
            Review.is_deleted.is_(False),
        ).one()
        return int(count), int(total)
