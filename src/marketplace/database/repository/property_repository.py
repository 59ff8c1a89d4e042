from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from marketplace.database.models.property import Property
from marketplace.database.repository.base_repository import BaseRepository
from marketplace.database.repository.aggregates import rating_delta_values, average
from marketplace.logger import logger
from marketplace.utils.time_utils import utc_now


class PropertyRepository(BaseRepository[Property]):
    """Repository for Property model"""

    def __init__(self, db_session: Session):
        super().__init__(Property, db_session)

    def lock_for_update(self, property_id: str, include_deleted: bool = False) -> Optional[Property]:
        """
        Take the property's write lock for the rest of the transaction.

        Bumping lock_version is a write, so it holds the row lock on PostgreSQL
        and the database write lock on SQLite until commit; concurrent
        check-then-act sequences on the same property serialize behind it.
        Returns None when the property is missing, or soft-deleted unless
        ``include_deleted`` is set.
        """
        statement = update(Property).where(Property.id == property_id)
        if not include_deleted:
            statement = statement.where(Property.is_deleted.is_(False))
        result = self.db_session.execute(
            statement
            .values(lock_version=Property.lock_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.query(include_deleted).filter(Property.id == property_id).populate_existing().first()

    def increment_counters(self, property_id: str, **deltas: int) -> int:
        """Atomic ``col = col + delta`` for counter columns"""
        values = {name: getattr(Property, name) + delta for name, delta in deltas.items()}
        values["updated_at"] = utc_now()
        result = self.db_session.execute(
            update(Property)
            .where(Property.id == property_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def apply_rating_delta(self, property_id: str, count_delta: int, sum_delta: int) -> int:
        values = rating_delta_values(Property, count_delta, sum_delta)
        values["updated_at"] = utc_now()
        result = self.db_session.execute(
            update(Property)
            .where(Property.id == property_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def set_rating(self, property_id: str, ratings_count: int, ratings_sum: int) -> int:
        result = self.db_session.execute(
            update(Property)
            .where(Property.id == property_id)
            .values(
                ratings_count=ratings_count,
                ratings_sum=ratings_sum,
                average_rating=average(ratings_sum, ratings_count),
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, property_id: str, include_deleted: bool = False) -> Optional[Property]:
        """Re-read a property after statement-level updates"""
        return self.query(include_deleted).filter(Property.id == property_id).populate_existing().first()

    def slug_exists(self, slug: str) -> bool:
        # Slugs stay reserved by deleted listings because the unique index covers all rows
        return self.query(include_deleted=True).filter(Property.slug == slug).first() is not None

    def list_listings(
        self,
        status: Optional[str] = None,
        city: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        owner_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Property]:
        query = self.query()
        if status:
            query = query.filter(Property.status == status)
        if city:
            query = query.filter(Property.city == city)
        if min_price is not None:
            query = query.filter(Property.price >= min_price)
        if max_price is not None:
            query = query.filter(Property.price <= max_price)
        if owner_id:
            query = query.filter(Property.owner_id == owner_id)
        results = (
            query.order_by(Property.boost_score.desc(), Property.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        logger.debug(f"[PROPERTY_REPOSITORY] Found {len(results)} listings")
        return results

    def all_live_ids(self) -> List[str]:
        return [row.id for row in self.db_session.query(Property.id).filter(Property.is_deleted.is_(False)).all()]
