from typing import Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from marketplace.database.models.user import User
from marketplace.database.repository.base_repository import BaseRepository
from marketplace.database.repository.aggregates import rating_delta_values, average
from marketplace.utils.time_utils import utc_now


class UserRepository(BaseRepository[User]):
    """Repository for User model"""

    def __init__(self, db_session: Session):
        super().__init__(User, db_session)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.first_by_filter(email=email.lower())

    def apply_rating_delta(self, user_id: str, count_delta: int, sum_delta: int) -> int:
        values = rating_delta_values(User, count_delta, sum_delta)
        values["updated_at"] = utc_now()
        result = self.db_session.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def set_rating(self, user_id: str, ratings_count: int, ratings_sum: int) -> int:
        result = self.db_session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                ratings_count=ratings_count,
                ratings_sum=ratings_sum,
                average_rating=average(ratings_sum, ratings_count),
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
