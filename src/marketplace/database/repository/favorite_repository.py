from typing import List, Optional
from sqlalchemy.orm import Session

from marketplace.database.models.favorite import Favorite
from marketplace.database.repository.base_repository import BaseRepository


class FavoriteRepository(BaseRepository[Favorite]):
    """Repository for Favorite model"""

    def __init__(self, db_session: Session):
        super().__init__(Favorite, db_session)

    def find_live(self, user_id: str, property_id: str) -> Optional[Favorite]:
        return self.first_by_filter(user_id=user_id, property_id=property_id)

    def list_for_user(self, user_id: str) -> List[Favorite]:
        return self.query().filter(Favorite.user_id == user_id).order_by(Favorite.created_at.desc()).all()
