from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FavoriteModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    property_id: str
    is_deleted: bool
    created_at: datetime


class FavoriteResult(BaseModel):
    favorite: FavoriteModel
    favorites_count: int


class BoostWeights(BaseModel):
    views: float
    favorites: float
    offers: float
    bookings: float


class BoostInputs(BaseModel):
    views_count: int
    favorites_count: int
    recent_offers: int
    recent_bookings: int


class BoostResult(BaseModel):
    property_id: str
    boost_score: float
    inputs: BoostInputs
    computed_at: datetime
    previous_score: Optional[float] = None
