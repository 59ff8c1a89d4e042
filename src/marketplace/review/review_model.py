from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RatingSummary(BaseModel):
    property_id: str
    ratings_count: int
    average_rating: float


class ReviewResult(BaseModel):
    review: ReviewModel
    summary: RatingSummary
    created: bool = Field(
        ..., description='False when an existing review was edited'
    )


class UpsertReviewRequest(BaseModel):
    rating: int = Field(..., description='Rating from 1 to 5')
    comment: Optional[str] = Field(default=None, max_length=2000)
