from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PropertyStatus(str, Enum):
    DRAFT = 'draft'
    ACTIVE = 'active'
    SOLD = 'sold'
    RENTED = 'rented'
    ARCHIVED = 'archived'


class PropertyType(str, Enum):
    APARTMENT = 'apartment'
    VILLA = 'villa'
    STUDIO = 'studio'
    OFFICE = 'office'
    LAND = 'land'


class PriceType(str, Enum):
    SALE = 'sale'
    RENT = 'rent'


class GeoPoint(BaseModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class PropertyModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    slug: str
    description: Optional[str] = None
    property_type: Optional[PropertyType] = None
    status: PropertyStatus
    is_featured: bool = False
    price: float
    price_type: PriceType
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    city: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    owner_id: str
    agent_id: Optional[str] = None
    average_rating: float
    ratings_count: int
    favorites_count: int
    views_count: int
    boost_score: float
    boost_computed_at: Optional[datetime] = None
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CreatePropertyRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    property_type: Optional[PropertyType] = None
    status: PropertyStatus = Field(
        default=PropertyStatus.DRAFT, description='Initial listing status'
    )
    price: float = Field(..., ge=0, description='Listing price')
    price_type: PriceType = PriceType.SALE
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    city: Optional[str] = None
    location: Optional[GeoPoint] = None
    agent_id: Optional[str] = Field(
        default=None, description='Agent representing the listing'
    )


class UpdatePropertyStatusRequest(BaseModel):
    status: PropertyStatus
