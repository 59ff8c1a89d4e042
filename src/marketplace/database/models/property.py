from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Float, Integer, Index
from marketplace.database.models.base import Base


class Property(Base):
    """Property model - a listing owned by a user and optionally represented by an agent"""
    __tablename__ = "properties"

    # Listing details
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    property_type = Column(String, nullable=True, index=True)  # apartment, villa, studio, office, land
    status = Column(String, default="draft", nullable=False, index=True)  # draft, active, sold, rented, archived
    is_featured = Column(Boolean, default=False, nullable=False)

    # Pricing information
    price = Column(Float, nullable=False, index=True)
    price_type = Column(String, default="sale", nullable=False)  # sale, rent

    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)

    # Geographic point
    city = Column(String, nullable=True, index=True)
    longitude = Column(Float, nullable=True)
    latitude = Column(Float, nullable=True)

    # Ownership
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    agent_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)

    # Rating aggregate, refreshed with every review mutation
    average_rating = Column(Float, default=0.0, nullable=False)
    ratings_count = Column(Integer, default=0, nullable=False)
    ratings_sum = Column(Integer, default=0, nullable=False)

    # Event counters
    favorites_count = Column(Integer, default=0, nullable=False)
    views_count = Column(Integer, default=0, nullable=False, index=True)
    boost_score = Column(Float, default=0.0, nullable=False, index=True)
    boost_computed_at = Column(DateTime, nullable=True)

    # Bumped to take the row's write lock before check-then-act sequences
    lock_version = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("ix_properties_price_bedrooms", "price", "bedrooms"),
        Index("ix_properties_city_price", "city", "price"),
    )
