from sqlalchemy import Column, String, Boolean, Integer, Float
from marketplace.database.models.base import Base


class User(Base):
    """User model - buyers, sellers, agents and admins"""
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    email = Column(String, nullable=False, unique=True)
    role = Column(String, default="buyer", nullable=False, index=True)  # buyer, seller, agent, admin
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Denormalized rating aggregate over reviews of the properties the user represents as agent
    ratings_count = Column(Integer, default=0, nullable=False)
    ratings_sum = Column(Integer, default=0, nullable=False)
    average_rating = Column(Float, default=0.0, nullable=False)
