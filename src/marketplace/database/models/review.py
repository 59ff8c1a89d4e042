from sqlalchemy import Column, String, Text, ForeignKey, Integer, Index, CheckConstraint, text
from marketplace.database.models.base import Base, LIVE_ROWS


class Review(Base):
    """Review model - one live review per (user, property)"""
    __tablename__ = "reviews"

    property_id = Column(String, ForeignKey("properties.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index(
            "uq_reviews_live_property_user", "property_id", "user_id",
            unique=True,
            sqlite_where=text(LIVE_ROWS),
            postgresql_where=text(LIVE_ROWS),
        ),
    )
