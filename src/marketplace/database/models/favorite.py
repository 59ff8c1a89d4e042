from sqlalchemy import Column, String, ForeignKey, Index, text
from marketplace.database.models.base import Base, LIVE_ROWS


class Favorite(Base):
    """Favorite model - presence of a live row is the signal"""
    __tablename__ = "favorites"

    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    property_id = Column(String, ForeignKey("properties.id"), nullable=False, index=True)

    __table_args__ = (
        Index(
            "uq_favorites_live_user_property", "user_id", "property_id",
            unique=True,
            sqlite_where=text(LIVE_ROWS),
            postgresql_where=text(LIVE_ROWS),
        ),
    )
