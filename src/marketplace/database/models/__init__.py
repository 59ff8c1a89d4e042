from marketplace.database.models.base import Base
from marketplace.database.models.user import User
from marketplace.database.models.property import Property
from marketplace.database.models.offer import Offer
from marketplace.database.models.booking import Booking
from marketplace.database.models.review import Review
from marketplace.database.models.favorite import Favorite
from marketplace.database.models.notification import Notification
from marketplace.database.models.analytics import Analytics

__all__ = [
    "Base",
    "User",
    "Property",
    "Offer",
    "Booking",
    "Review",
    "Favorite",
    "Notification",
    "Analytics",
]
