import math
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.repository.analytics_repository import AnalyticsRepository
from marketplace.database.repository.booking_repository import BookingRepository
from marketplace.database.repository.favorite_repository import FavoriteRepository
from marketplace.database.repository.offer_repository import OfferRepository
from marketplace.database.repository.property_repository import PropertyRepository
from marketplace.database.soft_delete import mark_deleted
from marketplace.counters.counter_model import (
    BoostInputs,
    BoostResult,
    BoostWeights,
    FavoriteModel,
    FavoriteResult,
)
from marketplace.utils.common_models import Actor
from marketplace.utils.engine_utils import engine_operation
from marketplace.utils.errors import AlreadyFavorited, NotFound
from marketplace.utils.time_utils import utc_now, to_utc_naive

PROPERTY_ENTITY = 'property'
VIEW_EVENT = 'view'
FAVORITE_EVENT = 'favorite'


def default_boost_weights() -> BoostWeights:
    return BoostWeights(
        views=settings.Boost.W_VIEWS,
        favorites=settings.Boost.W_FAVORITES,
        offers=settings.Boost.W_OFFERS,
        bookings=settings.Boost.W_BOOKINGS,
    )


def compute_boost_score(inputs: BoostInputs, weights: BoostWeights) -> float:
    """Monotone in every input; views are damped logarithmically"""
    return (
        weights.views * math.log1p(inputs.views_count)
        + weights.favorites * inputs.favorites_count
        + weights.offers * inputs.recent_offers
        + weights.bookings * inputs.recent_bookings
    )


class CounterSynchronizer():
    """
    Derived counters on properties: favorites_count and views_count move
    with atomic increments next to the event that causes them; boost_score is
    recomputed in batches by the boost job rather than per event.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        weights: Optional[BoostWeights] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db_manager or get_database_manager()
        self.weights = weights or default_boost_weights()
        self.clock = clock

    @engine_operation("COUNTER_SYNCHRONIZER")
    def add_favorite(self, actor: Actor, property_id: str) -> FavoriteResult:
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            favorites = FavoriteRepository(session)

            if not properties.lock_for_update(property_id):
                raise NotFound("Property not found", property_id=property_id)

            existing = favorites.find_live(actor.user_id, property_id)
            if existing:
                raise AlreadyFavorited(
                    "Property is already in favorites",
                    property_id=property_id,
                    favorite_id=existing.id,
                )
            try:
                favorite = favorites.create(user_id=actor.user_id, property_id=property_id)
            except IntegrityError:
                raise AlreadyFavorited("Property is already in favorites", property_id=property_id)

            properties.increment_counters(property_id, favorites_count=1)
            AnalyticsRepository(session).record(PROPERTY_ENTITY, property_id, FAVORITE_EVENT, actor.user_id)
            result = FavoriteResult(
                favorite=FavoriteModel.model_validate(favorite),
                favorites_count=properties.refresh(property_id).favorites_count,
            )

        logger.info(f"[COUNTER_SYNCHRONIZER] {actor.user_id} favorited {property_id} ({result.favorites_count})")
        return result

    @engine_operation("COUNTER_SYNCHRONIZER")
    def remove_favorite(self, actor: Actor, property_id: str) -> FavoriteResult:
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            # The live favorite is read under the lock so only one removal decrements
            locked = properties.lock_for_update(property_id, include_deleted=True)
            favorite = FavoriteRepository(session).find_live(actor.user_id, property_id) if locked else None
            if not favorite:
                raise NotFound("Property is not in favorites", property_id=property_id)

            mark_deleted(favorite)
            session.flush()
            properties.increment_counters(property_id, favorites_count=-1)
            result = FavoriteResult(
                favorite=FavoriteModel.model_validate(favorite),
                favorites_count=properties.refresh(property_id, include_deleted=True).favorites_count,
            )

        logger.info(f"[COUNTER_SYNCHRONIZER] {actor.user_id} unfavorited {property_id} ({result.favorites_count})")
        return result

    def list_favorites(self, user_id: str) -> List[FavoriteModel]:
        with self.db.session_scope() as session:
            return [FavoriteModel.model_validate(row) for row in FavoriteRepository(session).list_for_user(user_id)]

    def record_view(self, property_id: str, user_id: Optional[str] = None) -> bool:
        """Fire-and-forget: a failed view is logged and reported as False, never raised"""
        try:
            with self.db.session_scope() as session:
                properties = PropertyRepository(session)
                if not properties.exists(property_id):
                    logger.warning(f"[COUNTER_SYNCHRONIZER] View on missing property {property_id} ignored")
                    return False
                AnalyticsRepository(session).record(PROPERTY_ENTITY, property_id, VIEW_EVENT, user_id)
                properties.increment_counters(property_id, views_count=1)
            return True
        except Exception as e:
            logger.error(f"[COUNTER_SYNCHRONIZER] Failed to record view on {property_id}: {e}")
            return False

    def recompute_boost(self, property_id: str, as_of: Optional[datetime] = None) -> BoostResult:
        """
        Recompute one property's boost score from its counters and the offers
        and tours created in the trailing window ending at ``as_of``.
        Re-running with the same stored data and ``as_of`` yields the same score.
        """
        as_of = to_utc_naive(as_of) if as_of else self.clock()
        since = as_of - timedelta(days=settings.Boost.RECENT_WINDOW_DAYS)

        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            property_obj = properties.get_by_id(property_id)
            if not property_obj:
                raise ValueError(f"Property '{property_id}' does not exist")

            inputs = BoostInputs(
                views_count=property_obj.views_count,
                favorites_count=property_obj.favorites_count,
                recent_offers=OfferRepository(session).count_created_since(property_id, since, as_of),
                recent_bookings=BookingRepository(session).count_created_since(property_id, since, as_of),
            )
            previous = property_obj.boost_score
            score = compute_boost_score(inputs, self.weights)
            properties.update(property_obj, boost_score=score, boost_computed_at=as_of)

        logger.debug(f"[COUNTER_SYNCHRONIZER] Boost for {property_id}: {previous:.3f} -> {score:.3f}")
        return BoostResult(
            property_id=property_id,
            boost_score=score,
            inputs=inputs,
            computed_at=as_of,
            previous_score=previous,
        )

    def recompute_all_boosts(self, as_of: Optional[datetime] = None) -> List[BoostResult]:
        as_of = to_utc_naive(as_of) if as_of else self.clock()
        with self.db.session_scope() as session:
            property_ids = PropertyRepository(session).all_live_ids()

        results = []
        for property_id in property_ids:
            try:
                results.append(self.recompute_boost(property_id, as_of=as_of))
            except ValueError as e:
                # Deleted between listing and recompute
                logger.warning(f"[COUNTER_SYNCHRONIZER] Skipping boost for {property_id}: {e}")
        logger.info(f"[COUNTER_SYNCHRONIZER] Recomputed boost for {len(results)} properties as of {as_of.isoformat()}")
        return results
