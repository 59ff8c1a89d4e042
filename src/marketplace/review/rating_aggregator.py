from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.logger import logger
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.models.property import Property
from marketplace.database.repository.property_repository import PropertyRepository
from marketplace.database.repository.review_repository import ReviewRepository
from marketplace.database.repository.user_repository import UserRepository
from marketplace.database.soft_delete import mark_deleted
from marketplace.review.review_model import RatingSummary, ReviewModel, ReviewResult
from marketplace.utils.common_models import Actor
from marketplace.utils.engine_utils import engine_operation
from marketplace.utils.errors import InvalidRating, InvalidTransition, NotAuthorized, NotFound

MIN_RATING = 1
MAX_RATING = 5


class _ConcurrentReviewCreated(Exception):
    """Another request created the live review between our read and our insert"""


class RatingAggregator():
    """
    Keeps ratings_count / ratings_sum / average_rating on properties (and on
    the agent representing them) in step with the live review set.

    Each review write and its aggregate update share one transaction, and the
    aggregate moves through a single UPDATE statement, so readers see either
    both the review and the new aggregate or neither.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db = db_manager or get_database_manager()

    @staticmethod
    def _validate_rating(rating) -> int:
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRating(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}", rating=rating)
        return rating

    @engine_operation("RATING_AGGREGATOR")
    def upsert_review(self, actor: Actor, property_id: str, rating: int, comment: Optional[str] = None) -> ReviewResult:
        rating = self._validate_rating(rating)
        try:
            return self._upsert_once(actor, property_id, rating, comment)
        except _ConcurrentReviewCreated:
            logger.warning(f"[RATING_AGGREGATOR] Concurrent review by {actor.user_id} on {property_id}; retrying as edit")
        try:
            return self._upsert_once(actor, property_id, rating, comment)
        except _ConcurrentReviewCreated:
            raise InvalidTransition(
                "Review was modified concurrently, try again",
                property_id=property_id,
                user_id=actor.user_id,
            )

    def _upsert_once(self, actor: Actor, property_id: str, rating: int, comment: Optional[str]) -> ReviewResult:
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            reviews = ReviewRepository(session)

            # Serializes review writes on this property; the edit delta is read under it
            property_obj = properties.lock_for_update(property_id)
            if not property_obj:
                raise NotFound("Property not found", property_id=property_id)
            if actor.user_id in (property_obj.owner_id, property_obj.agent_id):
                raise NotAuthorized("Owners and agents cannot review their own listing", property_id=property_id)

            existing = reviews.find_live(actor.user_id, property_id)
            if existing:
                delta = rating - existing.rating
                reviews.update(existing, rating=rating, comment=comment)
                self._apply_delta(session, property_obj, 0, delta)
                review, created = existing, False
            else:
                try:
                    review = reviews.create(property_id=property_id, user_id=actor.user_id, rating=rating, comment=comment)
                except IntegrityError:
                    raise _ConcurrentReviewCreated()
                self._apply_delta(session, property_obj, 1, rating)
                created = True

            summary = self._summary(properties, property_id)
            result = ReviewResult(review=ReviewModel.model_validate(review), summary=summary, created=created)

        logger.info(
            f"[RATING_AGGREGATOR] Review {'created' if created else 'edited'} by {actor.user_id} on {property_id}: "
            f"count={summary.ratings_count}, avg={summary.average_rating:.2f}"
        )
        return result

    @engine_operation("RATING_AGGREGATOR")
    def remove_review(self, actor: Actor, property_id: str, user_id: Optional[str] = None) -> ReviewResult:
        """Soft-delete the live review of ``user_id`` (default: the actor); admins may moderate others"""
        author_id = user_id or actor.user_id
        if author_id != actor.user_id and not actor.is_admin:
            raise NotAuthorized("Only the author or an admin may remove a review", property_id=property_id)

        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            reviews = ReviewRepository(session)

            property_obj = properties.lock_for_update(property_id, include_deleted=True)
            review = reviews.find_live(author_id, property_id) if property_obj else None
            if not review:
                raise NotFound("No active review for this property", property_id=property_id, user_id=author_id)

            mark_deleted(review)
            session.flush()
            self._apply_delta(session, property_obj, -1, -review.rating)

            summary = self._summary(properties, property_id, include_deleted=True)
            result = ReviewResult(review=ReviewModel.model_validate(review), summary=summary, created=False)

        logger.info(f"[RATING_AGGREGATOR] Review by {author_id} on {property_id} removed by {actor.user_id}")
        return result

    @engine_operation("RATING_AGGREGATOR")
    def get_summary(self, property_id: str) -> RatingSummary:
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            if not properties.exists(property_id):
                raise NotFound("Property not found", property_id=property_id)
            return self._summary(properties, property_id)

    def recompute_property_rating(self, property_id: str) -> RatingSummary:
        """Rebuild the aggregates from the live reviews; repair path for drifted data"""
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            reviews = ReviewRepository(session)
            property_obj = properties.lock_for_update(property_id, include_deleted=True)
            if not property_obj:
                raise ValueError(f"Property '{property_id}' does not exist")

            count, total = reviews.live_stats(property_id)
            properties.set_rating(property_id, count, total)

            if property_obj.agent_id:
                # Reviews on deleted listings still count, matching the incremental path
                agent_properties = [
                    p.id for p in properties.get_by_filter(include_deleted=True, agent_id=property_obj.agent_id)
                ]
                agent_count, agent_total = reviews.live_stats_for_properties(agent_properties)
                UserRepository(session).set_rating(property_obj.agent_id, agent_count, agent_total)

            summary = self._summary(properties, property_id, include_deleted=True)

        logger.info(f"[RATING_AGGREGATOR] Recomputed rating for {property_id}: count={summary.ratings_count}")
        return summary

    @staticmethod
    def _apply_delta(session: Session, property_obj: Property, count_delta: int, sum_delta: int):
        if count_delta == 0 and sum_delta == 0:
            return
        PropertyRepository(session).apply_rating_delta(property_obj.id, count_delta, sum_delta)
        if property_obj.agent_id:
            UserRepository(session).apply_rating_delta(property_obj.agent_id, count_delta, sum_delta)

    @staticmethod
    def _summary(properties: PropertyRepository, property_id: str, include_deleted: bool = False) -> RatingSummary:
        property_obj = properties.refresh(property_id, include_deleted=include_deleted)
        return RatingSummary(
            property_id=property_id,
            ratings_count=property_obj.ratings_count,
            average_rating=property_obj.average_rating,
        )
