from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.models.offer import Offer
from marketplace.database.repository.offer_repository import OfferRepository
from marketplace.database.repository.property_repository import PropertyRepository
from marketplace.listing.listing_model import PropertyStatus
from marketplace.notification.notification_manager import NotificationManager
from marketplace.notification.notification_model import NotificationModel, NotificationType
from marketplace.offer.offer_model import (
    OfferModel,
    OfferStatus,
    OfferStatusReason,
    NON_TERMINAL_OFFER_STATUSES,
    can_transition,
)
from marketplace.utils.common_models import Actor
from marketplace.utils.engine_utils import engine_operation, require_owner_or_agent
from marketplace.utils.errors import (
    DuplicateActiveOffer,
    InvalidAmount,
    InvalidExpiry,
    InvalidTransition,
    NotAuthorized,
    NotFound,
)
from marketplace.utils.time_utils import utc_now, to_utc_naive


class OfferManager():
    """
    Offer negotiation engine.

    Offers move pending -> countered* -> accepted | rejected | withdrawn.
    Every transition runs under the property's write lock, and the store
    backs the rules with two partial unique indexes: one negotiable offer
    per (buyer, property) and one accepted offer per property.
    Expiry is lazy: an expired offer is rejected the next time it is touched
    or when expire_offers() sweeps.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None, clock: Callable[[], datetime] = utc_now):
        self.db = db_manager or get_database_manager()
        self.clock = clock

    @engine_operation("OFFER_MANAGER")
    def create(self, actor: Actor, property_id: str, amount: float, expires_at: Optional[datetime] = None) -> OfferModel:
        if amount is None or amount <= 0:
            raise InvalidAmount("Offer amount must be positive", amount=amount)

        now = self.clock()
        if expires_at is None:
            expires_at = now + timedelta(hours=settings.Offer.DEFAULT_EXPIRY_HOURS)
        else:
            expires_at = to_utc_naive(expires_at)
            if expires_at <= now:
                raise InvalidExpiry("Offer expiry must be in the future", expires_at=expires_at.isoformat())

        notifications: List[NotificationModel] = []
        with self.db.session_scope() as session:
            offers = OfferRepository(session)
            property_obj = PropertyRepository(session).get_by_id(property_id)
            if not property_obj:
                raise NotFound("Property not found", property_id=property_id)
            if actor.user_id in (property_obj.owner_id, property_obj.agent_id):
                raise NotAuthorized("Owners and agents cannot make offers on their own listing", property_id=property_id)
            if property_obj.status != PropertyStatus.ACTIVE.value:
                raise InvalidTransition(
                    "Offers can only be made on active listings",
                    property_id=property_id,
                    property_status=property_obj.status,
                )

            accepted = offers.first_by_filter(property_id=property_id, status=OfferStatus.ACCEPTED.value)
            if accepted:
                raise InvalidTransition(
                    "Property already has an accepted offer",
                    property_id=property_id,
                    accepted_offer_id=accepted.id,
                )

            existing = offers.find_active(actor.user_id, property_id)
            if existing and existing.expires_at <= now:
                self._expire(offers, existing)
                existing = None
            if existing:
                raise DuplicateActiveOffer(
                    "Buyer already has an active offer on this property",
                    offer_id=existing.id,
                    current_status=existing.status,
                )

            try:
                offer = offers.create(
                    property_id=property_id,
                    buyer_id=actor.user_id,
                    amount=amount,
                    status=OfferStatus.PENDING.value,
                    expires_at=expires_at,
                )
            except IntegrityError:
                # A concurrent request won the partial unique index
                raise DuplicateActiveOffer(
                    "Buyer already has an active offer on this property",
                    property_id=property_id,
                    buyer_id=actor.user_id,
                )

            notifications.append(NotificationManager.notify(
                session,
                recipient_id=property_obj.owner_id,
                type=NotificationType.NEW_OFFER,
                title="New offer",
                message=f"You received an offer of {amount:,.2f} on '{property_obj.title}'",
                entity_type="offer",
                entity_id=offer.id,
            ))
            result = OfferModel.model_validate(offer)

        logger.info(f"[OFFER_MANAGER] Offer {result.id} created by {actor.user_id} on {property_id} for {amount}")
        NotificationManager.deliver(notifications)
        return result

    @engine_operation("OFFER_MANAGER")
    def counter(self, actor: Actor, offer_id: str, new_amount: float) -> OfferModel:
        if new_amount is None or new_amount <= 0:
            raise InvalidAmount("Counter amount must be positive", amount=new_amount)

        notifications: List[NotificationModel] = []
        with self.db.session_scope() as session:
            offers = OfferRepository(session)
            offer, property_obj = self._load_locked(session, offer_id)
            require_owner_or_agent(actor, property_obj, "counter offers")
            self._expire_if_due(session, offers, offer)
            self._check_transition(offer, OfferStatus.COUNTERED)

            offers.update(
                offer,
                status=OfferStatus.COUNTERED.value,
                amount=new_amount,
                expires_at=self.clock() + timedelta(hours=settings.Offer.COUNTER_EXPIRY_HOURS),
            )
            notifications.append(self._notify_buyer(
                session, offer, property_obj, f"The seller countered with {new_amount:,.2f}"
            ))
            result = OfferModel.model_validate(offer)

        logger.info(f"[OFFER_MANAGER] Offer {offer_id} countered by {actor.user_id} at {new_amount}")
        NotificationManager.deliver(notifications)
        return result

    @engine_operation("OFFER_MANAGER")
    def accept(self, actor: Actor, offer_id: str) -> OfferModel:
        notifications: List[NotificationModel] = []
        with self.db.session_scope() as session:
            offers = OfferRepository(session)
            offer, property_obj = self._load_locked(session, offer_id)
            require_owner_or_agent(actor, property_obj, "accept offers")
            self._expire_if_due(session, offers, offer)
            self._check_transition(offer, OfferStatus.ACCEPTED)

            accepted = offers.first_by_filter(property_id=property_obj.id, status=OfferStatus.ACCEPTED.value)
            if accepted:
                raise InvalidTransition(
                    "Property already has an accepted offer",
                    offer_id=offer_id,
                    accepted_offer_id=accepted.id,
                )

            # Losers first, then the winner, all inside one transaction
            superseded = offers.active_for_property(property_obj.id, exclude_id=offer.id)
            for other in superseded:
                offers.update(other, status=OfferStatus.REJECTED.value, status_reason=OfferStatusReason.SUPERSEDED.value)
                notifications.append(self._notify_buyer(
                    session, other, property_obj, "Another offer on this property was accepted"
                ))

            try:
                offers.update(offer, status=OfferStatus.ACCEPTED.value, status_reason=None)
            except IntegrityError:
                raise InvalidTransition(
                    "Property already has an accepted offer",
                    offer_id=offer_id,
                    property_id=property_obj.id,
                )
            notifications.append(self._notify_buyer(session, offer, property_obj, "Your offer was accepted"))
            result = OfferModel.model_validate(offer)

        logger.info(
            f"[OFFER_MANAGER] Offer {offer_id} accepted by {actor.user_id}; "
            f"{len(superseded)} competing offer(s) rejected"
        )
        NotificationManager.deliver(notifications)
        return result

    @engine_operation("OFFER_MANAGER")
    def reject(self, actor: Actor, offer_id: str) -> OfferModel:
        notifications: List[NotificationModel] = []
        with self.db.session_scope() as session:
            offers = OfferRepository(session)
            offer, property_obj = self._load_locked(session, offer_id)
            require_owner_or_agent(actor, property_obj, "reject offers")
            self._expire_if_due(session, offers, offer)
            self._check_transition(offer, OfferStatus.REJECTED)

            offers.update(offer, status=OfferStatus.REJECTED.value, status_reason=None)
            notifications.append(self._notify_buyer(session, offer, property_obj, "Your offer was rejected"))
            result = OfferModel.model_validate(offer)

        logger.info(f"[OFFER_MANAGER] Offer {offer_id} rejected by {actor.user_id}")
        NotificationManager.deliver(notifications)
        return result

    @engine_operation("OFFER_MANAGER")
    def withdraw(self, actor: Actor, offer_id: str) -> OfferModel:
        with self.db.session_scope() as session:
            offers = OfferRepository(session)
            offer, _ = self._load_locked(session, offer_id)
            if offer.buyer_id != actor.user_id:
                raise NotAuthorized("Only the buyer may withdraw an offer", offer_id=offer_id)
            self._expire_if_due(session, offers, offer)
            self._check_transition(offer, OfferStatus.WITHDRAWN)

            offers.update(offer, status=OfferStatus.WITHDRAWN.value, status_reason=None)
            result = OfferModel.model_validate(offer)

        logger.info(f"[OFFER_MANAGER] Offer {offer_id} withdrawn by {actor.user_id}")
        return result

    @engine_operation("OFFER_MANAGER")
    def get_offer(self, offer_id: str) -> OfferModel:
        with self.db.session_scope() as session:
            offer = OfferRepository(session).get_by_id(offer_id)
            if not offer:
                raise NotFound("Offer not found", offer_id=offer_id)
            return OfferModel.model_validate(offer)

    def list_offers_for_property(self, property_id: str, status: Optional[OfferStatus] = None) -> List[OfferModel]:
        with self.db.session_scope() as session:
            rows = OfferRepository(session).list_for_property(property_id, status.value if status else None)
            return [OfferModel.model_validate(row) for row in rows]

    def expire_offers(self, now: Optional[datetime] = None) -> int:
        """Sweep: reject every negotiable offer whose expiry has passed"""
        now = now or self.clock()
        with self.db.session_scope() as session:
            offers = OfferRepository(session)
            expired = offers.expired_active(now)
            for offer in expired:
                self._expire(offers, offer)
        if expired:
            logger.info(f"[OFFER_MANAGER] Expired {len(expired)} offer(s)")
        return len(expired)

    def _load_locked(self, session: Session, offer_id: str):
        offer = OfferRepository(session).get_by_id(offer_id)
        if not offer:
            raise NotFound("Offer not found", offer_id=offer_id)
        property_obj = PropertyRepository(session).lock_for_update(offer.property_id)
        if not property_obj:
            raise NotFound("Property not found", property_id=offer.property_id, offer_id=offer_id)
        # Re-read under the lock; a concurrent transition may have committed meanwhile
        session.refresh(offer)
        return offer, property_obj

    @staticmethod
    def _check_transition(offer: Offer, target: OfferStatus):
        current = OfferStatus(offer.status)
        if not can_transition(current, target):
            raise InvalidTransition(
                f"Cannot move offer from {current.value} to {target.value}",
                offer_id=offer.id,
                current_status=current.value,
                requested_status=target.value,
            )

    @staticmethod
    def _expire(offers: OfferRepository, offer: Offer):
        offers.update(offer, status=OfferStatus.REJECTED.value, status_reason=OfferStatusReason.EXPIRED.value)
        logger.info(f"[OFFER_MANAGER] Offer {offer.id} expired at {offer.expires_at.isoformat()}")

    def _expire_if_due(self, session: Session, offers: OfferRepository, offer: Offer):
        """Access-time expiry: the expiry is committed even though the requested transition fails"""
        if OfferStatus(offer.status) in NON_TERMINAL_OFFER_STATUSES and offer.expires_at <= self.clock():
            self._expire(offers, offer)
            session.commit()
            raise InvalidTransition(
                "Offer has expired",
                offer_id=offer.id,
                current_status=OfferStatus.REJECTED.value,
                reason=OfferStatusReason.EXPIRED.value,
            )

    @staticmethod
    def _notify_buyer(session: Session, offer: Offer, property_obj, message: str) -> NotificationModel:
        return NotificationManager.notify(
            session,
            recipient_id=offer.buyer_id,
            type=NotificationType.OFFER_STATUS,
            title="Offer update",
            message=f"{message} ('{property_obj.title}')",
            entity_type="offer",
            entity_id=offer.id,
        )
