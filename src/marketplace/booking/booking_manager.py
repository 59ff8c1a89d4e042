from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.models.booking import Booking
from marketplace.database.repository.booking_repository import BookingRepository
from marketplace.database.repository.property_repository import PropertyRepository
from marketplace.booking.booking_model import BookingModel, BookingStatus, can_transition
from marketplace.listing.listing_model import PropertyStatus
from marketplace.notification.notification_manager import NotificationManager
from marketplace.notification.notification_model import NotificationModel, NotificationType
from marketplace.utils.common_models import Actor
from marketplace.utils.engine_utils import engine_operation, is_owner_or_agent, require_owner_or_agent
from marketplace.utils.errors import InvalidSlot, InvalidTransition, NotAuthorized, NotFound, SlotConflict
from marketplace.utils.time_utils import utc_now, to_utc_naive


class BookingManager():
    """
    Booking conflict resolver.

    Tour requests are accepted without a conflict check; several pending
    requests may compete for the same slot and the seller picks one. The
    overlap rule is enforced when approving, under the property's write lock,
    so two approvals of overlapping slots can never both commit.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None, clock: Callable[[], datetime] = utc_now):
        self.db = db_manager or get_database_manager()
        self.clock = clock

    @engine_operation("BOOKING_MANAGER")
    def schedule(
        self,
        actor: Actor,
        property_id: str,
        scheduled_date: datetime,
        duration_minutes: Optional[int] = None,
    ) -> BookingModel:
        if duration_minutes is None:
            duration_minutes = settings.Booking.DEFAULT_DURATION_MINUTES
        if duration_minutes <= 0 or duration_minutes > settings.Booking.MAX_DURATION_MINUTES:
            raise InvalidSlot(
                f"Tour duration must be between 1 and {settings.Booking.MAX_DURATION_MINUTES} minutes",
                duration_minutes=duration_minutes,
            )
        start = to_utc_naive(scheduled_date)
        if start < self.clock():
            raise InvalidSlot("Tours cannot be scheduled in the past", scheduled_date=start.isoformat())
        end = start + timedelta(minutes=duration_minutes)

        with self.db.session_scope() as session:
            property_obj = PropertyRepository(session).get_by_id(property_id)
            if not property_obj:
                raise NotFound("Property not found", property_id=property_id)
            if property_obj.status != PropertyStatus.ACTIVE.value:
                raise InvalidTransition(
                    "Tours can only be requested on active listings",
                    property_id=property_id,
                    property_status=property_obj.status,
                )

            booking = BookingRepository(session).create(
                property_id=property_id,
                buyer_id=actor.user_id,
                scheduled_date=start,
                duration_minutes=duration_minutes,
                ends_at=end,
                status=BookingStatus.PENDING.value,
            )
            result = BookingModel.model_validate(booking)

        logger.info(
            f"[BOOKING_MANAGER] Tour {result.id} requested by {actor.user_id} on {property_id} "
            f"for [{start.isoformat()}, {end.isoformat()})"
        )
        return result

    @engine_operation("BOOKING_MANAGER")
    def approve(self, actor: Actor, booking_id: str) -> BookingModel:
        notifications: List[NotificationModel] = []
        with self.db.session_scope() as session:
            bookings = BookingRepository(session)
            booking, property_obj = self._load_locked(session, booking_id)
            require_owner_or_agent(actor, property_obj, "approve tours")
            self._check_transition(booking, BookingStatus.APPROVED)

            conflicts = bookings.find_overlapping_approved(
                property_obj.id, booking.scheduled_date, booking.ends_at, exclude_id=booking.id
            )
            if conflicts:
                conflict = conflicts[0]
                raise SlotConflict(
                    "Another approved tour overlaps this slot",
                    booking_id=booking_id,
                    conflicting_booking_id=conflict.id,
                    conflicting_start=conflict.scheduled_date.isoformat(),
                    conflicting_end=conflict.ends_at.isoformat(),
                )

            bookings.update(booking, status=BookingStatus.APPROVED.value)
            notifications.append(NotificationManager.notify(
                session,
                recipient_id=booking.buyer_id,
                type=NotificationType.BOOKING_CONFIRMED,
                title="Tour confirmed",
                message=f"Your tour of '{property_obj.title}' on {booking.scheduled_date.isoformat()} is confirmed",
                entity_type="booking",
                entity_id=booking.id,
            ))
            result = BookingModel.model_validate(booking)

        logger.info(f"[BOOKING_MANAGER] Tour {booking_id} approved by {actor.user_id}")
        NotificationManager.deliver(notifications)
        return result

    @engine_operation("BOOKING_MANAGER")
    def reject(self, actor: Actor, booking_id: str) -> BookingModel:
        with self.db.session_scope() as session:
            booking, property_obj = self._load_locked(session, booking_id)
            require_owner_or_agent(actor, property_obj, "reject tours")
            if BookingStatus(booking.status) != BookingStatus.PENDING:
                raise InvalidTransition(
                    "Only pending tours can be rejected",
                    booking_id=booking_id,
                    current_status=booking.status,
                    requested_status=BookingStatus.REJECTED.value,
                )
            BookingRepository(session).update(booking, status=BookingStatus.REJECTED.value)
            result = BookingModel.model_validate(booking)

        logger.info(f"[BOOKING_MANAGER] Tour {booking_id} rejected by {actor.user_id}")
        return result

    @engine_operation("BOOKING_MANAGER")
    def cancel(self, actor: Actor, booking_id: str) -> BookingModel:
        with self.db.session_scope() as session:
            booking, property_obj = self._load_locked(session, booking_id)
            if booking.buyer_id != actor.user_id and not is_owner_or_agent(
                actor, property_obj.owner_id, property_obj.agent_id
            ):
                raise NotAuthorized("Only the buyer, owner or agent may cancel a tour", booking_id=booking_id)
            self._check_transition(booking, BookingStatus.CANCELLED)
            BookingRepository(session).update(booking, status=BookingStatus.CANCELLED.value)
            result = BookingModel.model_validate(booking)

        logger.info(f"[BOOKING_MANAGER] Tour {booking_id} cancelled by {actor.user_id}")
        return result

    @engine_operation("BOOKING_MANAGER")
    def complete(self, actor: Actor, booking_id: str) -> BookingModel:
        with self.db.session_scope() as session:
            booking, property_obj = self._load_locked(session, booking_id)
            require_owner_or_agent(actor, property_obj, "complete tours")
            self._check_transition(booking, BookingStatus.COMPLETED)
            if self.clock() < booking.scheduled_date:
                raise InvalidTransition(
                    "Tour cannot be completed before it starts",
                    booking_id=booking_id,
                    current_status=booking.status,
                    scheduled_date=booking.scheduled_date.isoformat(),
                )
            BookingRepository(session).update(booking, status=BookingStatus.COMPLETED.value)
            result = BookingModel.model_validate(booking)

        logger.info(f"[BOOKING_MANAGER] Tour {booking_id} completed")
        return result

    @engine_operation("BOOKING_MANAGER")
    def get_booking(self, booking_id: str) -> BookingModel:
        with self.db.session_scope() as session:
            booking = BookingRepository(session).get_by_id(booking_id)
            if not booking:
                raise NotFound("Booking not found", booking_id=booking_id)
            return BookingModel.model_validate(booking)

    def find_conflicts(self, property_id: str, start: datetime, end: datetime) -> List[BookingModel]:
        """Approved tours overlapping [start, end)"""
        with self.db.session_scope() as session:
            rows = BookingRepository(session).find_overlapping_approved(
                property_id, to_utc_naive(start), to_utc_naive(end)
            )
            return [BookingModel.model_validate(row) for row in rows]

    def list_bookings_for_property(self, property_id: str, status: Optional[BookingStatus] = None) -> List[BookingModel]:
        with self.db.session_scope() as session:
            rows = BookingRepository(session).list_for_property(property_id, status.value if status else None)
            return [BookingModel.model_validate(row) for row in rows]

    def _load_locked(self, session: Session, booking_id: str):
        booking = BookingRepository(session).get_by_id(booking_id)
        if not booking:
            raise NotFound("Booking not found", booking_id=booking_id)
        property_obj = PropertyRepository(session).lock_for_update(booking.property_id)
        if not property_obj:
            raise NotFound("Property not found", property_id=booking.property_id, booking_id=booking_id)
        session.refresh(booking)
        return booking, property_obj

    @staticmethod
    def _check_transition(booking: Booking, target: BookingStatus):
        current = BookingStatus(booking.status)
        if not can_transition(current, target):
            raise InvalidTransition(
                f"Cannot move tour from {current.value} to {target.value}",
                booking_id=booking.id,
                current_status=current.value,
                requested_status=target.value,
            )
