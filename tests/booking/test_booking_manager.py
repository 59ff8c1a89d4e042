from datetime import datetime

import pytest

from marketplace.booking.booking_manager import BookingManager
from marketplace.booking.booking_model import BookingStatus
from marketplace.database.repository.booking_repository import BookingRepository
from marketplace.notification.notification_manager import NotificationManager
from marketplace.notification.notification_model import NotificationType
from marketplace.utils.common_models import ErrorKind

TEN_AM = datetime(2025, 1, 10, 10, 0)
TEN_THIRTY = datetime(2025, 1, 10, 10, 30)
ELEVEN_AM = datetime(2025, 1, 10, 11, 0)


@pytest.fixture
def bookings(db_manager, clock):
    return BookingManager(db_manager, clock=clock)


def test_tour_scenario(bookings, listing, seller, buyer, other_buyer):
    """Overlapping requests are accepted; the second approval hits the conflict"""
    first = bookings.schedule(buyer, listing.id, TEN_AM, 60)
    second = bookings.schedule(other_buyer, listing.id, TEN_THIRTY, 60)
    assert first.data.status == BookingStatus.PENDING
    assert second.data.status == BookingStatus.PENDING

    assert bookings.approve(seller, first.data.id).data.status == BookingStatus.APPROVED

    conflict = bookings.approve(seller, second.data.id)
    assert conflict.error_kind == ErrorKind.SLOT_CONFLICT
    assert conflict.error.context["conflicting_booking_id"] == first.data.id
    assert bookings.get_booking(second.data.id).data.status == BookingStatus.PENDING


def test_back_to_back_tours_do_not_conflict(bookings, listing, seller, buyer, other_buyer):
    first = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    second = bookings.schedule(other_buyer, listing.id, ELEVEN_AM, 60).data

    assert bookings.approve(seller, first.id).ok
    assert bookings.approve(seller, second.id).ok
    assert len(bookings.list_bookings_for_property(listing.id, BookingStatus.APPROVED)) == 2


def test_cancelled_tour_frees_the_slot(bookings, listing, seller, buyer, other_buyer):
    first = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    second = bookings.schedule(other_buyer, listing.id, TEN_THIRTY, 60).data
    bookings.approve(seller, first.id)

    assert bookings.cancel(buyer, first.id).data.status == BookingStatus.CANCELLED
    assert bookings.approve(seller, second.id).ok


def test_find_conflicts(bookings, listing, seller, buyer):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    bookings.approve(seller, booking.id)

    assert [b.id for b in bookings.find_conflicts(listing.id, TEN_THIRTY, ELEVEN_AM)] == [booking.id]
    assert bookings.find_conflicts(listing.id, ELEVEN_AM, datetime(2025, 1, 10, 12, 0)) == []


@pytest.mark.parametrize("duration", [0, -15, 481])
def test_invalid_duration(bookings, listing, buyer, duration):
    assert bookings.schedule(buyer, listing.id, TEN_AM, duration).error_kind == ErrorKind.INVALID_SLOT


def test_tour_in_the_past(bookings, listing, buyer):
    result = bookings.schedule(buyer, listing.id, datetime(2025, 1, 1, 9, 0), 60)
    assert result.error_kind == ErrorKind.INVALID_SLOT


def test_default_duration(bookings, listing, buyer):
    booking = bookings.schedule(buyer, listing.id, TEN_AM).data
    assert booking.duration_minutes == 60
    assert booking.ends_at == ELEVEN_AM


def test_only_owner_or_agent_may_approve(bookings, listing, buyer, other_buyer, agent):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    assert bookings.approve(other_buyer, booking.id).error_kind == ErrorKind.NOT_AUTHORIZED
    assert bookings.approve(buyer, booking.id).error_kind == ErrorKind.NOT_AUTHORIZED
    assert bookings.approve(agent, booking.id).ok


def test_stranger_cannot_cancel(bookings, listing, buyer, other_buyer, seller):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    assert bookings.cancel(other_buyer, booking.id).error_kind == ErrorKind.NOT_AUTHORIZED
    assert bookings.cancel(seller, booking.id).ok


def test_reject_only_pending(bookings, listing, seller, buyer):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    bookings.approve(seller, booking.id)

    result = bookings.reject(seller, booking.id)
    assert result.error_kind == ErrorKind.INVALID_TRANSITION
    assert result.error.context["current_status"] == BookingStatus.APPROVED.value


def test_complete_after_start(bookings, listing, seller, buyer, clock):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    bookings.approve(seller, booking.id)

    assert bookings.complete(seller, booking.id).error_kind == ErrorKind.INVALID_TRANSITION

    clock.now = TEN_THIRTY
    assert bookings.complete(seller, booking.id).data.status == BookingStatus.COMPLETED
    assert bookings.cancel(buyer, booking.id).error_kind == ErrorKind.INVALID_TRANSITION


def test_pending_tour_cannot_complete(bookings, listing, seller, buyer, clock):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    clock.now = ELEVEN_AM
    assert bookings.complete(seller, booking.id).error_kind == ErrorKind.INVALID_TRANSITION


def test_approval_notifies_buyer(bookings, db_manager, listing, seller, buyer):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    bookings.approve(seller, booking.id)

    inbox = NotificationManager(db_manager).list_notifications(buyer.user_id)
    assert [n.type for n in inbox] == [NotificationType.BOOKING_CONFIRMED]


def test_missing_booking(bookings, seller):
    assert bookings.approve(seller, "missing").error_kind == ErrorKind.NOT_FOUND


@pytest.mark.parametrize("start, end, overlaps", [
    (datetime(2025, 1, 10, 9, 0), TEN_AM, False),
    (ELEVEN_AM, datetime(2025, 1, 10, 12, 0), False),
    (datetime(2025, 1, 10, 9, 30), datetime(2025, 1, 10, 10, 1), True),
    (datetime(2025, 1, 10, 10, 59), datetime(2025, 1, 10, 11, 30), True),
    (TEN_THIRTY, datetime(2025, 1, 10, 10, 45), True),
    (datetime(2025, 1, 10, 9, 0), datetime(2025, 1, 10, 12, 0), True),
])
def test_overlap_query_uses_half_open_intervals(bookings, db_manager, listing, seller, buyer, start, end, overlaps):
    booking = bookings.schedule(buyer, listing.id, TEN_AM, 60).data
    bookings.approve(seller, booking.id)

    with db_manager.session_scope() as session:
        found = BookingRepository(session).find_overlapping_approved(listing.id, start, end)
    assert bool(found) is overlaps
