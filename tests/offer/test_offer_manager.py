from datetime import timedelta

import pytest

from marketplace.database.repository.offer_repository import OfferRepository
from marketplace.listing.listing_model import PropertyStatus
from marketplace.notification.notification_manager import NotificationManager
from marketplace.notification.notification_model import NotificationType
from marketplace.offer.offer_manager import OfferManager
from marketplace.offer.offer_model import OfferStatus, OfferStatusReason, can_transition
from marketplace.utils.common_models import ErrorKind


@pytest.fixture
def offers(db_manager, clock):
    return OfferManager(db_manager, clock=clock)


def test_negotiation_scenario(offers, listing, seller, buyer, other_buyer):
    """Offer, duplicate, counter, then losing to a competing accepted offer"""
    first = offers.create(buyer, listing.id, 400000)
    assert first.ok
    assert first.data.status == OfferStatus.PENDING

    duplicate = offers.create(buyer, listing.id, 410000)
    assert duplicate.error_kind == ErrorKind.DUPLICATE_ACTIVE_OFFER
    assert duplicate.error.context["offer_id"] == first.data.id

    countered = offers.counter(seller, first.data.id, 420000)
    assert countered.ok
    assert countered.data.status == OfferStatus.COUNTERED
    assert countered.data.amount == 420000

    competing = offers.create(other_buyer, listing.id, 430000)
    accepted = offers.accept(seller, competing.data.id)
    assert accepted.ok
    assert accepted.data.status == OfferStatus.ACCEPTED

    loser = offers.get_offer(first.data.id).data
    assert loser.status == OfferStatus.REJECTED
    assert loser.status_reason == OfferStatusReason.SUPERSEDED


def test_at_most_one_active_offer_per_buyer_and_property(offers, db_manager, listing, buyer):
    offers.create(buyer, listing.id, 400000)
    offers.create(buyer, listing.id, 405000)
    offers.create(buyer, listing.id, 410000)

    with db_manager.session_scope() as session:
        active = OfferRepository(session).active_for_property(listing.id)
    assert len(active) == 1


def test_new_offer_allowed_after_withdraw(offers, listing, buyer):
    first = offers.create(buyer, listing.id, 400000)
    assert offers.withdraw(buyer, first.data.id).data.status == OfferStatus.WITHDRAWN

    second = offers.create(buyer, listing.id, 395000)
    assert second.ok
    assert second.data.id != first.data.id


def test_invalid_amount(offers, listing, buyer):
    assert offers.create(buyer, listing.id, 0).error_kind == ErrorKind.INVALID_AMOUNT
    assert offers.create(buyer, listing.id, -5).error_kind == ErrorKind.INVALID_AMOUNT


def test_expiry_in_the_past_is_rejected(offers, listing, buyer, clock):
    result = offers.create(buyer, listing.id, 400000, expires_at=clock() - timedelta(minutes=1))
    assert result.error_kind == ErrorKind.INVALID_EXPIRY


def test_owner_and_agent_cannot_offer_on_own_listing(offers, listing, seller, agent):
    assert offers.create(seller, listing.id, 400000).error_kind == ErrorKind.NOT_AUTHORIZED
    assert offers.create(agent, listing.id, 400000).error_kind == ErrorKind.NOT_AUTHORIZED


def test_offer_on_missing_or_inactive_listing(offers, create_listing, buyer):
    assert offers.create(buyer, "missing", 1000).error_kind == ErrorKind.NOT_FOUND

    draft = create_listing(title="Draft loft", status=PropertyStatus.DRAFT)
    result = offers.create(buyer, draft.id, 1000)
    assert result.error_kind == ErrorKind.INVALID_TRANSITION
    assert result.error.context["property_status"] == "draft"


def test_only_owner_or_agent_may_respond(offers, listing, buyer, other_buyer, agent, admin):
    offer = offers.create(buyer, listing.id, 400000).data

    assert offers.counter(other_buyer, offer.id, 1).error_kind == ErrorKind.NOT_AUTHORIZED
    assert offers.accept(buyer, offer.id).error_kind == ErrorKind.NOT_AUTHORIZED
    assert offers.counter(agent, offer.id, 410000).ok
    assert offers.reject(admin, offer.id).ok


def test_only_buyer_may_withdraw(offers, listing, buyer, seller):
    offer = offers.create(buyer, listing.id, 400000).data
    assert offers.withdraw(seller, offer.id).error_kind == ErrorKind.NOT_AUTHORIZED


def test_terminal_offers_reject_further_transitions(offers, listing, seller, buyer):
    offer = offers.create(buyer, listing.id, 400000).data
    offers.reject(seller, offer.id)

    for result in (
        offers.accept(seller, offer.id),
        offers.counter(seller, offer.id, 1),
        offers.withdraw(buyer, offer.id),
        offers.reject(seller, offer.id),
    ):
        assert result.error_kind == ErrorKind.INVALID_TRANSITION
        assert result.error.context["current_status"] == OfferStatus.REJECTED.value


def test_second_accept_on_property_fails(offers, listing, seller, buyer, other_buyer):
    first = offers.create(buyer, listing.id, 400000).data
    offers.accept(seller, first.id)

    late = offers.create(other_buyer, listing.id, 500000)
    assert late.error_kind == ErrorKind.INVALID_TRANSITION
    assert late.error.context["accepted_offer_id"] == first.id


def test_access_after_expiry_rejects_offer(offers, listing, seller, buyer, clock):
    offer = offers.create(buyer, listing.id, 400000).data
    clock.advance(hours=73)

    result = offers.accept(seller, offer.id)
    assert result.error_kind == ErrorKind.INVALID_TRANSITION
    assert result.error.context["reason"] == OfferStatusReason.EXPIRED.value

    stored = offers.get_offer(offer.id).data
    assert stored.status == OfferStatus.REJECTED
    assert stored.status_reason == OfferStatusReason.EXPIRED


def test_expired_offer_does_not_block_new_offer(offers, listing, buyer, clock):
    offers.create(buyer, listing.id, 400000, expires_at=clock() + timedelta(hours=1))
    clock.advance(hours=2)

    assert offers.create(buyer, listing.id, 390000).ok


def test_expire_offers_sweep(offers, listing, buyer, other_buyer, clock):
    offers.create(buyer, listing.id, 400000, expires_at=clock() + timedelta(hours=1))
    offers.create(other_buyer, listing.id, 410000, expires_at=clock() + timedelta(hours=100))
    clock.advance(hours=2)

    assert offers.expire_offers() == 1
    assert offers.expire_offers() == 0
    assert len(offers.list_offers_for_property(listing.id, OfferStatus.PENDING)) == 1


def test_counter_resets_expiry(offers, listing, seller, buyer, clock):
    offer = offers.create(buyer, listing.id, 400000, expires_at=clock() + timedelta(hours=1)).data
    clock.advance(minutes=30)

    countered = offers.counter(seller, offer.id, 420000).data
    assert countered.expires_at > offer.expires_at


def test_offer_notifications(offers, db_manager, listing, seller, buyer):
    offer = offers.create(buyer, listing.id, 400000).data
    offers.accept(seller, offer.id)

    notifications = NotificationManager(db_manager)
    seller_inbox = notifications.list_notifications(seller.user_id)
    buyer_inbox = notifications.list_notifications(buyer.user_id)
    assert [n.type for n in seller_inbox] == [NotificationType.NEW_OFFER]
    assert [n.type for n in buyer_inbox] == [NotificationType.OFFER_STATUS]
    assert buyer_inbox[0].entity_id == offer.id


def test_transition_table():
    assert can_transition(OfferStatus.PENDING, OfferStatus.COUNTERED)
    assert can_transition(OfferStatus.COUNTERED, OfferStatus.COUNTERED)
    assert not can_transition(OfferStatus.ACCEPTED, OfferStatus.REJECTED)
    assert not can_transition(OfferStatus.WITHDRAWN, OfferStatus.PENDING)
