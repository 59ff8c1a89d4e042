import random

import pytest

from marketplace.account.account_model import RegisterUserRequest
from marketplace.account.user_manager import UserManager
from marketplace.database.repository.property_repository import PropertyRepository
from marketplace.database.repository.review_repository import ReviewRepository
from marketplace.listing.listing_manager import ListingManager
from marketplace.review.rating_aggregator import RatingAggregator
from marketplace.utils.common_models import ErrorKind


@pytest.fixture
def ratings(db_manager):
    return RatingAggregator(db_manager)


def test_edit_and_remove_scenario(ratings, listing, buyer):
    created = ratings.upsert_review(buyer, listing.id, 3)
    assert created.data.created
    assert created.data.summary.ratings_count == 1
    assert created.data.summary.average_rating == 3.0

    edited = ratings.upsert_review(buyer, listing.id, 5)
    assert not edited.data.created
    assert edited.data.review.id == created.data.review.id
    assert edited.data.summary.ratings_count == 1
    assert edited.data.summary.average_rating == 5.0

    removed = ratings.remove_review(buyer, listing.id)
    assert removed.data.review.is_deleted
    assert removed.data.summary.ratings_count == 0
    assert removed.data.summary.average_rating == 0.0


def test_review_after_removal_creates_new_row(ratings, listing, buyer):
    first = ratings.upsert_review(buyer, listing.id, 2).data
    ratings.remove_review(buyer, listing.id)

    second = ratings.upsert_review(buyer, listing.id, 4).data
    assert second.created
    assert second.review.id != first.review.id
    assert second.summary.ratings_count == 1
    assert second.summary.average_rating == 4.0


@pytest.mark.parametrize("rating", [0, 6, -1, 3.5, "4", True, None])
def test_invalid_rating(ratings, listing, buyer, rating):
    assert ratings.upsert_review(buyer, listing.id, rating).error_kind == ErrorKind.INVALID_RATING
    assert ratings.get_summary(listing.id).data.ratings_count == 0


def test_owner_and_agent_cannot_review(ratings, listing, seller, agent):
    assert ratings.upsert_review(seller, listing.id, 5).error_kind == ErrorKind.NOT_AUTHORIZED
    assert ratings.upsert_review(agent, listing.id, 5).error_kind == ErrorKind.NOT_AUTHORIZED


def test_review_missing_property(ratings, buyer):
    assert ratings.upsert_review(buyer, "missing", 4).error_kind == ErrorKind.NOT_FOUND


def test_remove_without_review(ratings, listing, buyer):
    assert ratings.remove_review(buyer, listing.id).error_kind == ErrorKind.NOT_FOUND


def test_only_admin_may_remove_others_review(ratings, listing, buyer, other_buyer, admin):
    ratings.upsert_review(buyer, listing.id, 1)

    assert ratings.remove_review(other_buyer, listing.id, buyer.user_id).error_kind == ErrorKind.NOT_AUTHORIZED
    assert ratings.remove_review(admin, listing.id, buyer.user_id).ok


def test_average_identity_over_random_operations(ratings, db_manager, listing):
    rng = random.Random(7)
    reviewers = [
        UserManager(db_manager).register_user(
            RegisterUserRequest(name=f"Reviewer {i}", email=f"reviewer{i}@example.com")
        ).as_actor()
        for i in range(5)
    ]
    for _ in range(40):
        actor = rng.choice(reviewers)
        if rng.random() < 0.7:
            ratings.upsert_review(actor, listing.id, rng.randint(1, 5))
        else:
            ratings.remove_review(actor, listing.id)

        summary = ratings.get_summary(listing.id).data
        with db_manager.session_scope() as session:
            count, total = ReviewRepository(session).live_stats(listing.id)
        assert summary.ratings_count == count
        assert round(summary.average_rating * summary.ratings_count) == total


def test_agent_rating_follows_reviews(ratings, db_manager, create_listing, agent, buyer, other_buyer):
    first = create_listing(title="Harbour flat")
    second = create_listing(title="Garden villa")
    ratings.upsert_review(buyer, first.id, 4)
    ratings.upsert_review(other_buyer, second.id, 2)

    agent_user = UserManager(db_manager).get_user(agent.user_id)
    assert agent_user.ratings_count == 2
    assert agent_user.average_rating == 3.0

    ratings.remove_review(other_buyer, second.id)
    agent_user = UserManager(db_manager).get_user(agent.user_id)
    assert agent_user.ratings_count == 1
    assert agent_user.average_rating == 4.0


def test_recompute_repairs_drift(ratings, db_manager, listing, buyer, other_buyer):
    ratings.upsert_review(buyer, listing.id, 5)
    ratings.upsert_review(other_buyer, listing.id, 2)
    with db_manager.session_scope() as session:
        PropertyRepository(session).set_rating(listing.id, 9, 11)

    summary = ratings.recompute_property_rating(listing.id)
    assert summary.ratings_count == 2
    assert summary.average_rating == 3.5


def test_removed_listing_keeps_review_history(ratings, db_manager, listing, seller, buyer):
    ratings.upsert_review(buyer, listing.id, 4)
    ListingManager(db_manager).delete_property(seller, listing.id)

    assert ratings.upsert_review(buyer, listing.id, 5).error_kind == ErrorKind.NOT_FOUND
    assert ratings.remove_review(buyer, listing.id).ok


def test_recompute_keeps_agent_aggregate_with_deleted_listing(ratings, db_manager, create_listing, seller, agent,
                                                             buyer, other_buyer):
    kept = create_listing(title="Kept terrace")
    gone = create_listing(title="Gone cottage")
    ratings.upsert_review(buyer, kept.id, 5)
    ratings.upsert_review(other_buyer, gone.id, 2)
    ListingManager(db_manager).delete_property(seller, gone.id)
    before = UserManager(db_manager).get_user(agent.user_id)

    ratings.recompute_property_rating(kept.id)

    after = UserManager(db_manager).get_user(agent.user_id)
    assert (after.ratings_count, after.average_rating) == (before.ratings_count, before.average_rating)
    assert after.ratings_count == 2
    assert after.average_rating == 3.5
