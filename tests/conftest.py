from datetime import datetime, timedelta

import pytest

from marketplace.account.account_model import RegisterUserRequest
from marketplace.account.user_manager import UserManager
from marketplace.database.database_manager import DatabaseManager
from marketplace.listing.listing_manager import ListingManager
from marketplace.listing.listing_model import CreatePropertyRequest, PropertyStatus
from marketplace.utils.common_models import Actor


class FakeClock:
    """Controllable clock injected into the engines"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db_manager():
    manager = DatabaseManager("sqlite://")
    manager.create_all()
    yield manager
    manager.drop_all()
    manager.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 9, 12, 0))


def _register(db_manager, name, role):
    user = UserManager(db_manager).register_user(
        RegisterUserRequest(name=name, email=f"{name.lower()}@example.com", role=role)
    )
    return user.as_actor()


@pytest.fixture
def seller(db_manager) -> Actor:
    return _register(db_manager, "Sam", Actor.Role.SELLER)


@pytest.fixture
def agent(db_manager) -> Actor:
    return _register(db_manager, "Alex", Actor.Role.AGENT)


@pytest.fixture
def buyer(db_manager) -> Actor:
    return _register(db_manager, "Bea", Actor.Role.BUYER)


@pytest.fixture
def other_buyer(db_manager) -> Actor:
    return _register(db_manager, "Cal", Actor.Role.BUYER)


@pytest.fixture
def admin(db_manager) -> Actor:
    return _register(db_manager, "Ada", Actor.Role.ADMIN)


@pytest.fixture
def create_listing(db_manager, seller, agent):
    def _create(title="Sunny two bedroom", status=PropertyStatus.ACTIVE, with_agent=True, owner=None):
        result = ListingManager(db_manager).create_property(
            owner or seller,
            CreatePropertyRequest(
                title=title,
                status=status,
                price=450000,
                bedrooms=2,
                city="Lisbon",
                agent_id=agent.user_id if with_agent else None,
            ),
        )
        assert result.ok, result.error
        return result.data
    return _create


@pytest.fixture
def listing(create_listing):
    return create_listing()
