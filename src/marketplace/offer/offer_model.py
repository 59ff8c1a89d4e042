from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field


class OfferStatus(str, Enum):
    PENDING = 'pending'
    COUNTERED = 'countered'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    WITHDRAWN = 'withdrawn'


# Allowed transitions; statuses without an entry are terminal
OFFER_TRANSITIONS: Dict[OfferStatus, FrozenSet[OfferStatus]] = {
    OfferStatus.PENDING: frozenset({
        OfferStatus.COUNTERED, OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.WITHDRAWN,
    }),
    OfferStatus.COUNTERED: frozenset({
        OfferStatus.COUNTERED, OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.WITHDRAWN,
    }),
}

NON_TERMINAL_OFFER_STATUSES = frozenset(OFFER_TRANSITIONS)


def can_transition(current: OfferStatus, target: OfferStatus) -> bool:
    return target in OFFER_TRANSITIONS.get(OfferStatus(current), frozenset())


class OfferStatusReason(str, Enum):
    EXPIRED = 'expired'
    SUPERSEDED = 'superseded'


class OfferModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    buyer_id: str
    amount: float
    status: OfferStatus
    status_reason: Optional[OfferStatusReason] = None
    expires_at: datetime
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


class CreateOfferRequest(BaseModel):
    amount: float = Field(..., description='Offer amount')
    expires_at: Optional[datetime] = Field(
        default=None, description='When the offer lapses; defaults to the configured window'
    )


class CounterOfferRequest(BaseModel):
    amount: float = Field(..., description='Counter amount')
