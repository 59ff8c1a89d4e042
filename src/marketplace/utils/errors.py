from typing import Any, Dict

from marketplace.utils.common_models import ErrorKind, ActionResult


class MarketplaceError(Exception):
    """Base class of the domain errors raised inside the engines"""
    kind: ErrorKind = None

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_result(self) -> ActionResult:
        return ActionResult.failure(kind=self.kind, message=self.message, context=self.context)


class InvalidTransition(MarketplaceError):
    kind = ErrorKind.INVALID_TRANSITION


class DuplicateActiveOffer(MarketplaceError):
    kind = ErrorKind.DUPLICATE_ACTIVE_OFFER


class SlotConflict(MarketplaceError):
    kind = ErrorKind.SLOT_CONFLICT


class AlreadyFavorited(MarketplaceError):
    kind = ErrorKind.ALREADY_FAVORITED


class NotAuthorized(MarketplaceError):
    kind = ErrorKind.NOT_AUTHORIZED


class NotFound(MarketplaceError):
    kind = ErrorKind.NOT_FOUND


class InvalidRating(MarketplaceError):
    kind = ErrorKind.INVALID_RATING


class InvalidAmount(MarketplaceError):
    kind = ErrorKind.INVALID_AMOUNT


class InvalidSlot(MarketplaceError):
    kind = ErrorKind.INVALID_SLOT


class InvalidExpiry(MarketplaceError):
    kind = ErrorKind.INVALID_EXPIRY
