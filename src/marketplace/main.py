import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, APIRouter, BackgroundTasks, Depends, Header, HTTPException, Path, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.booking.booking_manager import BookingManager
from marketplace.booking.booking_model import ScheduleBookingRequest
from marketplace.counters.counter_synchronizer import CounterSynchronizer
from marketplace.listing.listing_manager import ListingManager
from marketplace.listing.listing_model import CreatePropertyRequest, PropertyStatus, UpdatePropertyStatusRequest
from marketplace.notification.notification_manager import NotificationManager
from marketplace.offer.offer_manager import OfferManager
from marketplace.offer.offer_model import CounterOfferRequest, CreateOfferRequest
from marketplace.review.rating_aggregator import RatingAggregator
from marketplace.review.review_model import UpsertReviewRequest
from marketplace.utils.common_models import ActionResult, Actor, ErrorKind

ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE_ACTIVE_OFFER: status.HTTP_409_CONFLICT,
    ErrorKind.SLOT_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_FAVORITED: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_RATING: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_AMOUNT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_SLOT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_EXPIRY: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class Services:
    """Engines bound to one database manager, resolved lazily from settings when none is given"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self._db_manager = db_manager

    @property
    def db(self) -> DatabaseManager:
        if self._db_manager is None:
            self._db_manager = get_database_manager()
        return self._db_manager

    @property
    def listings(self) -> ListingManager:
        return ListingManager(self.db)

    @property
    def offers(self) -> OfferManager:
        return OfferManager(self.db)

    @property
    def bookings(self) -> BookingManager:
        return BookingManager(self.db)

    @property
    def ratings(self) -> RatingAggregator:
        return RatingAggregator(self.db)

    @property
    def counters(self) -> CounterSynchronizer:
        return CounterSynchronizer(self.db)

    @property
    def notifications(self) -> NotificationManager:
        return NotificationManager(self.db)


def envelope(result: ActionResult, message: str, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if result.ok:
        return JSONResponse(
            status_code=success_status,
            content={"success": True, "message": message, "data": jsonable_encoder(result.data)},
        )
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(result.error.kind, status.HTTP_400_BAD_REQUEST),
        content={"success": False, "message": result.error.message, "error": jsonable_encoder(result.error)},
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_actor(
    user_id: Optional[str] = Header(default=None, alias=settings.Authentication.USER_ID_HEADER),
    role: Optional[str] = Header(default=None, alias=settings.Authentication.USER_ROLE_HEADER),
) -> Actor:
    """
    Actor from the identity headers set by the gateway in front of this service.

    Both headers are trusted as given, including the admin role, so the
    gateway must strip any client-supplied values and set them from the
    authenticated session.
    """
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user identity")
    try:
        return Actor(user_id=user_id, role=role or Actor.Role.BUYER)
    except ValidationError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Unknown role '{role}'")


async def get_optional_actor(
    user_id: Optional[str] = Header(default=None, alias=settings.Authentication.USER_ID_HEADER),
) -> Optional[str]:
    return user_id


def create_app(db_manager: Optional[DatabaseManager] = None) -> FastAPI:
    app = FastAPI(title=settings.General.SERVICE_NAME)
    app.state.services = Services(db_manager)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.Authentication.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"[API] Invalid request on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"success": False, "message": "Invalid request", "error": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail, "error": None}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"success": False, "message": "Service unavailable", "error": None}
        )

    @app.get("/")
    async def read_root():
        return {"message": "Marketplace consistency engine API"}

    @app.get("/health")
    def health(services: Services = Depends(get_services)):
        return services.db.health_check()

    app.include_router(build_v1_router())
    return app


def build_v1_router() -> APIRouter:
    v1_router = APIRouter(prefix="/api/v1")

    ##############
    # PROPERTY APIs
    ##############

    @v1_router.post('/properties')
    def create_property(request: CreatePropertyRequest, actor: Actor = Depends(get_actor),
                        services: Services = Depends(get_services)):
        return envelope(services.listings.create_property(actor, request), "Property created", status.HTTP_201_CREATED)

    @v1_router.get('/properties')
    def list_properties(
        property_status: Optional[PropertyStatus] = Query(default=None, alias="status"),
        city: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: Optional[int] = Query(default=None, ge=1),
        offset: int = Query(default=0, ge=0),
        services: Services = Depends(get_services),
    ):
        properties = services.listings.list_properties(
            status=property_status, city=city, min_price=min_price, max_price=max_price, limit=limit, offset=offset
        )
        return envelope(ActionResult.success(properties), "Properties fetched")

    @v1_router.get('/properties/{property_id}')
    def get_property(
        background_tasks: BackgroundTasks,
        property_id: str = Path(..., description="ID of the property"),
        viewer_id: Optional[str] = Depends(get_optional_actor),
        services: Services = Depends(get_services),
    ):
        result = services.listings.get_property(property_id)
        if result.ok:
            background_tasks.add_task(services.counters.record_view, property_id, viewer_id)
        return envelope(result, "Property fetched")

    @v1_router.patch('/properties/{property_id}/status')
    def update_property_status(request: UpdatePropertyStatusRequest, property_id: str = Path(...),
                               actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        return envelope(services.listings.update_status(actor, property_id, request.status), "Status updated")

    @v1_router.delete('/properties/{property_id}')
    def delete_property(property_id: str = Path(...), actor: Actor = Depends(get_actor),
                        services: Services = Depends(get_services)):
        return envelope(services.listings.delete_property(actor, property_id), "Property deleted")

    ##############
    # OFFER APIs
    ##############

    @v1_router.post('/properties/{property_id}/offers')
    def create_offer(request: CreateOfferRequest, property_id: str = Path(...),
                     actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        result = services.offers.create(actor, property_id, request.amount, request.expires_at)
        return envelope(result, "Offer created", status.HTTP_201_CREATED)

    @v1_router.post('/offers/{offer_id}/counter')
    def counter_offer(request: CounterOfferRequest, offer_id: str = Path(...),
                      actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        return envelope(services.offers.counter(actor, offer_id, request.amount), "Offer countered")

    @v1_router.post('/offers/{offer_id}/accept')
    def accept_offer(offer_id: str = Path(...), actor: Actor = Depends(get_actor),
                     services: Services = Depends(get_services)):
        return envelope(services.offers.accept(actor, offer_id), "Offer accepted")

    @v1_router.post('/offers/{offer_id}/reject')
    def reject_offer(offer_id: str = Path(...), actor: Actor = Depends(get_actor),
                     services: Services = Depends(get_services)):
        return envelope(services.offers.reject(actor, offer_id), "Offer rejected")

    @v1_router.post('/offers/{offer_id}/withdraw')
    def withdraw_offer(offer_id: str = Path(...), actor: Actor = Depends(get_actor),
                       services: Services = Depends(get_services)):
        return envelope(services.offers.withdraw(actor, offer_id), "Offer withdrawn")

    ##############
    # BOOKING APIs
    ##############

    @v1_router.post('/properties/{property_id}/bookings')
    def schedule_booking(request: ScheduleBookingRequest, property_id: str = Path(...),
                         actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        result = services.bookings.schedule(actor, property_id, request.scheduled_date, request.duration_minutes)
        return envelope(result, "Tour requested", status.HTTP_201_CREATED)

    @v1_router.post('/bookings/{booking_id}/{action}')
    def transition_booking(booking_id: str = Path(...), action: str = Path(..., pattern="^(approve|reject|cancel|complete)$"),
                           actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        handler = getattr(services.bookings, action)
        return envelope(handler(actor, booking_id), f"Tour {action} succeeded")

    ##############
    # REVIEW APIs
    ##############

    @v1_router.put('/properties/{property_id}/reviews')
    def upsert_review(request: UpsertReviewRequest, property_id: str = Path(...),
                      actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        return envelope(services.ratings.upsert_review(actor, property_id, request.rating, request.comment), "Review saved")

    @v1_router.delete('/properties/{property_id}/reviews')
    def remove_review(property_id: str = Path(...), user_id: Optional[str] = None,
                      actor: Actor = Depends(get_actor), services: Services = Depends(get_services)):
        return envelope(services.ratings.remove_review(actor, property_id, user_id), "Review removed")

    ##############
    # FAVORITE APIs
    ##############

    @v1_router.post('/properties/{property_id}/favorite')
    def add_favorite(property_id: str = Path(...), actor: Actor = Depends(get_actor),
                     services: Services = Depends(get_services)):
        return envelope(services.counters.add_favorite(actor, property_id), "Added to favorites", status.HTTP_201_CREATED)

    @v1_router.delete('/properties/{property_id}/favorite')
    def remove_favorite(property_id: str = Path(...), actor: Actor = Depends(get_actor),
                        services: Services = Depends(get_services)):
        return envelope(services.counters.remove_favorite(actor, property_id), "Removed from favorites")

    ##############
    # NOTIFICATION APIs
    ##############

    @v1_router.get('/notifications')
    def list_notifications(unread_only: bool = False, actor: Actor = Depends(get_actor),
                           services: Services = Depends(get_services)):
        notifications = services.notifications.list_notifications(actor.user_id, unread_only=unread_only)
        return envelope(ActionResult.success(notifications), "Notifications fetched")

    @v1_router.post('/notifications/{notification_id}/read')
    def mark_notification_read(notification_id: str = Path(...), actor: Actor = Depends(get_actor),
                               services: Services = Depends(get_services)):
        return envelope(services.notifications.mark_read(actor, notification_id), "Notification read")

    return v1_router


app = create_app()


def serve():
    uvicorn.run("marketplace.main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8080")))


if __name__ == "__main__":
    serve()
